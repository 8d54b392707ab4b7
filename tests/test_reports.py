"""Tests for the pure aggregation functions."""

from datetime import date, datetime, timezone
from decimal import Decimal
from itertools import count

import pytest

from moneybook.config.defaults import UNCATEGORIZED_ICON, UNCATEGORIZED_NAME
from moneybook.models.records import Account, Category, Transaction
from moneybook.reports import (
    account_balance,
    account_breakdown,
    available_months,
    available_years,
    category_breakdown,
    filter_by_month,
    month_key,
    monthly_summary,
    parse_month_key,
    percentage,
    summarize,
    yearly_report,
)


_ids = count()


def tx(kind: str, amount: str, day: date, category_id=None, account_id=None) -> Transaction:
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return Transaction(
        id=f"t{next(_ids)}",
        user_id="u1",
        kind=kind,
        amount=Decimal(amount),
        date=day,
        category_id=category_id,
        account_id=account_id,
        created_at=created,
        updated_at=created,
    )


FOOD = Category(id="food", user_id="u1", name="Food", icon="🍔", color="#f00")
SALARY = Category(id="salary", user_id="u1", name="Salary", icon="💰", color="#0f0")
WALLET = Account(id="wallet", user_id="u1", name="Wallet")
BANK = Account(id="bank", user_id="u1", name="Bank")


class TestPeriods:
    """Tests for month keys and period filters."""

    def test_month_key(self):
        assert month_key(date(2024, 3, 9)) == "2024-03"
        assert parse_month_key("2024-03") == (2024, 3)

    def test_invalid_month_key(self):
        with pytest.raises(ValueError):
            parse_month_key("March 2024")

    def test_filter_by_month_and_account(self):
        transactions = [
            tx("expense", "10", date(2024, 3, 1), account_id="wallet"),
            tx("expense", "20", date(2024, 3, 31), account_id="bank"),
            tx("expense", "30", date(2024, 4, 1), account_id="wallet"),
            tx("expense", "40", date(2023, 3, 15), account_id="wallet"),
        ]

        assert len(filter_by_month(transactions, "2024-03")) == 2
        only_wallet = filter_by_month(transactions, "2024-03", account_id="wallet")
        assert [t.amount for t in only_wallet] == [Decimal("10")]

    def test_available_months_newest_first(self):
        transactions = [
            tx("expense", "1", date(2023, 12, 5)),
            tx("expense", "1", date(2024, 2, 5)),
            tx("expense", "1", date(2024, 2, 9)),
        ]
        assert available_months(transactions, date(2024, 6, 1)) == ["2024-02", "2023-12"]

    def test_available_periods_fall_back_to_today(self):
        today = date(2024, 6, 1)
        assert available_months([], today) == ["2024-06"]
        assert available_years([], today) == [2024]

    def test_available_months_for_one_account(self):
        transactions = [
            tx("expense", "1", date(2024, 1, 5), account_id="bank"),
            tx("expense", "1", date(2024, 2, 5), account_id="wallet"),
        ]
        assert available_months(transactions, date(2024, 6, 1), "wallet") == ["2024-02"]


class TestSummaries:
    """Tests for income/expense/balance arithmetic."""

    def test_empty_set_is_all_zero(self):
        summary = summarize([])
        assert summary.income == 0
        assert summary.expense == 0
        assert summary.balance == 0
        assert summary.transaction_count == 0

    def test_balance_is_income_minus_expense(self):
        transactions = [
            tx("income", "1000.50", date(2024, 3, 1)),
            tx("income", "200", date(2024, 3, 2)),
            tx("expense", "300.25", date(2024, 3, 3)),
            tx("expense", "0.25", date(2024, 3, 4)),
        ]
        summary = summarize(transactions)
        assert summary.income == Decimal("1200.50")
        assert summary.expense == Decimal("300.50")
        assert summary.balance == Decimal("900.00")
        assert summary.transaction_count == 4

    def test_monthly_summary(self):
        transactions = [
            tx("expense", "150", date(2024, 3, 1)),
            tx("income", "500", date(2024, 4, 1)),
        ]
        summary = monthly_summary(transactions, "2024-03")
        assert summary.balance == Decimal("-150")

    def test_account_balance_is_derived(self):
        transactions = [
            tx("income", "100", date(2024, 1, 1), account_id="wallet"),
            tx("expense", "30", date(2024, 2, 1), account_id="wallet"),
            tx("expense", "500", date(2024, 2, 1), account_id="bank"),
            tx("expense", "20", date(2024, 3, 1), account_id="wallet"),
        ]
        assert account_balance(transactions, "wallet") == Decimal("50")
        assert account_balance(transactions, "wallet", until=date(2024, 2, 1)) == Decimal("70")
        assert account_balance(transactions, "missing") == 0


class TestPercentage:
    """Tests for share-of-total percentages."""

    def test_zero_whole_is_zero(self):
        assert percentage(Decimal("0"), Decimal("0")) == 0
        assert percentage(Decimal("5"), Decimal("0")) == 0

    def test_rounds_half_up(self):
        assert percentage(Decimal("1"), Decimal("8")) == 13  # 12.5
        assert percentage(Decimal("1"), Decimal("3")) == 33
        assert percentage(Decimal("2"), Decimal("3")) == 67

    def test_whole(self):
        assert percentage(Decimal("40"), Decimal("40")) == 100


class TestCategoryBreakdown:
    """Tests for per-category chart data."""

    def test_groups_by_kind_and_name(self):
        transactions = [
            tx("expense", "30", date(2024, 3, 1), "food"),
            tx("expense", "10", date(2024, 3, 2), "food"),
            tx("income", "500", date(2024, 3, 3), "salary"),
        ]

        breakdown = category_breakdown(transactions, [FOOD, SALARY])

        assert [(s.name, s.value, s.percentage) for s in breakdown.expense] == [
            ("Food", Decimal("40"), 100)
        ]
        assert breakdown.expense[0].icon == "🍔"
        assert [s.name for s in breakdown.income] == ["Salary"]
        assert breakdown.total_income == Decimal("500")

    def test_orphans_fall_back_to_uncategorized(self):
        transactions = [
            tx("expense", "75", date(2024, 3, 1), "food"),
            tx("expense", "25", date(2024, 3, 1), "deleted-category"),
            tx("expense", "0.01", date(2024, 3, 1)),
        ]

        breakdown = category_breakdown(transactions, [FOOD])

        names = [s.name for s in breakdown.expense]
        assert names == ["Food", UNCATEGORIZED_NAME]
        fallback = breakdown.expense[1]
        assert fallback.icon == UNCATEGORIZED_ICON
        assert fallback.value == Decimal("25.01")
        assert breakdown.expense[0].percentage == 75

    def test_empty_kind_has_no_shares(self):
        breakdown = category_breakdown([tx("expense", "5", date(2024, 3, 1), "food")], [FOOD])
        assert breakdown.income == []
        assert breakdown.total_income == 0


class TestAccountBreakdown:
    """Tests for per-account totals."""

    def test_rows_per_account_plus_fallback(self):
        transactions = [
            tx("income", "100", date(2024, 3, 1), account_id="wallet"),
            tx("expense", "30", date(2024, 3, 1), account_id="wallet"),
            tx("expense", "10", date(2024, 3, 1), account_id="gone"),
        ]

        rows = account_breakdown(transactions, [WALLET, BANK])

        assert [(r.account_id, r.name) for r in rows] == [
            ("wallet", "Wallet"), ("bank", "Bank"), (None, UNCATEGORIZED_NAME),
        ]
        assert rows[0].balance == Decimal("70")
        assert rows[0].percentage == 75
        assert rows[1].balance == 0
        assert rows[1].percentage == 0
        assert rows[2].expense == Decimal("10")

    def test_no_fallback_row_when_all_assigned(self):
        rows = account_breakdown(
            [tx("expense", "5", date(2024, 3, 1), account_id="bank")], [WALLET, BANK]
        )
        assert [r.account_id for r in rows] == ["wallet", "bank"]


class TestYearlyReport:
    """Tests for the yearly report."""

    def test_twelve_months_and_sorted_categories(self):
        transactions = [
            tx("income", "1000", date(2024, 1, 15), "salary"),
            tx("expense", "200", date(2024, 1, 20), "food"),
            tx("expense", "50", date(2024, 7, 1), "food"),
            tx("expense", "99", date(2023, 12, 31), "food"),
        ]

        report = yearly_report(transactions, [FOOD, SALARY], 2024)

        assert [m.month for m in report.months] == list(range(1, 13))
        assert report.months[0].balance == Decimal("800")
        assert report.months[6].expense == Decimal("50")
        assert report.months[11].balance == 0
        assert [(c.name, c.total) for c in report.category_summary] == [
            ("Salary", Decimal("1000")),
            ("Food", Decimal("250")),
        ]
        assert report.totals.balance == Decimal("750")
        assert report.totals.transaction_count == 3

    def test_empty_year(self):
        report = yearly_report([], [FOOD], 2024)
        assert len(report.months) == 12
        assert report.category_summary == []
        assert report.totals.balance == 0
