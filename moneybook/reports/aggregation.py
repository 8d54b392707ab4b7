"""
Derived Aggregation

DESIGN DECISION: Aggregation is PURE and DETERMINISTIC.
Every function here takes the mirrored records as arguments and returns
new values. Nothing reads the store, nothing mutates the mirror.

All sums are Decimal. Percentages are whole numbers rounded half-up,
and a share of a zero total is 0 rather than a division error.

Transactions that reference a deleted (or missing) category or account
are never dropped: they are grouped under the Uncategorized fallback.
"""

from collections import defaultdict
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence

from moneybook.config.defaults import (
    UNCATEGORIZED_COLOR,
    UNCATEGORIZED_ICON,
    UNCATEGORIZED_NAME,
)
from moneybook.models.records import Account, Category, Transaction, TransactionKind
from moneybook.models.summary import (
    ZERO,
    AccountShare,
    CategoryBreakdown,
    CategoryShare,
    CategoryTotals,
    MonthlyTotals,
    PeriodSummary,
    YearlyReport,
)


MONTH_KEY_FORMAT = "%Y-%m"


# =============================================================================
# PERIOD SELECTION
# =============================================================================

def month_key(value: date) -> str:
    """Calendar month of a date as 'YYYY-MM'."""
    return value.strftime(MONTH_KEY_FORMAT)


def parse_month_key(key: str) -> tuple[int, int]:
    """
    Split 'YYYY-MM' into (year, month).

    Raises:
        ValueError: If key is not a valid month key
    """
    parsed = datetime.strptime(key, MONTH_KEY_FORMAT)
    return parsed.year, parsed.month


def filter_by_month(
    transactions: Iterable[Transaction],
    month: str,
    account_id: Optional[str] = None,
) -> list[Transaction]:
    """Transactions dated in the given month, optionally for one account."""
    year, month_number = parse_month_key(month)
    return [
        t for t in transactions
        if t.date.year == year
        and t.date.month == month_number
        and (account_id is None or t.account_id == account_id)
    ]


def filter_by_year(transactions: Iterable[Transaction], year: int) -> list[Transaction]:
    return [t for t in transactions if t.date.year == year]


def available_months(
    transactions: Iterable[Transaction],
    today: date,
    account_id: Optional[str] = None,
) -> list[str]:
    """
    Month keys that have at least one transaction, newest first.

    Falls back to the current month so a selector is never empty.
    """
    months = {
        month_key(t.date) for t in transactions
        if account_id is None or t.account_id == account_id
    }
    if not months:
        months.add(month_key(today))
    return sorted(months, reverse=True)


def available_years(transactions: Iterable[Transaction], today: date) -> list[int]:
    """Years that have at least one transaction, newest first."""
    years = {t.date.year for t in transactions}
    if not years:
        years.add(today.year)
    return sorted(years, reverse=True)


# =============================================================================
# TOTALS
# =============================================================================

def percentage(part: Decimal, whole: Decimal) -> int:
    """round(part / whole * 100), half-up. 0 when whole is 0."""
    if not whole:
        return 0
    share = Decimal(part) / Decimal(whole) * 100
    return int(share.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _split(transactions: Iterable[Transaction]) -> tuple[Decimal, Decimal, int]:
    income = ZERO
    expense = ZERO
    count = 0
    for t in transactions:
        if t.kind == TransactionKind.INCOME:
            income += t.amount
        else:
            expense += t.amount
        count += 1
    return income, expense, count


def summarize(transactions: Iterable[Transaction]) -> PeriodSummary:
    """Income, expense and balance of a set of transactions."""
    income, expense, count = _split(transactions)
    return PeriodSummary(
        income=income,
        expense=expense,
        balance=income - expense,
        transaction_count=count,
    )


def monthly_summary(
    transactions: Iterable[Transaction],
    month: str,
    account_id: Optional[str] = None,
) -> PeriodSummary:
    return summarize(filter_by_month(transactions, month, account_id))


def account_balance(
    transactions: Iterable[Transaction],
    account_id: str,
    until: Optional[date] = None,
) -> Decimal:
    """
    Balance of one account, derived from its transactions.

    Accounts have no stored balance; this is the only source of it.
    With until, only transactions dated on or before that day count.
    """
    income, expense, _ = _split(
        t for t in transactions
        if t.account_id == account_id and (until is None or t.date <= until)
    )
    return income - expense


# =============================================================================
# BREAKDOWNS
# =============================================================================

def _category_for(
    transaction: Transaction,
    categories_by_id: dict[str, Category],
) -> Optional[Category]:
    if transaction.category_id is None:
        return None
    return categories_by_id.get(transaction.category_id)


def _shares(
    values: dict[str, Decimal],
    display: dict[str, tuple[str, str]],
    total: Decimal,
) -> list[CategoryShare]:
    shares = [
        CategoryShare(
            key=name,
            name=name,
            icon=display[name][0],
            color=display[name][1],
            value=value,
            percentage=percentage(value, total),
        )
        for name, value in values.items()
    ]
    shares.sort(key=lambda s: (-s.value, s.name.casefold()))
    return shares


def category_breakdown(
    transactions: Iterable[Transaction],
    categories: Sequence[Category],
) -> CategoryBreakdown:
    """
    Per-category shares of income and of expense.

    Grouped by category name, so two categories with the same name share
    one slice. Each kind's percentages are relative to that kind's total.
    """
    categories_by_id = {c.id: c for c in categories}
    income: dict[str, Decimal] = defaultdict(lambda: ZERO)
    expense: dict[str, Decimal] = defaultdict(lambda: ZERO)
    display: dict[str, tuple[str, str]] = {}

    for t in transactions:
        category = _category_for(t, categories_by_id)
        if category is None:
            name, icon, color = UNCATEGORIZED_NAME, UNCATEGORIZED_ICON, UNCATEGORIZED_COLOR
        else:
            name, icon, color = category.name, category.icon, category.color
        display.setdefault(name, (icon, color))

        if t.kind == TransactionKind.INCOME:
            income[name] += t.amount
        else:
            expense[name] += t.amount

    total_income = sum(income.values(), ZERO)
    total_expense = sum(expense.values(), ZERO)
    return CategoryBreakdown(
        income=_shares(income, display, total_income),
        expense=_shares(expense, display, total_expense),
        total_income=total_income,
        total_expense=total_expense,
    )


def account_breakdown(
    transactions: Iterable[Transaction],
    accounts: Sequence[Account],
) -> list[AccountShare]:
    """
    Income, expense and balance per account, in the accounts' order.

    Every known account gets a row, even with no transactions. Transactions
    without a known account are collected in one trailing fallback row
    (account_id None), present only if there are any.
    """
    known = {a.id for a in accounts}
    income: dict[Optional[str], Decimal] = defaultdict(lambda: ZERO)
    expense: dict[Optional[str], Decimal] = defaultdict(lambda: ZERO)
    has_unassigned = False

    for t in transactions:
        key = t.account_id if t.account_id in known else None
        if key is None:
            has_unassigned = True
        if t.kind == TransactionKind.INCOME:
            income[key] += t.amount
        else:
            expense[key] += t.amount

    total_expense = sum(expense.values(), ZERO)
    rows = [(a.id, a.name) for a in accounts]
    if has_unassigned:
        rows.append((None, UNCATEGORIZED_NAME))

    return [
        AccountShare(
            account_id=account_id,
            name=name,
            income=income[account_id],
            expense=expense[account_id],
            balance=income[account_id] - expense[account_id],
            percentage=percentage(expense[account_id], total_expense),
        )
        for account_id, name in rows
    ]


# =============================================================================
# YEARLY REPORT
# =============================================================================

def yearly_report(
    transactions: Iterable[Transaction],
    categories: Sequence[Category],
    year: int,
) -> YearlyReport:
    """
    Twelve monthly rows, a per-category summary and the year's totals.

    The category summary leaves out categories with nothing booked and is
    ordered by total (income + expense) descending.
    """
    year_transactions = filter_by_year(transactions, year)
    categories_by_id = {c.id: c for c in categories}

    month_income: dict[int, Decimal] = defaultdict(lambda: ZERO)
    month_expense: dict[int, Decimal] = defaultdict(lambda: ZERO)
    by_category: dict[str, CategoryTotals] = {}

    for t in year_transactions:
        category = _category_for(t, categories_by_id)
        name = category.name if category is not None else UNCATEGORIZED_NAME
        totals = by_category.setdefault(name, CategoryTotals(name=name))

        if t.kind == TransactionKind.INCOME:
            month_income[t.date.month] += t.amount
            totals.income += t.amount
        else:
            month_expense[t.date.month] += t.amount
            totals.expense += t.amount
        totals.total += t.amount

    months = [
        MonthlyTotals(
            month=month,
            income=month_income[month],
            expense=month_expense[month],
            balance=month_income[month] - month_expense[month],
        )
        for month in range(1, 13)
    ]
    category_summary = sorted(
        (c for c in by_category.values() if c.total > 0),
        key=lambda c: (-c.total, c.name.casefold()),
    )

    return YearlyReport(
        year=year,
        months=months,
        category_summary=category_summary,
        totals=summarize(year_transactions),
    )
