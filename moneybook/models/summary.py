"""
Aggregation Result Models

Shapes returned by moneybook.reports for dashboards and charts.
All amounts are Decimals; percentages are whole numbers.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


ZERO = Decimal("0")


class PeriodSummary(BaseModel):
    """Income, expense and balance over a set of transactions."""

    income: Decimal = ZERO
    expense: Decimal = ZERO
    balance: Decimal = ZERO
    transaction_count: int = Field(default=0, ge=0)


class CategoryShare(BaseModel):
    """One slice of a per-category chart."""

    key: str = Field(..., description="Grouping key (the category name)")
    name: str
    icon: str
    color: str
    value: Decimal
    percentage: int = Field(ge=0, le=100)


class CategoryBreakdown(BaseModel):
    """Per-category shares, split by transaction kind."""

    income: list[CategoryShare] = Field(default_factory=list)
    expense: list[CategoryShare] = Field(default_factory=list)
    total_income: Decimal = ZERO
    total_expense: Decimal = ZERO


class AccountShare(BaseModel):
    """Totals for one account within a period."""

    account_id: Optional[str] = Field(
        default=None,
        description="None for transactions without a known account"
    )
    name: str
    income: Decimal = ZERO
    expense: Decimal = ZERO
    balance: Decimal = ZERO
    percentage: int = Field(
        default=0,
        ge=0,
        le=100,
        description="Share of the period's expense"
    )


class MonthlyTotals(BaseModel):
    """One row of a yearly report."""

    month: int = Field(ge=1, le=12)
    income: Decimal = ZERO
    expense: Decimal = ZERO
    balance: Decimal = ZERO


class CategoryTotals(BaseModel):
    """Per-category totals within a yearly report."""

    name: str
    income: Decimal = ZERO
    expense: Decimal = ZERO
    total: Decimal = ZERO


class YearlyReport(BaseModel):
    """Twelve monthly rows plus a category summary for one year."""

    year: int
    months: list[MonthlyTotals]
    category_summary: list[CategoryTotals] = Field(default_factory=list)
    totals: PeriodSummary
