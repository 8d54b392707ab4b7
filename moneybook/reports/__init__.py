"""
Reports Package

Pure aggregation over mirrored records: period summaries, per-category
and per-account breakdowns, yearly reports and period selectors.
"""

from moneybook.reports.aggregation import (
    account_balance,
    account_breakdown,
    available_months,
    available_years,
    category_breakdown,
    filter_by_month,
    filter_by_year,
    month_key,
    monthly_summary,
    parse_month_key,
    percentage,
    summarize,
    yearly_report,
)

__all__ = [
    "account_balance",
    "account_breakdown",
    "available_months",
    "available_years",
    "category_breakdown",
    "filter_by_month",
    "filter_by_year",
    "month_key",
    "monthly_summary",
    "parse_month_key",
    "percentage",
    "summarize",
    "yearly_report",
]
