"""Bucketing and aggregation over the transaction list."""

from ledger.queries.aggregation import (
    LedgerReport,
    build_spending_summary,
    month_label,
    month_over_month_delta,
    monthly_summary,
    previous_month,
    summary,
    top_expense_categories,
)
from ledger.queries.bucketing import (
    counts_for_date,
    day_summaries,
    filter_by_selection,
    local_date,
    net_for_date,
    select_date,
    transactions_between,
    transactions_in_month,
    transactions_on,
)

__all__ = [
    "LedgerReport",
    "build_spending_summary",
    "counts_for_date",
    "day_summaries",
    "filter_by_selection",
    "local_date",
    "month_label",
    "month_over_month_delta",
    "monthly_summary",
    "net_for_date",
    "previous_month",
    "select_date",
    "summary",
    "top_expense_categories",
    "transactions_between",
    "transactions_in_month",
    "transactions_on",
]
