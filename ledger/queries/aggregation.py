"""
Ledger Aggregation

Deterministic reductions over the in-memory transaction list: all-time
totals, monthly totals, the month-over-month comparison, per-cell calendar
aggregates and the summary handed to the analysis service.

CRITICAL: The analysis service only ever sees the numbers produced here.
It never receives raw transactions and never computes totals itself.
"""

import calendar
from datetime import date, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence

from ledger.calendar_grid import month_grid, shift_month, week_grid
from ledger.models.transaction import (
    CategoryTotal,
    DaySummary,
    LedgerSummary,
    MonthOverMonthDelta,
    SpendingSummary,
    Transaction,
    TransactionType,
)
from ledger.queries.bucketing import day_summaries, transactions_in_month

TOP_CATEGORY_LIMIT = 3

_PCT = Decimal("0.1")


def summary(transactions: Iterable[Transaction]) -> LedgerSummary:
    """All-time income, expense and balance."""
    income = expense = Decimal("0")
    for t in transactions:
        if t.type == TransactionType.INCOME:
            income += t.amount
        else:
            expense += t.amount
    return LedgerSummary(income=income, expense=expense, balance=income - expense)


def monthly_summary(
    transactions: Iterable[Transaction],
    month_ref: date,
    tz: Optional[tzinfo] = None,
) -> LedgerSummary:
    """Same reduction as `summary`, restricted to month_ref's month."""
    return summary(transactions_in_month(transactions, month_ref, tz))


def previous_month(ref: date) -> date:
    """ref moved back one month; Mar 31 lands on Feb 28/29."""
    return shift_month(ref, -1)


def _percent_change(current: Decimal, previous: Decimal) -> Optional[Decimal]:
    if previous == 0:
        # No baseline to compare against
        return None
    change = (current - previous) / abs(previous) * 100
    return change.quantize(_PCT, rounding=ROUND_HALF_UP)


def month_over_month_delta(
    current: LedgerSummary,
    previous: LedgerSummary,
) -> MonthOverMonthDelta:
    return MonthOverMonthDelta(
        income_delta=current.income - previous.income,
        income_delta_pct=_percent_change(current.income, previous.income),
        expense_delta=current.expense - previous.expense,
        expense_delta_pct=_percent_change(current.expense, previous.expense),
        balance_delta=current.balance - previous.balance,
    )


def top_expense_categories(
    transactions: Iterable[Transaction],
    limit: int = TOP_CATEGORY_LIMIT,
) -> list[CategoryTotal]:
    """Largest expense categories, descending; ties keep first-seen order."""
    totals: dict[str, Decimal] = {}
    for t in transactions:
        if t.type == TransactionType.EXPENSE:
            totals[t.category] = totals.get(t.category, Decimal("0")) + t.amount

    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [CategoryTotal(category=name, amount=amount) for name, amount in ranked[:limit]]


def month_label(ref: date) -> str:
    return f"{calendar.month_name[ref.month]} {ref.year}"


def build_spending_summary(
    transactions: Iterable[Transaction],
    month_ref: date,
    tz: Optional[tzinfo] = None,
) -> SpendingSummary:
    """The analysis service input for month_ref's month."""
    in_month = transactions_in_month(transactions, month_ref, tz)
    totals = summary(in_month)
    return SpendingSummary(
        income=totals.income,
        expense=totals.expense,
        balance=totals.balance,
        top_categories=top_expense_categories(in_month),
        month_label=month_label(month_ref),
    )


class LedgerReport:
    """
    Read-only views over one snapshot of the transaction list.

    Build a new report after every confirmed store change; a report never
    sees later mutations.
    """

    def __init__(
        self,
        transactions: Sequence[Transaction],
        tz: Optional[tzinfo] = None,
    ):
        self._transactions = tuple(transactions)
        self._tz = tz

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return self._transactions

    def summary(self) -> LedgerSummary:
        return summary(self._transactions)

    def monthly(self, month_ref: date) -> LedgerSummary:
        return monthly_summary(self._transactions, month_ref, self._tz)

    def comparison(
        self,
        month_ref: date,
    ) -> tuple[LedgerSummary, LedgerSummary, MonthOverMonthDelta]:
        """(this month, previous month, delta)"""
        current = self.monthly(month_ref)
        previous = self.monthly(previous_month(month_ref))
        return current, previous, month_over_month_delta(current, previous)

    def spending_summary(self, month_ref: date) -> SpendingSummary:
        return build_spending_summary(self._transactions, month_ref, self._tz)

    def month_calendar(self, ref: date, today: Optional[date] = None) -> list[DaySummary]:
        return day_summaries(
            self._transactions,
            month_grid(ref),
            month_ref=ref,
            today=today,
            tz=self._tz,
        )

    def week_calendar(self, ref: date, today: Optional[date] = None) -> list[DaySummary]:
        return day_summaries(
            self._transactions,
            week_grid(ref),
            today=today,
            tz=self._tz,
        )
