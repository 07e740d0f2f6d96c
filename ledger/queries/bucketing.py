"""
Transaction Bucketing

Groups transactions into calendar buckets (day, week, month) keyed by
`created_at`.

DESIGN DECISION: Buckets use the LOCAL calendar date, not the UTC instant.
An expense entered at 08:00 in Seoul is stored as 23:00 UTC the previous
day; the user expects to see it on the day they entered it. Aware
timestamps are converted with `astimezone(tz)` (tz=None means the process
local zone); naive timestamps are taken as already local.

Everything here is pure and order-independent.
"""

from datetime import date, datetime, tzinfo
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from ledger.calendar_grid import is_same_month
from ledger.models.transaction import (
    DayCounts,
    DaySummary,
    Transaction,
    TransactionType,
)


def local_date(moment: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar date of `moment` as seen in the local (or given) zone."""
    if moment.tzinfo is None:
        return moment.date()
    return moment.astimezone(tz).date()


def transactions_on(
    transactions: Iterable[Transaction],
    day: date,
    tz: Optional[tzinfo] = None,
) -> list[Transaction]:
    """Transactions created on `day`; time of day is ignored."""
    return [t for t in transactions if local_date(t.created_at, tz) == day]


def transactions_in_month(
    transactions: Iterable[Transaction],
    ref: date,
    tz: Optional[tzinfo] = None,
) -> list[Transaction]:
    """Transactions created in ref's year and month."""
    return [t for t in transactions if is_same_month(local_date(t.created_at, tz), ref)]


def transactions_between(
    transactions: Iterable[Transaction],
    start: date,
    end: date,
    tz: Optional[tzinfo] = None,
) -> list[Transaction]:
    """Transactions created from `start` to `end`, both inclusive."""
    return [t for t in transactions if start <= local_date(t.created_at, tz) <= end]


def _totals(transactions: Iterable[Transaction]) -> tuple[Decimal, Decimal, int, int]:
    income = expense = Decimal("0")
    income_count = expense_count = 0
    for t in transactions:
        if t.type == TransactionType.INCOME:
            income += t.amount
            income_count += 1
        else:
            expense += t.amount
            expense_count += 1
    return income, expense, income_count, expense_count


def net_for_date(
    transactions: Iterable[Transaction],
    day: date,
    tz: Optional[tzinfo] = None,
) -> Decimal:
    """Income minus expense on `day`; zero when nothing was recorded."""
    income, expense, _, _ = _totals(transactions_on(transactions, day, tz))
    return income - expense


def counts_for_date(
    transactions: Iterable[Transaction],
    day: date,
    tz: Optional[tzinfo] = None,
) -> DayCounts:
    _, _, income_count, expense_count = _totals(transactions_on(transactions, day, tz))
    return DayCounts(income_count=income_count, expense_count=expense_count)


def select_date(current: Optional[date], clicked: date) -> Optional[date]:
    """
    Calendar click handling: clicking the selected day clears the filter,
    clicking any other day selects it.
    """
    return None if current == clicked else clicked


def filter_by_selection(
    transactions: Sequence[Transaction],
    selected: Optional[date],
    tz: Optional[tzinfo] = None,
) -> list[Transaction]:
    """The list shown under the calendar."""
    if selected is None:
        return list(transactions)
    return transactions_on(transactions, selected, tz)


def day_summaries(
    transactions: Iterable[Transaction],
    days: Sequence[date],
    month_ref: Optional[date] = None,
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> list[DaySummary]:
    """
    One DaySummary per requested day, in the same order.

    The transactions are bucketed once, so a 42-cell month grid costs a
    single pass over the list.
    """
    buckets: dict[date, list[Transaction]] = {}
    for t in transactions:
        buckets.setdefault(local_date(t.created_at, tz), []).append(t)

    summaries = []
    for day in days:
        income, expense, income_count, expense_count = _totals(buckets.get(day, ()))
        summaries.append(DaySummary(
            day=day,
            income=income,
            expense=expense,
            net=income - expense,
            income_count=income_count,
            expense_count=expense_count,
            in_current_month=month_ref is None or is_same_month(day, month_ref),
            is_today=today is not None and day == today,
        ))
    return summaries
