"""Tests for local-date bucketing and calendar cell aggregates."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from conftest import at, make_transaction

from ledger.models.transaction import TransactionType
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

SEOUL = timezone(timedelta(hours=9))

INCOME = TransactionType.INCOME
EXPENSE = TransactionType.EXPENSE


class TestLocalDate:

    def test_aware_timestamp_uses_local_calendar_day(self):
        # 23:30 UTC on the 9th is 08:30 on the 10th in Seoul
        moment = datetime(2024, 3, 9, 23, 30, tzinfo=timezone.utc)
        assert local_date(moment, SEOUL) == date(2024, 3, 10)
        assert local_date(moment, timezone.utc) == date(2024, 3, 9)

    def test_naive_timestamp_is_taken_as_local(self):
        assert local_date(datetime(2024, 3, 9, 23, 30), SEOUL) == date(2024, 3, 9)


class TestFilters:

    def test_transactions_on_ignores_time_of_day(self, utc):
        morning = make_transaction(1000, created_at=at(2024, 3, 10, 1))
        night = make_transaction(2000, created_at=at(2024, 3, 10, 23))
        other = make_transaction(3000, created_at=at(2024, 3, 11, 0))

        found = transactions_on([morning, night, other], date(2024, 3, 10), utc)
        assert found == [morning, night]

    def test_transactions_on_respects_timezone(self):
        late = make_transaction(1000, created_at=datetime(2024, 3, 9, 23, 30, tzinfo=timezone.utc))
        assert transactions_on([late], date(2024, 3, 10), SEOUL) == [late]
        assert transactions_on([late], date(2024, 3, 9), SEOUL) == []

    def test_transactions_in_month(self, utc, march_ledger):
        in_march = transactions_in_month(march_ledger, date(2024, 3, 1), utc)
        assert len(in_march) == 5
        assert all(t.created_at.month == 3 for t in in_march)

    def test_transactions_between_is_inclusive(self, utc, march_ledger):
        found = transactions_between(march_ledger, date(2024, 3, 5), date(2024, 3, 12), utc)
        assert sorted(t.created_at.day for t in found) == [5, 12]


class TestDayAggregates:

    def test_net_and_counts(self, utc):
        day = at(2024, 3, 10)
        transactions = [
            make_transaction(50000, INCOME, "Salary", day),
            make_transaction(12000, EXPENSE, "Food", day),
            make_transaction(3000, EXPENSE, "Transport", day),
        ]
        assert net_for_date(transactions, date(2024, 3, 10), utc) == Decimal("35000")

        counts = counts_for_date(transactions, date(2024, 3, 10), utc)
        assert counts.income_count == 1
        assert counts.expense_count == 2

    def test_empty_day_is_zero(self, utc):
        assert net_for_date([], date(2024, 3, 10), utc) == Decimal("0")
        counts = counts_for_date([], date(2024, 3, 10), utc)
        assert counts.income_count == 0 and counts.expense_count == 0

    def test_day_summaries_follow_requested_order(self, utc, march_ledger):
        days = [date(2024, 3, 25), date(2024, 3, 5), date(2024, 2, 29)]
        cells = day_summaries(
            march_ledger, days, month_ref=date(2024, 3, 1), today=date(2024, 3, 5), tz=utc
        )

        assert [c.day for c in cells] == days
        assert cells[0].income == Decimal("3000000")
        assert cells[0].net == Decimal("3000000")
        assert cells[1].expense == Decimal("500000")
        assert cells[1].is_today
        assert not cells[2].in_current_month
        assert not cells[2].has_entries


class TestSelection:

    def test_clicking_a_day_selects_it(self):
        assert select_date(None, date(2024, 3, 10)) == date(2024, 3, 10)
        assert select_date(date(2024, 3, 9), date(2024, 3, 10)) == date(2024, 3, 10)

    def test_clicking_the_selected_day_clears_it(self):
        assert select_date(date(2024, 3, 10), date(2024, 3, 10)) is None

    def test_filter_by_selection(self, utc, march_ledger):
        assert filter_by_selection(march_ledger, None, utc) == march_ledger
        picked = filter_by_selection(march_ledger, date(2024, 3, 12), utc)
        assert [t.category for t in picked] == ["Transport"]
