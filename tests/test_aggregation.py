"""Tests for totals, month-over-month comparison and the analysis summary."""

import pytest
from datetime import date
from decimal import Decimal

from conftest import at, make_transaction

from ledger.models.transaction import LedgerSummary, TransactionType
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

EXPENSE = TransactionType.EXPENSE


class TestSummary:

    def test_all_time_totals(self, march_ledger):
        totals = summary(march_ledger)
        assert totals.income == Decimal("5000000")
        assert totals.expense == Decimal("2500000")
        assert totals.balance == Decimal("2500000")

    def test_empty_ledger(self):
        assert summary([]) == LedgerSummary()

    def test_monthly_summary(self, utc, march_ledger):
        march = monthly_summary(march_ledger, date(2024, 3, 31), utc)
        assert march.income == Decimal("3000000")
        assert march.expense == Decimal("1500000")
        assert march.balance == Decimal("1500000")

    def test_previous_month_clamps(self):
        assert previous_month(date(2024, 3, 31)) == date(2024, 2, 29)
        assert previous_month(date(2024, 1, 15)) == date(2023, 12, 15)


class TestMonthOverMonth:

    def test_march_against_february(self, utc, march_ledger):
        report = LedgerReport(march_ledger, utc)
        current, previous, delta = report.comparison(date(2024, 3, 15))

        assert previous.income == Decimal("2000000")
        assert previous.expense == Decimal("1000000")
        assert delta.income_delta == Decimal("1000000")
        assert delta.income_delta_pct == Decimal("50.0")
        assert delta.expense_delta == Decimal("500000")
        assert delta.expense_delta_pct == Decimal("50.0")
        assert delta.balance_delta == Decimal("500000")

    def test_no_percentage_without_baseline(self):
        current = LedgerSummary(income=Decimal("100"), expense=Decimal("0"), balance=Decimal("100"))
        delta = month_over_month_delta(current, LedgerSummary())
        assert delta.income_delta == Decimal("100")
        assert delta.income_delta_pct is None
        assert delta.expense_delta_pct is None

    def test_percentage_is_rounded_to_one_decimal(self):
        current = LedgerSummary(income=Decimal("0"), expense=Decimal("200"), balance=Decimal("-200"))
        previous = LedgerSummary(income=Decimal("0"), expense=Decimal("300"), balance=Decimal("-300"))
        delta = month_over_month_delta(current, previous)
        assert delta.expense_delta_pct == Decimal("-33.3")
        assert delta.balance_delta == Decimal("100")


class TestTopCategories:

    def test_top_three_descending(self, utc, march_ledger):
        spending = build_spending_summary(march_ledger, date(2024, 3, 1), utc)
        assert [(c.category, c.amount) for c in spending.top_categories] == [
            ("Food", Decimal("900000")),
            ("Transport", Decimal("400000")),
            ("Shopping", Decimal("200000")),
        ]
        assert spending.month_label == "March 2024"
        assert spending.balance == Decimal("1500000")

    def test_income_is_not_ranked(self):
        transactions = [
            make_transaction(9_000_000, TransactionType.INCOME, "Salary"),
            make_transaction(1000, EXPENSE, "Food"),
        ]
        assert [c.category for c in top_expense_categories(transactions)] == ["Food"]

    def test_ties_keep_first_seen_order(self):
        transactions = [
            make_transaction(100, EXPENSE, "Transport"),
            make_transaction(100, EXPENSE, "Food"),
            make_transaction(100, EXPENSE, "Other"),
            make_transaction(100, EXPENSE, "Shopping"),
        ]
        ranked = top_expense_categories(transactions)
        assert [c.category for c in ranked] == ["Transport", "Food", "Other"]

    def test_empty_month(self, utc, march_ledger):
        spending = build_spending_summary(march_ledger, date(2024, 5, 1), utc)
        assert spending.top_categories == []
        assert spending.expense == Decimal("0")


class TestLedgerReportCalendars:

    @pytest.mark.parametrize("ref", [date(2024, 3, 1), date(2024, 3, 31)])
    def test_month_calendar_has_42_cells(self, utc, march_ledger, ref):
        cells = LedgerReport(march_ledger, utc).month_calendar(ref, today=date(2024, 3, 12))
        assert len(cells) == 42
        by_day = {c.day: c for c in cells}
        assert by_day[date(2024, 3, 12)].is_today
        assert by_day[date(2024, 3, 12)].net == Decimal("-400000")
        assert not by_day[date(2024, 2, 25)].in_current_month

    def test_week_calendar(self, utc, march_ledger):
        cells = LedgerReport(march_ledger, utc).week_calendar(date(2024, 3, 13))
        assert [c.day for c in cells][0] == date(2024, 3, 10)
        assert sum(c.expense_count for c in cells) == 2  # 12th and 15th

    def test_report_is_a_snapshot(self, march_ledger):
        transactions = list(march_ledger)
        report = LedgerReport(transactions)
        transactions.append(make_transaction(10, created_at=at(2024, 3, 1)))
        assert len(report.transactions) == len(march_ledger)

    def test_month_label(self):
        assert month_label(date(2024, 12, 1)) == "December 2024"
