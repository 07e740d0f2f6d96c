"""
Integration tests for the bookkeeping and analysis flows.

The in-memory store stands in for Supabase; failing stores are mocks.
"""

import asyncio
from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from conftest import at, make_transaction

from ledger.agents import AnalysisClient, AnalysisError
from ledger.audit import AuditLogger
from ledger.models.audit import AuditEventType
from ledger.models.transaction import SpendingSummary, TransactionType
from ledger.orchestrator import (
    AnalysisPanel,
    AnalysisState,
    LedgerFlow,
    create_app_components,
    resolve_timezone,
)
from ledger.services.storage import (
    ConnectionError,
    InMemoryTransactionStore,
    MalformedRowError,
    NotFoundError,
    TransactionStoreInterface,
)
from ledger.validation import TransactionValidator

CATEGORIES = ["Food", "Transport", "Salary"]


class RecordingAuditStorage:
    """Collects events instead of writing them anywhere."""

    def __init__(self):
        self.events = []

    async def append_event(self, event):
        self.events.append(event)
        return True

    def types(self):
        return [e.event_type for e in self.events]


@pytest.fixture
def audit_storage():
    return RecordingAuditStorage()


@pytest.fixture
def flow(audit_storage):
    store = InMemoryTransactionStore(clock=lambda: at(2024, 3, 10))
    return LedgerFlow(
        store=store,
        validator=TransactionValidator(max_amount=1_000_000_000),
        audit_logger=AuditLogger(audit_storage),
        tz=timezone.utc,
    )


def failing_store(error):
    store = MagicMock(spec=TransactionStoreInterface)
    store.list_transactions = AsyncMock(side_effect=error)
    store.insert_transaction = AsyncMock(side_effect=error)
    store.delete_transaction = AsyncMock(side_effect=error)
    return store


class TestLedgerFlow:

    @pytest.mark.asyncio
    async def test_load_sorts_newest_first(self, audit_storage):
        old = make_transaction(100, created_at=at(2024, 3, 1), transaction_id=1)
        new = make_transaction(200, created_at=at(2024, 3, 5), transaction_id=2)
        flow = LedgerFlow(
            InMemoryTransactionStore([old, new]),
            TransactionValidator(max_amount=1000),
            AuditLogger(audit_storage),
        )

        transactions, ok, _ = await flow.load()

        assert ok
        assert transactions == [new, old]
        assert audit_storage.types() == [AuditEventType.TRANSACTIONS_LOADED]

    @pytest.mark.asyncio
    async def test_load_audits_skipped_rows(self, audit_storage):
        store = InMemoryTransactionStore([make_transaction(100, transaction_id=1)])
        store.skipped_rows = (MalformedRowError({"id": 7}, "Invalid transaction row (amount)"),)
        flow = LedgerFlow(store, audit_logger=AuditLogger(audit_storage))

        transactions, ok, _ = await flow.load()

        assert ok
        assert len(transactions) == 1
        assert audit_storage.types() == [
            AuditEventType.MALFORMED_ROW_SKIPPED,
            AuditEventType.TRANSACTIONS_LOADED,
        ]
        assert audit_storage.events[0].entity_id == "7"

    @pytest.mark.asyncio
    async def test_add_prepends_stored_row(self, flow, audit_storage):
        await flow.add_transaction("5000", "Bus", "Transport", TransactionType.EXPENSE, CATEGORIES)
        created, ok, message = await flow.add_transaction(
            "12345", "", "Food", TransactionType.EXPENSE, CATEGORIES
        )

        assert ok
        assert message == "Transaction saved."
        assert created.id == 2
        assert created.amount == Decimal("12350")
        assert created.description == "No description"
        assert flow.transactions[0] == created
        assert len(flow.transactions) == 2
        assert audit_storage.types().count(AuditEventType.TRANSACTION_CREATED) == 2

    @pytest.mark.asyncio
    async def test_invalid_amount_never_reaches_the_store(self, audit_storage):
        store = failing_store(AssertionError("store must not be called"))
        flow = LedgerFlow(store, TransactionValidator(max_amount=1000), AuditLogger(audit_storage))

        created, ok, message = await flow.add_transaction(
            "-5", "x", "Food", TransactionType.EXPENSE, CATEGORIES
        )

        assert created is None
        assert not ok
        assert message == "Please enter a valid amount."
        store.insert_transaction.assert_not_called()
        assert audit_storage.types() == [AuditEventType.VALIDATION_FAILED]

    @pytest.mark.asyncio
    async def test_failed_insert_leaves_list_unchanged(self, audit_storage):
        existing = make_transaction(100, transaction_id=1)
        store = failing_store(ConnectionError("timeout"))
        flow = LedgerFlow(store, TransactionValidator(max_amount=1000), AuditLogger(audit_storage))
        flow._transactions = [existing]

        created, ok, message = await flow.add_transaction(
            "500", "x", "Food", TransactionType.EXPENSE, CATEGORIES
        )

        assert not ok
        assert created is None
        assert "try again" in message
        assert flow.transactions == (existing,)
        assert audit_storage.types() == [AuditEventType.STORE_ERROR]

    @pytest.mark.asyncio
    async def test_failed_load_keeps_previous_list(self):
        existing = make_transaction(100, transaction_id=1)
        flow = LedgerFlow(failing_store(ConnectionError("down")), TransactionValidator(max_amount=1000))
        flow._transactions = [existing]

        transactions, ok, _ = await flow.load()

        assert not ok
        assert transactions == [existing]

    @pytest.mark.asyncio
    async def test_delete_removes_after_confirmation(self, flow, audit_storage):
        created, _, _ = await flow.add_transaction(
            "500", "x", "Food", TransactionType.EXPENSE, CATEGORIES
        )

        removed, ok, _ = await flow.delete_transaction(created.id)

        assert ok
        assert removed == created
        assert flow.transactions == ()
        assert AuditEventType.TRANSACTION_DELETED in audit_storage.types()

    @pytest.mark.asyncio
    async def test_failed_delete_keeps_row(self):
        existing = make_transaction(100, transaction_id=1)
        flow = LedgerFlow(failing_store(ConnectionError("down")), TransactionValidator(max_amount=1000))
        flow._transactions = [existing]

        removed, ok, message = await flow.delete_transaction(1)

        assert not ok
        assert removed is None
        assert flow.transactions == (existing,)
        assert "try again" in message

    @pytest.mark.asyncio
    async def test_delete_of_missing_row(self, flow):
        removed, ok, message = await flow.delete_transaction(404)
        assert not ok
        assert "no longer exists" in message

    @pytest.mark.asyncio
    async def test_date_selection_filters_the_list(self, audit_storage):
        on_5th = make_transaction(100, created_at=at(2024, 3, 5), transaction_id=1)
        on_6th = make_transaction(200, created_at=at(2024, 3, 6), transaction_id=2)
        flow = LedgerFlow(
            InMemoryTransactionStore([on_5th, on_6th]),
            TransactionValidator(max_amount=1000),
            tz=timezone.utc,
        )
        await flow.load()

        assert flow.select_date(date(2024, 3, 5)) == date(2024, 3, 5)
        assert flow.visible_transactions() == [on_5th]

        assert flow.select_date(date(2024, 3, 5)) is None
        assert flow.visible_transactions() == [on_6th, on_5th]

    @pytest.mark.asyncio
    async def test_report_reflects_confirmed_changes(self, flow):
        await flow.add_transaction("3000000", "pay", "Salary", TransactionType.INCOME, CATEGORIES)
        await flow.add_transaction("12000", "lunch", "Food", TransactionType.EXPENSE, CATEGORIES)

        totals = flow.report().summary()

        assert totals.income == Decimal("3000000")
        assert totals.expense == Decimal("12000")
        assert totals.balance == Decimal("2988000")


@pytest.fixture
def spending():
    return SpendingSummary(
        income=Decimal("100"),
        expense=Decimal("50"),
        balance=Decimal("50"),
        month_label="March 2024",
    )


class TestAnalysisPanel:

    @pytest.mark.asyncio
    async def test_success(self, spending, audit_storage):
        client = MagicMock(spec=AnalysisClient)
        client.analyze = AsyncMock(return_value="Good job.")
        panel = AnalysisPanel(client, AuditLogger(audit_storage))

        text, ok, _ = await panel.request(spending)

        assert ok
        assert text == "Good job."
        assert panel.state == AnalysisState.DONE
        assert audit_storage.types() == [
            AuditEventType.ANALYSIS_REQUESTED,
            AuditEventType.ANALYSIS_COMPLETED,
        ]

    @pytest.mark.asyncio
    async def test_failure_is_an_inline_message(self, spending):
        client = MagicMock(spec=AnalysisClient)
        client.analyze = AsyncMock(side_effect=AnalysisError("The AI analysis failed."))
        panel = AnalysisPanel(client)

        text, ok, message = await panel.request(spending)

        assert not ok
        assert text is None
        assert message == "The AI analysis failed."
        assert panel.state == AnalysisState.ERROR
        assert panel.error == message

    @pytest.mark.asyncio
    async def test_unexpected_client_error_does_not_leave_panel_busy(self, spending, audit_storage):
        client = MagicMock(spec=AnalysisClient)
        client.analyze = AsyncMock(side_effect=[RuntimeError("boom"), "Second try."])
        panel = AnalysisPanel(client, AuditLogger(audit_storage))

        text, ok, message = await panel.request(spending)

        assert not ok
        assert message == AnalysisPanel.CRASH_MESSAGE
        assert panel.state == AnalysisState.ERROR
        assert not panel.is_busy
        assert audit_storage.types()[-1] == AuditEventType.ANALYSIS_FAILED

        text, ok, _ = await panel.request(spending)
        assert ok
        assert text == "Second try."

    @pytest.mark.asyncio
    async def test_cancelled_request_releases_the_panel(self, spending):
        client = MagicMock(spec=AnalysisClient)
        client.analyze = AsyncMock(side_effect=asyncio.CancelledError())
        panel = AnalysisPanel(client)

        with pytest.raises(asyncio.CancelledError):
            await panel.request(spending)

        assert panel.state == AnalysisState.IDLE

    @pytest.mark.asyncio
    async def test_rejects_request_while_loading(self, spending):
        client = MagicMock(spec=AnalysisClient)
        client.analyze = AsyncMock(return_value="unused")
        panel = AnalysisPanel(client)
        panel.state = AnalysisState.LOADING

        text, ok, message = await panel.request(spending)

        assert not ok
        assert message == AnalysisPanel.BUSY_MESSAGE
        client.analyze.assert_not_called()

    def test_reset(self):
        panel = AnalysisPanel(MagicMock(spec=AnalysisClient))
        panel.state = AnalysisState.ERROR
        panel.error = "x"
        panel.reset()
        assert panel.state == AnalysisState.IDLE
        assert panel.error is None


class TestAuditLogger:

    @pytest.mark.asyncio
    async def test_storage_failure_is_swallowed(self):
        storage = MagicMock()
        storage.append_event = AsyncMock(side_effect=RuntimeError("sheet gone"))
        logger = AuditLogger(storage)

        await logger.log_store_error("insert", "timeout")

        storage.append_event.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_local_only_logging(self):
        logger = AuditLogger()
        assert not logger.has_storage
        await logger.log_rate_refresh(1300.0, is_fallback=True, error_message="timeout")


class TestComposition:

    def test_resolve_timezone(self):
        assert resolve_timezone(None) is None
        assert resolve_timezone("Not/AZone") is None

    def test_memory_components(self, monkeypatch):
        monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "memory")
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.setenv("LEDGER_CHARTS_ENABLED", "false")

        components = create_app_components(use_storage=False)

        assert components.storage_backend == "memory"
        assert components.chart_renderer.monthly_comparison(None, None, str) is None

    def test_unconfigured_supabase_falls_back_to_memory(self, monkeypatch):
        monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "supabase")
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.delenv("SUPABASE_ANON_KEY", raising=False)

        with patch("ledger.orchestrator.SupabaseTransactionStore", side_effect=ValueError("no url")):
            components = create_app_components(use_storage=True)

        assert components.storage_backend == "memory"
