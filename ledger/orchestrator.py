"""
Main Orchestrator for Household Ledger

This module ties together all the components and defines the
end-to-end flows for:
1. Bookkeeping (load → add / delete → recompute views)
2. Monthly analysis (aggregate → Gemini commentary)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Validation runs before any network call
- The local list only changes after the record store confirms
- Every store call and analysis request is audited

Errors from the store and the analysis client are caught HERE, logged,
and converted to a user-facing message. The UI never sees a raw exception.
"""

from dataclasses import dataclass
from datetime import date, tzinfo
from enum import Enum
from typing import Optional
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

from ledger.agents import AnalysisClient, AnalysisError, create_analysis_client
from ledger.audit import AuditLogger, create_correlation_id
from ledger.charts import ChartRenderer, create_chart_renderer
from ledger.config import get_settings
from ledger.models.transaction import SpendingSummary, Transaction, TransactionType
from ledger.queries import LedgerReport, filter_by_selection, select_date
from ledger.services.exchange_rate import ExchangeRateService
from ledger.services.storage import (
    AuditStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
    InMemoryTransactionStore,
    NotFoundError,
    StoreError,
    SupabaseTransactionStore,
    TransactionStoreInterface,
)
from ledger.validation import TransactionValidator, ValidationError

logger = structlog.get_logger(__name__)

LOAD_FAILED_MESSAGE = "Could not load transactions. Please check the connection and reload."
SAVE_FAILED_MESSAGE = "Could not save the transaction. Please try again."
DELETE_FAILED_MESSAGE = "Could not delete the transaction. Please try again."


class LedgerFlow:
    """
    Orchestrates the bookkeeping flow.

    Holds the in-memory transaction list (newest first) and the calendar
    date selection. Every action returns `(result, ok, message)`.
    """

    def __init__(
        self,
        store: TransactionStoreInterface,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        tz: Optional[tzinfo] = None,
    ):
        self._store = store
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger
        self._tz = tz
        self._transactions: list[Transaction] = []
        self._selected_date: Optional[date] = None

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return tuple(self._transactions)

    @property
    def selected_date(self) -> Optional[date]:
        return self._selected_date

    @property
    def tz(self) -> Optional[tzinfo]:
        return self._tz

    async def _store_failed(
        self,
        operation: str,
        error: StoreError,
        correlation_id: UUID,
    ) -> None:
        logger.error("store_call_failed", operation=operation, error=str(error))
        if self._audit_logger:
            await self._audit_logger.log_store_error(
                operation=operation,
                error_message=str(error),
                correlation_id=correlation_id,
            )

    async def load(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[list[Transaction], bool, str]:
        """
        Replace the local list with the store's contents.

        On failure the previous list is kept.
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            rows = await self._store.list_transactions()
        except StoreError as e:
            await self._store_failed("list", e, correlation_id)
            return list(self._transactions), False, LOAD_FAILED_MESSAGE

        self._transactions = sorted(rows, key=lambda t: t.created_at, reverse=True)

        if self._audit_logger:
            for skipped in self._store.skipped_rows:
                await self._audit_logger.log_malformed_row_skipped(
                    skipped.row_id, str(skipped), correlation_id
                )
            await self._audit_logger.log_transactions_loaded(
                len(self._transactions), correlation_id
            )
        return list(self._transactions), True, f"Loaded {len(self._transactions)} transactions."

    async def add_transaction(
        self,
        raw_amount,
        description: Optional[str],
        category: str,
        transaction_type: TransactionType,
        categories: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Transaction], bool, str]:
        """
        Validate the entry form, insert it and prepend the stored row.

        FLOW:
        1. Validate locally (no network call on failure)
        2. Insert into the record store
        3. Prepend the row the store returned
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            draft = self._validator.build_draft(
                raw_amount, description, category, transaction_type, categories
            )
        except ValidationError as e:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    e.field, str(e), correlation_id
                )
            return None, False, str(e)

        try:
            created = await self._store.insert_transaction(draft)
        except StoreError as e:
            await self._store_failed("insert", e, correlation_id)
            return None, False, SAVE_FAILED_MESSAGE

        self._transactions.insert(0, created)

        if self._audit_logger:
            await self._audit_logger.log_transaction_created(
                transaction_id=created.id,
                transaction_type=created.type.value,
                amount=str(created.amount),
                category=created.category,
                correlation_id=correlation_id,
            )
        return created, True, "Transaction saved."

    async def delete_transaction(
        self,
        transaction_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Transaction], bool, str]:
        """
        Delete by id. The local row is removed only after the store confirms.

        The caller is responsible for asking the user to confirm first.
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            await self._store.delete_transaction(transaction_id)
        except NotFoundError as e:
            await self._store_failed("delete", e, correlation_id)
            return None, False, "That transaction no longer exists. Reload to refresh the list."
        except StoreError as e:
            await self._store_failed("delete", e, correlation_id)
            return None, False, DELETE_FAILED_MESSAGE

        removed = next((t for t in self._transactions if t.id == transaction_id), None)
        self._transactions = [t for t in self._transactions if t.id != transaction_id]

        if self._audit_logger:
            await self._audit_logger.log_transaction_deleted(transaction_id, correlation_id)
        return removed, True, "Transaction deleted."

    def select_date(self, day: date) -> Optional[date]:
        """Clicking the selected day again clears the selection."""
        self._selected_date = select_date(self._selected_date, day)
        return self._selected_date

    def clear_selection(self) -> None:
        self._selected_date = None

    def visible_transactions(self) -> list[Transaction]:
        """The list view: all transactions, or only the selected day's."""
        return filter_by_selection(self._transactions, self._selected_date, self._tz)

    def report(self) -> LedgerReport:
        return LedgerReport(self._transactions, self._tz)


class AnalysisState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    DONE = "done"
    ERROR = "error"


class AnalysisPanel:
    """
    One analysis view: at most one request in flight.

    While a request is pending, further requests are refused instead of
    queued. Failures become an inline message; nothing is retried.
    """

    BUSY_MESSAGE = "An analysis is already in progress."
    CRASH_MESSAGE = "The analysis could not be completed. Please try again."

    def __init__(
        self,
        client: AnalysisClient,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._client = client
        self._audit_logger = audit_logger
        self.state = AnalysisState.IDLE
        self.text: Optional[str] = None
        self.error: Optional[str] = None

    @property
    def is_busy(self) -> bool:
        return self.state == AnalysisState.LOADING

    def reset(self) -> None:
        self.state = AnalysisState.IDLE
        self.text = None
        self.error = None

    async def request(
        self,
        summary: SpendingSummary,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[str], bool, str]:
        if self.is_busy:
            return None, False, self.BUSY_MESSAGE

        correlation_id = correlation_id or create_correlation_id()
        self.state = AnalysisState.LOADING
        self.text = None
        self.error = None

        if self._audit_logger:
            await self._audit_logger.log_analysis_requested(summary.month_label, correlation_id)

        try:
            text = await self._client.analyze(summary)
        except AnalysisError as e:
            return await self._failed(summary, str(e), str(e), correlation_id)
        except Exception as e:
            logger.error("analysis_client_crashed", error=str(e))
            return await self._failed(summary, self.CRASH_MESSAGE, str(e), correlation_id)
        finally:
            # Cancellation must not leave the panel stuck in LOADING
            if self.state == AnalysisState.LOADING:
                self.state = AnalysisState.IDLE

        self.state = AnalysisState.DONE
        self.text = text
        if self._audit_logger:
            await self._audit_logger.log_analysis_completed(
                summary.month_label, len(text), correlation_id
            )
        return text, True, "Analysis ready."

    async def _failed(
        self,
        summary: SpendingSummary,
        message: str,
        error_message: str,
        correlation_id: UUID,
    ) -> tuple[None, bool, str]:
        self.state = AnalysisState.ERROR
        self.error = message
        if self._audit_logger:
            await self._audit_logger.log_analysis_failed(
                summary.month_label, error_message, correlation_id
            )
        return None, False, message


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """Map LEDGER_TIMEZONE to a tzinfo; None means the host's local zone."""
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("unknown_timezone", timezone=name)
        return None


@dataclass
class AppComponents:
    ledger_flow: LedgerFlow
    analysis_panel: AnalysisPanel
    chart_renderer: ChartRenderer
    rate_service: ExchangeRateService
    audit_logger: AuditLogger
    storage_backend: str


def _create_store(
    backend: str,
) -> tuple[TransactionStoreInterface, Optional[AuditStorageInterface]]:
    """Build the configured record store (and the Sheets audit tab when available)."""
    if backend == "supabase":
        return SupabaseTransactionStore(), None
    if backend == "google_sheets":
        sheets_client = GoogleSheetsClient()
        return (
            GoogleSheetsTransactionStore(sheets_client),
            GoogleSheetsAuditStorage(sheets_client),
        )
    return InMemoryTransactionStore(), None


def create_app_components(
    use_storage: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to connect the configured record store.
                    Set to False to run against the in-memory store.
    """
    settings = get_settings()
    app_settings = settings.app

    backend = app_settings.storage_backend if use_storage else "memory"
    audit_storage = None
    try:
        store, audit_storage = _create_store(backend)
    except Exception as e:
        # Store not configured - continue with a session-only ledger
        logger.warning("storage_not_configured", backend=backend, error=str(e))
        backend = "memory"
        store = InMemoryTransactionStore()

    audit_logger = AuditLogger(audit_storage)

    ledger_flow = LedgerFlow(
        store=store,
        validator=TransactionValidator(app_settings.max_amount),
        audit_logger=audit_logger,
        tz=resolve_timezone(app_settings.timezone),
    )

    analysis_panel = AnalysisPanel(
        client=create_analysis_client(settings.gemini),
        audit_logger=audit_logger,
    )

    return AppComponents(
        ledger_flow=ledger_flow,
        analysis_panel=analysis_panel,
        chart_renderer=create_chart_renderer(app_settings.charts_enabled),
        rate_service=ExchangeRateService(settings.exchange_rate, audit_logger=audit_logger),
        audit_logger=audit_logger,
        storage_backend=backend,
    )
