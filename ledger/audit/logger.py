"""
Audit Logger

DESIGN DECISION: Every change to the ledger is logged.
This provides:
1. A trail of every insert and delete sent to the record store
2. Visibility into failing external services (store, rate feed, Gemini)
3. A history of category and preference changes

The audit logger:
- Is async so it can share the event loop with the store calls
- Never raises (a broken audit sink must not break bookkeeping)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (always)
    2. An AuditStorageInterface, e.g. the Google Sheets audit tab (optional)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        self._storage = storage
        self._logger = structlog.get_logger()

    @property
    def has_storage(self) -> bool:
        return self._storage is not None

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the storage write succeeded (or no storage is configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transactions_loaded(
        self,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transactions_loaded(count, correlation_id))

    async def log_transaction_created(
        self,
        transaction_id: int,
        transaction_type: str,
        amount: str,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a successful insert."""
        event = AuditEventBuilder.transaction_created(
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            category=category,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_deleted(
        self,
        transaction_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(transaction_id, correlation_id))

    async def log_store_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed record store call."""
        event = AuditEventBuilder.store_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_malformed_row_skipped(
        self,
        row_id,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.malformed_row_skipped(
            str(row_id) if row_id is not None else None,
            error_message,
            correlation_id,
        ))

    async def log_validation_failed(
        self,
        field: str,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(field, message, correlation_id))

    async def log_rate_refresh(
        self,
        rate: float,
        is_fallback: bool,
        error_message: Optional[str] = None,
    ) -> None:
        """Log the outcome of an exchange rate refresh."""
        if is_fallback:
            event = AuditEventBuilder.rate_fallback_used(rate, error_message or "unknown")
        else:
            event = AuditEventBuilder.rate_fetched(rate)
        await self.log(event)

    async def log_analysis_requested(
        self,
        month_label: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.analysis_requested(month_label, correlation_id))

    async def log_analysis_completed(
        self,
        month_label: str,
        length: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.analysis_completed(month_label, length, correlation_id))

    async def log_analysis_failed(
        self,
        month_label: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.analysis_failed(month_label, error_message, correlation_id))

    async def log_category_changed(self, name: str, added: bool) -> None:
        await self.log(AuditEventBuilder.category_changed(name, added))

    async def log_preferences_saved(self, currency: str, category_count: int) -> None:
        await self.log(AuditEventBuilder.preferences_saved(currency, category_count))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g. submitting the entry form)
    and pass it through all subsequent operations.
    """
    return uuid4()
