"""
Audit Models for Household Ledger

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of every insert and delete against the record store
2. Debugging information when an external service misbehaves
3. A history of preference and category changes

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Record store
    TRANSACTIONS_LOADED = "transactions_loaded"
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_DELETED = "transaction_deleted"
    STORE_ERROR = "store_error"
    MALFORMED_ROW_SKIPPED = "malformed_row_skipped"

    # Local validation
    VALIDATION_FAILED = "validation_failed"

    # Exchange rate
    RATE_FETCHED = "rate_fetched"
    RATE_FALLBACK_USED = "rate_fallback_used"

    # Narrative analysis
    ANALYSIS_REQUESTED = "analysis_requested"
    ANALYSIS_COMPLETED = "analysis_completed"
    ANALYSIS_FAILED = "analysis_failed"

    # Preferences
    CATEGORY_ADDED = "category_added"
    CATEGORY_REMOVED = "category_removed"
    PREFERENCES_SAVED = "preferences_saved"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'category')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity (store ids are integers, labels are strings)"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate the events of one user action"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_created(42, "expense", "12000", cid)
        event = AuditEventBuilder.store_error("insert", "timeout", cid)
    """

    @staticmethod
    def transactions_loaded(
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_LOADED,
            entity_type="transaction",
            correlation_id=correlation_id,
            description=f"Loaded {count} transactions from the record store",
            details={"count": count},
        )

    @staticmethod
    def transaction_created(
        transaction_id: int,
        transaction_type: str,
        amount: str,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            entity_type="transaction",
            entity_id=str(transaction_id),
            correlation_id=correlation_id,
            description=f"Transaction saved: {transaction_type} ₩{amount} ({category})",
            details={
                "type": transaction_type,
                "amount": amount,
                "category": category,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=str(transaction_id),
            correlation_id=correlation_id,
            description=f"Transaction {transaction_id} deleted",
            is_user_action=True,
        )

    @staticmethod
    def store_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_ERROR,
            severity=AuditSeverity.ERROR,
            entity_type="transaction",
            correlation_id=correlation_id,
            description=f"Record store {operation} failed",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def malformed_row_skipped(
        row_id: Optional[str],
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MALFORMED_ROW_SKIPPED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=row_id,
            correlation_id=correlation_id,
            description="Skipped a store row that failed schema validation",
            error_message=error_message,
        )

    @staticmethod
    def validation_failed(
        field: str,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Validation failed on {field}",
            error_message=message,
            details={"field": field},
            is_user_action=True,
        )

    @staticmethod
    def rate_fetched(rate: float) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATE_FETCHED,
            entity_type="exchange_rate",
            description=f"USD/KRW rate refreshed: {rate}",
            details={"rate": rate},
        )

    @staticmethod
    def rate_fallback_used(
        fallback_rate: float,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATE_FALLBACK_USED,
            severity=AuditSeverity.WARNING,
            entity_type="exchange_rate",
            description=f"Rate fetch failed, using fallback {fallback_rate}",
            error_message=error_message,
            details={"fallback_rate": fallback_rate},
        )

    @staticmethod
    def analysis_requested(
        month_label: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_REQUESTED,
            entity_type="analysis",
            correlation_id=correlation_id,
            description=f"Spending analysis requested for {month_label}",
            details={"month": month_label},
            is_user_action=True,
        )

    @staticmethod
    def analysis_completed(
        month_label: str,
        length: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_COMPLETED,
            entity_type="analysis",
            correlation_id=correlation_id,
            description=f"Spending analysis generated for {month_label}",
            details={"month": month_label, "characters": length},
        )

    @staticmethod
    def analysis_failed(
        month_label: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="analysis",
            correlation_id=correlation_id,
            description=f"Spending analysis failed for {month_label}",
            error_message=error_message,
            details={"month": month_label},
        )

    @staticmethod
    def category_changed(
        name: str,
        added: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.CATEGORY_ADDED if added
                else AuditEventType.CATEGORY_REMOVED
            ),
            entity_type="category",
            entity_id=name,
            description=f"Category {'added' if added else 'removed'}: {name}",
            is_user_action=True,
        )

    @staticmethod
    def preferences_saved(
        currency: str,
        category_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PREFERENCES_SAVED,
            entity_type="preferences",
            description="Display preferences saved",
            details={
                "currency": currency,
                "category_count": category_count,
            },
        )
