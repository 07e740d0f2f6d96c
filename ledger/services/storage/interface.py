"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the record store.
This allows us to:
1. Swap Supabase for Google Sheets (or anything else) without touching flows
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally tiny - transactions are immutable, so the
store only needs list, insert and delete.

Rows coming back from any backend are untyped. `parse_transaction_row`
is the single place where they become `Transaction` objects; a row that
does not fit the schema is rejected, never patched up.
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping

from pydantic import ValidationError as PydanticValidationError

from ledger.models.audit import AuditEvent
from ledger.models.transaction import Transaction, TransactionDraft


class TransactionStoreInterface(ABC):
    """
    Abstract interface for transaction storage operations.

    Any storage implementation (Supabase, Google Sheets, etc.)
    must implement these methods.
    """

    # Rows dropped by the most recent list_transactions() call
    skipped_rows: tuple = ()

    @abstractmethod
    async def list_transactions(self) -> list[Transaction]:
        """
        List every transaction, newest first (created_at descending).

        Malformed rows are skipped, not returned; they are exposed as
        `skipped_rows` until the next call.

        Raises:
            StoreError: On connectivity or auth failure
        """
        pass

    @abstractmethod
    async def insert_transaction(self, draft: TransactionDraft) -> Transaction:
        """
        Insert one row.

        The store assigns `id` and `created_at` and returns the stored row.

        Raises:
            StoreError: If the insert fails
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: int) -> bool:
        """
        Delete a transaction by id.

        Returns:
            True if deleted

        Raises:
            NotFoundError: If no row has this id
            StoreError: On connectivity failure
        """
        pass

    async def close(self) -> None:
        """Release network resources, if any."""
        return None


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass



class StoreError(Exception):
    """Base exception for record store operations."""
    pass


class NotFoundError(StoreError):
    """Entity not found in storage."""
    pass


class ConnectionError(StoreError):
    """Could not connect to storage backend."""
    pass


class MalformedRowError(StoreError):
    """A stored row does not match the Transaction schema."""

    def __init__(self, row: Mapping[str, Any], message: str):
        self.row_id = row.get("id") if isinstance(row, Mapping) else None
        super().__init__(message)


def parse_transaction_row(row: Mapping[str, Any]) -> Transaction:
    """
    Convert one raw store row into a Transaction.

    Raises:
        MalformedRowError: If any field is missing or violates the schema
    """
    if not isinstance(row, Mapping):
        raise MalformedRowError({}, f"Expected a mapping, got {type(row).__name__}")

    # Null columns fall back to model defaults (e.g. the description placeholder)
    data = {key: value for key, value in row.items() if value is not None}
    try:
        return Transaction.model_validate(data)
    except PydanticValidationError as e:
        fields = ", ".join(
            ".".join(str(part) for part in err["loc"]) for err in e.errors()
        )
        raise MalformedRowError(row, f"Invalid transaction row ({fields})") from e
