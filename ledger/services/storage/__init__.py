"""
Storage Services Package

Provides the abstract record store interface and its implementations:
Supabase (default), Google Sheets, and an in-memory store.
"""

from ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    MalformedRowError,
    NotFoundError,
    StoreError,
    TransactionStoreInterface,
    parse_transaction_row,
)
from ledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
)
from ledger.services.storage.memory import InMemoryTransactionStore
from ledger.services.storage.supabase import SupabaseTransactionStore

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "TransactionStoreInterface",
    "parse_transaction_row",
    # Exceptions
    "ConnectionError",
    "MalformedRowError",
    "NotFoundError",
    "StoreError",
    # Implementations
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStore",
    "InMemoryTransactionStore",
    "SupabaseTransactionStore",
]
