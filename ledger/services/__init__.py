"""Services package."""

from ledger.services.exchange_rate import ExchangeRateService, RateFetchError
from ledger.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
    InMemoryTransactionStore,
    MalformedRowError,
    NotFoundError,
    StoreError,
    SupabaseTransactionStore,
    TransactionStoreInterface,
    parse_transaction_row,
)

__all__ = [
    # Exchange rate
    "ExchangeRateService",
    "RateFetchError",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStore",
    "InMemoryTransactionStore",
    "MalformedRowError",
    "NotFoundError",
    "StoreError",
    "SupabaseTransactionStore",
    "TransactionStoreInterface",
    "parse_transaction_row",
]
