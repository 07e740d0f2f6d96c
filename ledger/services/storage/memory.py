"""
In-memory record store.

Used by the test suite and when the app runs without a configured
backend (`LEDGER_STORAGE_BACKEND=memory`). Nothing survives a restart.
"""

from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from ledger.models.transaction import Transaction, TransactionDraft
from ledger.services.storage.interface import (
    NotFoundError,
    TransactionStoreInterface,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryTransactionStore(TransactionStoreInterface):
    """Dict-backed store that assigns ids the way a BIGSERIAL column would."""

    def __init__(
        self,
        transactions: Optional[Iterable[Transaction]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._rows: dict[int, Transaction] = {}
        for t in transactions or ():
            self._rows[t.id] = t
        self._next_id = max(self._rows, default=0) + 1
        self._clock = clock

    async def list_transactions(self) -> list[Transaction]:
        return sorted(self._rows.values(), key=lambda t: t.created_at, reverse=True)

    async def insert_transaction(self, draft: TransactionDraft) -> Transaction:
        transaction = Transaction(
            id=self._next_id,
            created_at=self._clock(),
            **draft.model_dump(),
        )
        self._rows[transaction.id] = transaction
        self._next_id += 1
        return transaction

    async def delete_transaction(self, transaction_id: int) -> bool:
        if transaction_id not in self._rows:
            raise NotFoundError(f"Transaction not found: {transaction_id}")
        del self._rows[transaction_id]
        return True
