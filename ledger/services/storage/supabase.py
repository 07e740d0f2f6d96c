"""
Supabase Storage Implementation

DESIGN DECISION: Supabase is the primary backend because:
1. A hosted Postgres table with a BIGSERIAL id and a DEFAULT NOW()
   created_at gives us store-assigned ids and timestamps for free
2. PostgREST exposes the table over plain HTTPS - no driver needed
3. Single-row INSERT/DELETE are atomic on the server

We talk to PostgREST directly with httpx rather than through an SDK;
the three calls we need are simple REST requests.

IMPORTANT: Calls are NOT retried. Each user action issues exactly one
request and a failure is reported back to the user as-is.
"""

from typing import Any, Optional

import httpx
import structlog

from ledger.config import get_settings
from ledger.config.settings import SupabaseSettings
from ledger.models.transaction import Transaction, TransactionDraft
from ledger.services.storage.interface import (
    ConnectionError,
    MalformedRowError,
    NotFoundError,
    StoreError,
    TransactionStoreInterface,
    parse_transaction_row,
)

logger = structlog.get_logger(__name__)


class SupabaseTransactionStore(TransactionStoreInterface):
    """
    PostgREST implementation of the transaction store.

    Table layout is in supabase-setup.sql at the repository root.
    """

    def __init__(
        self,
        settings: Optional[SupabaseSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings or get_settings().supabase
        self._client = client

    @property
    def _endpoint(self) -> str:
        return f"{self._settings.url}/rest/v1/{self._settings.table_name}"

    def _headers(self, prefer: Optional[str] = None) -> dict[str, str]:
        headers = {
            "apikey": self._settings.anon_key,
            "Authorization": f"Bearer {self._settings.anon_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        """HTTP client (lazy initialization)"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout_seconds)
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        operation: str,
        params: Optional[dict[str, str]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> Any:
        client = await self._get_client()
        try:
            response = await client.request(
                method,
                self._endpoint,
                params=params,
                json=json,
                headers=self._headers(prefer),
            )
        except httpx.TimeoutException as e:
            raise ConnectionError(f"Record store {operation} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ConnectionError(f"Could not reach record store: {e}") from e

        if response.status_code in (401, 403):
            raise ConnectionError(
                f"Record store rejected credentials ({response.status_code})"
            )
        if response.is_error:
            raise StoreError(
                f"Record store {operation} failed ({response.status_code}): "
                f"{response.text[:200]}"
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise StoreError(f"Record store returned invalid JSON for {operation}") from e

    async def list_transactions(self) -> list[Transaction]:
        """All rows, newest first, ordered by the server."""
        rows = await self._request(
            "GET",
            "list",
            params={"select": "*", "order": "created_at.desc"},
        )
        if not isinstance(rows, list):
            raise StoreError("Record store list returned an unexpected payload")

        transactions = []
        skipped = []
        for row in rows:
            try:
                transactions.append(parse_transaction_row(row))
            except MalformedRowError as e:
                logger.warning("malformed_row_skipped", row_id=e.row_id, error=str(e))
                skipped.append(e)
        self.skipped_rows = tuple(skipped)
        return transactions

    async def insert_transaction(self, draft: TransactionDraft) -> Transaction:
        payload = {
            "amount": str(draft.amount),
            "description": draft.description,
            "category": draft.category,
            "type": draft.type.value,
        }
        rows = await self._request(
            "POST",
            "insert",
            json=[payload],
            prefer="return=representation",
        )
        if not rows:
            raise StoreError("Record store insert returned no row")

        row = rows[0] if isinstance(rows, list) else rows
        try:
            return parse_transaction_row(row)
        except MalformedRowError as e:
            raise StoreError(f"Record store returned an invalid row: {e}") from e

    async def delete_transaction(self, transaction_id: int) -> bool:
        rows = await self._request(
            "DELETE",
            "delete",
            params={"id": f"eq.{int(transaction_id)}"},
            prefer="return=representation",
        )
        # PostgREST answers 200 with an empty list when nothing matched
        if not rows:
            raise NotFoundError(f"Transaction not found: {transaction_id}")
        return True
