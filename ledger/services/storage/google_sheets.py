"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as an alternative backend because:
1. Non-technical users can view their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Sheets has no auto-increment, so the store assigns ids as max(id) + 1
- No transactions (single append_row / delete_rows calls are our atomic unit)
- Limited query capabilities (we sort in Python)

The implementation follows the abstract interface, so flows never know
which backend they are talking to.
"""

from datetime import datetime, timezone
from typing import Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from ledger.config import get_settings
from ledger.config.settings import GoogleSheetsSettings
from ledger.models.audit import AuditEvent
from ledger.models.transaction import Transaction, TransactionDraft
from ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    MalformedRowError,
    NotFoundError,
    StoreError,
    TransactionStoreInterface,
    parse_transaction_row,
)

logger = structlog.get_logger(__name__)


# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "amount",
    "description",
    "category",
    "type",
    "created_at",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for the connection.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name,
            TRANSACTION_COLUMNS,
            rows=1000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


def _row_to_mapping(row: list) -> dict:
    """Zip a sheet row with the column names; missing trailing cells become None."""
    padded = list(row) + [None] * (len(TRANSACTION_COLUMNS) - len(row))
    return {
        column: (value if value != "" else None)
        for column, value in zip(TRANSACTION_COLUMNS, padded)
    }


class GoogleSheetsTransactionStore(TransactionStoreInterface):
    """
    Google Sheets implementation of the transaction store.

    One transaction per row. The sheet itself cannot assign ids or
    timestamps, so this class plays the role of the database defaults.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _transaction_to_row(self, transaction: Transaction) -> list:
        return [
            str(transaction.id),
            str(transaction.amount),
            transaction.description,
            transaction.category,
            transaction.type.value,
            transaction.created_at.isoformat(),
        ]

    def _data_rows(self, sheet: gspread.Worksheet) -> list[list]:
        # Skip header
        return [row for row in sheet.get_all_values()[1:] if row and row[0]]

    async def list_transactions(self) -> list[Transaction]:
        try:
            sheet = self._client.get_transactions_sheet()
            rows = self._data_rows(sheet)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Failed to list transactions: {e}")

        transactions = []
        skipped = []
        for row in rows:
            try:
                transactions.append(parse_transaction_row(_row_to_mapping(row)))
            except MalformedRowError as e:
                logger.warning("malformed_row_skipped", row_id=e.row_id, error=str(e))
                skipped.append(e)
        self.skipped_rows = tuple(skipped)

        # Sort by creation time descending (newest first)
        transactions.sort(key=lambda t: t.created_at, reverse=True)
        return transactions

    async def insert_transaction(self, draft: TransactionDraft) -> Transaction:
        try:
            sheet = self._client.get_transactions_sheet()
            existing_ids = []
            for row in self._data_rows(sheet):
                try:
                    existing_ids.append(int(row[0]))
                except ValueError:
                    continue

            transaction = Transaction(
                id=max(existing_ids, default=0) + 1,
                created_at=datetime.now(timezone.utc),
                **draft.model_dump(),
            )
            sheet.append_row(self._transaction_to_row(transaction), value_input_option="RAW")
            return transaction
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Failed to save transaction: {e}")

    async def delete_transaction(self, transaction_id: int) -> bool:
        try:
            sheet = self._client.get_transactions_sheet()
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is the header
                if row and row[0] == str(transaction_id):
                    sheet.delete_rows(idx)
                    return True
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Failed to delete transaction: {e}")

        raise NotFoundError(f"Transaction not found: {transaction_id}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning("audit_append_failed", error=str(e), event_id=str(event.event_id))
            return False
