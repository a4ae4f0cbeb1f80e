"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the hosted storage backend because:
1. Users can view and export their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for a household ledger)
- No transactions (a batch insert is a single append_rows call)
- Limited query capabilities (we filter in Python)

Categories are stored as plain cells, so an empty cell reads back as
uncategorized (None).
"""

import json
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from finance_manager.config import GoogleSheetsSettings, get_settings
from finance_manager.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finance_manager.models.transaction import (
    NewTransaction,
    Transaction,
    TransactionId,
    most_recent_first,
)
from finance_manager.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    StorageError,
    TransactionStoreInterface,
)


logger = structlog.get_logger(__name__)

# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "group_key",
    "date",
    "description",
    "category",
    "amount",
    "is_paid",
    "created_at",
]
IS_PAID_COLUMN = TRANSACTION_COLUMNS.index("is_paid") + 1

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

# Only transient API errors are retried
retry_transient = retry(
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and worksheet bootstrapping.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry_transient
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
            except gspread.exceptions.APIError:
                raise
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
            sheet = spreadsheet.add_worksheet(title=title, rows=rows, cols=len(columns))
            sheet.append_row(columns)
        return sheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS, rows=1000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsTransactionStore(TransactionStoreInterface):
    """
    Google Sheets implementation of the transaction store.

    One transaction per row. Ids are UUID strings assigned on insert.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _transaction_to_row(self, transaction: Transaction) -> list:
        """Convert a Transaction to a spreadsheet row."""
        return [
            str(transaction.id),
            transaction.group_key,
            transaction.date.isoformat() if transaction.date else "",
            transaction.description,
            transaction.category or "",
            str(transaction.amount),
            "TRUE" if transaction.is_paid else "FALSE",
            datetime.now(timezone.utc).isoformat(),
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        """Convert a spreadsheet row to a Transaction."""
        raw_date = _safe_get(row, 2)
        return Transaction(
            id=_safe_get(row, 0),
            group_key=_safe_get(row, 1),
            date=date.fromisoformat(raw_date) if raw_date else None,
            description=_safe_get(row, 3),
            category=_safe_get(row, 4) or None,
            amount=Decimal(_safe_get(row, 5)),
            is_paid=_safe_get(row, 6).upper() == "TRUE",
        )

    @retry_transient
    def _read_rows(self) -> list[list]:
        """All data rows (header excluded)."""
        return self._client.get_transactions_sheet().get_all_values()[1:]

    @retry_transient
    def _append_rows(self, rows: list[list]) -> None:
        sheet = self._client.get_transactions_sheet()
        sheet.append_rows(rows, value_input_option="RAW")

    def _find_row_number(self, all_rows: list[list], transaction_id: TransactionId) -> Optional[int]:
        """1-based sheet row number for an id (row 1 is the header)."""
        for idx, row in enumerate(all_rows, start=2):
            if row and row[0] == str(transaction_id):
                return idx
        return None

    async def _read_group(self, group_key: str) -> list[Transaction]:
        """List a group's transactions, newest first. Read errors propagate."""
        all_rows = self._read_rows()

        transactions = []
        for row in all_rows:
            if not row or not row[0] or _safe_get(row, 1) != group_key:
                continue
            try:
                transactions.append(self._row_to_transaction(row))
            except (ValueError, ArithmeticError) as e:
                logger.warning("malformed_transaction_row", row_id=row[0], error=str(e))

        return list(most_recent_first(transactions))

    async def insert_one(self, transaction: NewTransaction) -> Optional[Transaction]:
        stored = await self.insert_many([transaction])
        return stored[0] if stored else None

    async def insert_many(
        self,
        transactions: list[NewTransaction],
    ) -> Optional[list[Transaction]]:
        """Append all rows in a single API call."""
        stored = [Transaction.from_new(str(uuid4()), t) for t in transactions]
        try:
            self._append_rows([self._transaction_to_row(t) for t in stored])
        except Exception as e:
            self._report_failure("insert_many", e)
            return None
        return stored

    async def delete_by_id(self, transaction_id: TransactionId) -> bool:
        try:
            sheet = self._client.get_transactions_sheet()
            row_number = self._find_row_number(self._read_rows(), transaction_id)
            if row_number is None:
                return False
            sheet.delete_rows(row_number)
            return True
        except Exception as e:
            self._report_failure("delete_by_id", e)
            return False

    async def set_paid(self, transaction_id: TransactionId, is_paid: bool) -> bool:
        try:
            sheet = self._client.get_transactions_sheet()
            row_number = self._find_row_number(self._read_rows(), transaction_id)
            if row_number is None:
                return False
            sheet.update_cell(row_number, IS_PAID_COLUMN, "TRUE" if is_paid else "FALSE")
            return True
        except Exception as e:
            self._report_failure("set_paid", e)
            return False


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            entity_type=_safe_get(row, 4) or None,
            entity_id=_safe_get(row, 5) or None,
            correlation_id=UUID(_safe_get(row, 6)) if _safe_get(row, 6) else None,
            description=_safe_get(row, 7),
            details=json.loads(_safe_get(row, 8)) if _safe_get(row, 8) else {},
            error_message=_safe_get(row, 9) or None,
            is_user_action=_safe_get(row, 10).lower() == "true",
        )

    @retry_transient
    def _append_row(self, row: list) -> None:
        self._client.get_audit_sheet().append_row(row, value_input_option="RAW")

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._append_row(event.to_sheets_row())
            return True
        except Exception as e:
            # Log failure but don't raise
            logger.warning("audit_event_write_failed", error=str(e), event_id=str(event.event_id))
            return False

    def _all_events(self) -> list[AuditEvent]:
        try:
            all_rows = self._client.get_audit_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except ValueError:
                continue
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID, oldest first."""
        events = [e for e in self._all_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events, newest first."""
        events = self._all_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
