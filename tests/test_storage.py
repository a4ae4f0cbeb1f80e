"""
Tests for the storage backends.

The Google Sheets store runs against MagicMock worksheets; nothing
here needs credentials or network access.
"""

import asyncio
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import UUID

import gspread
import pytest

from finance_manager.config import GoogleSheetsSettings
from finance_manager.models.audit import AuditEvent, AuditEventType
from finance_manager.models.transaction import NewTransaction
from finance_manager.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
    InMemoryAuditStorage,
    InMemoryTransactionStore,
)
from finance_manager.services.storage.google_sheets import (
    AUDIT_COLUMNS,
    TRANSACTION_COLUMNS,
)


def new_entry(when="2024-03-10", group_key="fixed-expenses", **overrides) -> NewTransaction:
    fields = {
        "group_key": group_key,
        "date": date.fromisoformat(when),
        "description": "Aluguel",
        "category": "Moradia",
        "amount": Decimal("1500.00"),
    }
    fields.update(overrides)
    return NewTransaction(**fields)


class TestInMemoryTransactionStore:
    """Tests for InMemoryTransactionStore."""

    def test_insert_assigns_increasing_ids(self):
        store = InMemoryTransactionStore()
        first = asyncio.run(store.insert_one(new_entry()))
        second = asyncio.run(store.insert_one(new_entry()))
        assert (first.id, second.id) == (1, 2)
        assert first.description == "Aluguel"
        assert len(store) == 2

    def test_ids_are_never_reused(self):
        store = InMemoryTransactionStore()
        stored = asyncio.run(store.insert_many([new_entry(), new_entry()]))
        assert asyncio.run(store.delete_by_id(stored[1].id))
        again = asyncio.run(store.insert_one(new_entry()))
        assert again.id == 3

    def test_insert_many_keeps_input_order(self):
        store = InMemoryTransactionStore()
        stored = asyncio.run(store.insert_many([
            new_entry("2024-02-10", description="A"),
            new_entry("2024-03-10", description="B"),
        ]))
        assert [t.description for t in stored] == ["A", "B"]

    def test_fetch_by_group_most_recent_first(self):
        store = InMemoryTransactionStore()
        asyncio.run(store.insert_many([
            new_entry("2024-01-10", description="Jan"),
            new_entry("2024-03-10", description="Mar"),
            new_entry("2024-02-10", description="Feb"),
            new_entry("2024-03-10", group_key="income", description="Salário"),
        ]))
        rows = asyncio.run(store.fetch_by_group("fixed-expenses"))
        assert [t.description for t in rows] == ["Mar", "Feb", "Jan"]

    def test_fetch_unknown_group_is_empty(self):
        assert asyncio.run(InMemoryTransactionStore().fetch_by_group("income")) == []

    def test_delete_missing(self):
        assert asyncio.run(InMemoryTransactionStore().delete_by_id(42)) is False

    def test_set_paid(self):
        store = InMemoryTransactionStore()
        stored = asyncio.run(store.insert_one(new_entry()))
        assert asyncio.run(store.set_paid(stored.id, True))
        rows = asyncio.run(store.fetch_by_group("fixed-expenses"))
        assert rows[0].is_paid is True
        assert asyncio.run(store.set_paid(99, True)) is False


class TestInMemoryAuditStorage:
    """Tests for InMemoryAuditStorage."""

    def test_events_by_correlation_id(self):
        storage = InMemoryAuditStorage()
        correlation_id = UUID(int=1)
        asyncio.run(storage.append_event(AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            description="first",
            correlation_id=correlation_id,
        )))
        asyncio.run(storage.append_event(AuditEvent(
            event_type=AuditEventType.QUERY_EXECUTED,
            description="other",
        )))
        events = asyncio.run(storage.get_events_by_correlation_id(correlation_id))
        assert [e.description for e in events] == ["first"]
        assert len(asyncio.run(storage.get_recent_events(limit=1))) == 1


@pytest.fixture
def sheet() -> MagicMock:
    worksheet = MagicMock()
    worksheet.get_all_values.return_value = [
        TRANSACTION_COLUMNS,
        ["a1", "fixed-expenses", "2024-03-10", "Aluguel", "Moradia", "1500.00", "TRUE", "x"],
        ["b2", "income", "2024-03-05", "Salário", "Salário", "3000.00", "FALSE", "x"],
        ["c3", "fixed-expenses", "2024-03-15", "Luz", "", "120.5", "FALSE", "x"],
        ["d4", "fixed-expenses", "", "Sem data", "", "10.00", "", "x"],
        ["e5", "fixed-expenses", "2024-03-01", "Quebrado", "", "abc", "FALSE", "x"],
        ["", "", "", "", "", "", "", ""],
    ]
    return worksheet


@pytest.fixture
def sheets_client(sheet) -> MagicMock:
    client = MagicMock(spec=GoogleSheetsClient)
    client.get_transactions_sheet.return_value = sheet
    client.get_audit_sheet.return_value = sheet
    return client


class TestGoogleSheetsTransactionStore:
    """Tests for GoogleSheetsTransactionStore."""

    def test_fetch_by_group(self, sheets_client):
        store = GoogleSheetsTransactionStore(sheets_client)
        rows = asyncio.run(store.fetch_by_group("fixed-expenses"))

        assert [t.id for t in rows] == ["c3", "a1", "d4"]
        assert rows[0].amount == Decimal("120.5")
        assert rows[0].category is None
        assert rows[1].is_paid is True
        assert rows[2].date is None

    def test_fetch_skips_malformed_rows(self, sheets_client):
        store = GoogleSheetsTransactionStore(sheets_client)
        rows = asyncio.run(store.fetch_by_group("fixed-expenses"))
        assert "e5" not in {t.id for t in rows}

    def test_fetch_failure_returns_empty(self, sheets_client, sheet):
        sheet.get_all_values.side_effect = RuntimeError("quota exceeded")
        store = GoogleSheetsTransactionStore(sheets_client)

        assert asyncio.run(store.fetch_by_group("income")) == []
        assert "quota exceeded" in store.last_error

    def test_fetch_group_carries_its_own_error(self, sheets_client, sheet):
        store = GoogleSheetsTransactionStore(sheets_client)
        ok = asyncio.run(store.fetch_group("fixed-expenses"))
        assert not ok.failed
        assert len(ok.rows) == 3

        sheet.get_all_values.side_effect = RuntimeError("quota exceeded")
        failed = asyncio.run(store.fetch_group("income"))
        assert failed.failed
        assert failed.rows == []
        assert "quota exceeded" in failed.error

    def test_insert_many_appends_once(self, sheets_client, sheet):
        store = GoogleSheetsTransactionStore(sheets_client)
        stored = asyncio.run(store.insert_many([
            new_entry("2024-04-10"),
            new_entry("2024-05-10", category=None),
        ]))

        assert len(stored) == 2
        assert all(isinstance(t.id, str) and UUID(t.id) for t in stored)
        sheet.append_rows.assert_called_once()
        rows = sheet.append_rows.call_args.args[0]
        assert rows[0][:7] == [
            stored[0].id, "fixed-expenses", "2024-04-10", "Aluguel", "Moradia", "1500.00", "FALSE",
        ]
        assert rows[1][4] == ""

    def test_insert_one(self, sheets_client, sheet):
        store = GoogleSheetsTransactionStore(sheets_client)
        stored = asyncio.run(store.insert_one(new_entry()))
        assert stored.description == "Aluguel"
        assert sheet.append_rows.call_count == 1

    def test_insert_failure_returns_none(self, sheets_client, sheet):
        sheet.append_rows.side_effect = RuntimeError("offline")
        store = GoogleSheetsTransactionStore(sheets_client)

        assert asyncio.run(store.insert_many([new_entry()])) is None
        assert asyncio.run(store.insert_one(new_entry())) is None
        assert "offline" in store.last_error

    def test_delete_by_id(self, sheets_client, sheet):
        store = GoogleSheetsTransactionStore(sheets_client)
        assert asyncio.run(store.delete_by_id("b2")) is True
        sheet.delete_rows.assert_called_once_with(3)

    def test_delete_missing(self, sheets_client, sheet):
        store = GoogleSheetsTransactionStore(sheets_client)
        assert asyncio.run(store.delete_by_id("zz")) is False
        sheet.delete_rows.assert_not_called()

    def test_delete_failure(self, sheets_client, sheet):
        sheet.delete_rows.side_effect = RuntimeError("denied")
        store = GoogleSheetsTransactionStore(sheets_client)
        assert asyncio.run(store.delete_by_id("a1")) is False
        assert "denied" in store.last_error

    def test_set_paid(self, sheets_client, sheet):
        store = GoogleSheetsTransactionStore(sheets_client)
        assert asyncio.run(store.set_paid("c3", True)) is True
        sheet.update_cell.assert_called_once_with(4, 7, "TRUE")

    def test_set_paid_missing(self, sheets_client, sheet):
        store = GoogleSheetsTransactionStore(sheets_client)
        assert asyncio.run(store.set_paid("zz", False)) is False


class TestGoogleSheetsAuditStorage:
    """Tests for GoogleSheetsAuditStorage."""

    def test_append_event(self, sheets_client, sheet):
        storage = GoogleSheetsAuditStorage(sheets_client)
        event = AuditEvent(event_type=AuditEventType.TRANSACTION_DELETED, description="gone")

        assert asyncio.run(storage.append_event(event)) is True
        row = sheet.append_row.call_args.args[0]
        assert len(row) == len(AUDIT_COLUMNS)
        assert row[2] == "transaction_deleted"

    def test_append_failure_is_swallowed(self, sheets_client, sheet):
        sheet.append_row.side_effect = RuntimeError("offline")
        storage = GoogleSheetsAuditStorage(sheets_client)
        event = AuditEvent(event_type=AuditEventType.SYSTEM_ERROR, description="x")
        assert asyncio.run(storage.append_event(event)) is False

    def test_reads_events_back(self, sheets_client, sheet):
        event = AuditEvent(
            event_type=AuditEventType.PAYMENT_STATUS_UPDATED,
            description="paid",
            correlation_id=UUID(int=7),
            details={"is_paid": True},
        )
        sheet.get_all_values.return_value = [AUDIT_COLUMNS, event.to_sheets_row()]
        storage = GoogleSheetsAuditStorage(sheets_client)

        events = asyncio.run(storage.get_events_by_correlation_id(UUID(int=7)))
        assert [e.event_id for e in events] == [event.event_id]
        assert events[0].details == {"is_paid": True}


class TestGoogleSheetsClient:
    """Tests for worksheet bootstrapping."""

    @pytest.fixture
    def client(self) -> GoogleSheetsClient:
        settings = GoogleSheetsSettings(
            credentials_path="/nonexistent/credentials.json",
            spreadsheet_id="sheet-id",
        )
        client = GoogleSheetsClient(settings)
        client._spreadsheet = MagicMock()
        return client

    def test_existing_sheet(self, client):
        worksheet = client.get_transactions_sheet()
        client._spreadsheet.worksheet.assert_called_once_with("Transactions")
        assert worksheet is client._spreadsheet.worksheet.return_value

    def test_creates_missing_sheet_with_header(self, client):
        client._spreadsheet.worksheet.side_effect = gspread.WorksheetNotFound("AuditLog")
        worksheet = client.get_audit_sheet()

        client._spreadsheet.add_worksheet.assert_called_once_with(
            title="AuditLog", rows=5000, cols=len(AUDIT_COLUMNS)
        )
        worksheet.append_row.assert_called_once_with(AUDIT_COLUMNS)
