"""
Ledger Service

This module ties the components together and defines the flows the
presentation layer drives:
1. Load (store -> snapshot)
2. Entry (raw form input -> validate -> schedule -> store -> snapshot)
3. Reports (snapshot -> monthly totals, annual summary, queries)

DESIGN DECISION: The service owns the only mutable state, the current
snapshot and the dashboard year. The aggregator, query engine and
scheduler only ever see the snapshot handed to them.

- Nothing reaches the store without passing validation
- The snapshot only changes after the store confirms a write
- Every write, and every failed one, is audited
"""

import asyncio
from datetime import date
from typing import Any, Mapping, Optional
from uuid import UUID

import structlog

from finance_manager.aggregation import Aggregator
from finance_manager.audit import AuditLogger, create_correlation_id
from finance_manager.config import validate_all_settings
from finance_manager.groups import (
    CategoryGroupRegistry,
    UnknownGroupError,
    get_default_registry,
)
from finance_manager.models.audit import AuditEventType
from finance_manager.models.reports import (
    AnnualSummary,
    CurrentMonthTotals,
    QueryFilter,
    QueryResult,
    SchedulePreview,
)
from finance_manager.models.transaction import (
    NewTransaction,
    RecurrenceRequest,
    Snapshot,
    Transaction,
    TransactionId,
)
from finance_manager.queries import QueryEngine
from finance_manager.scheduling import RecurrenceScheduler
from finance_manager.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
    InMemoryTransactionStore,
    TransactionStoreInterface,
)
from finance_manager.validation import (
    InvalidDescriptionError,
    TransactionValidationError,
    TransactionValidator,
)


logger = structlog.get_logger(__name__)


class LedgerService:
    """
    Facade over the store and the pure ledger components.

    Flow for a new entry:
    1. Validate -> NewTransaction (raises on bad input)
    2. Expand recurrence -> numbered installments
    3. Insert -> store assigns ids
    4. Merge the stored rows into the snapshot, drop the annual cache

    A store failure is not raised: the write methods return an empty
    list or False and the snapshot stays as it was.
    """

    def __init__(
        self,
        store: TransactionStoreInterface,
        registry: Optional[CategoryGroupRegistry] = None,
        aggregator: Optional[Aggregator] = None,
        query_engine: Optional[QueryEngine] = None,
        scheduler: Optional[RecurrenceScheduler] = None,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        today: Optional[date] = None,
    ):
        self._store = store
        self._registry = registry or get_default_registry()
        self._aggregator = aggregator or Aggregator(self._registry)
        self._query_engine = query_engine or QueryEngine(self._registry)
        self._scheduler = scheduler or RecurrenceScheduler()
        self._validator = validator or TransactionValidator(self._registry)
        self._audit_logger = audit_logger or AuditLogger()
        self._snapshot = Snapshot()
        self.dashboard_year = (today or date.today()).year

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def registry(self) -> CategoryGroupRegistry:
        return self._registry

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def load_all(self, correlation_id: Optional[UUID] = None) -> Snapshot:
        """
        Fetch every active group concurrently into a fresh snapshot.

        A group whose fetch failed comes back empty; the failure is
        audited, the other groups still load.
        """
        correlation_id = correlation_id or create_correlation_id()
        groups = self._registry.active_groups()

        results = await asyncio.gather(
            *(self._fetch_group(group.key, correlation_id) for group in groups)
        )

        self._snapshot = Snapshot(
            groups={group.key: tuple(rows) for group, rows in zip(groups, results)}
        )
        self._aggregator.invalidate_annual_cache()

        await self._audit_logger.log_snapshot_loaded(
            {group.key: len(rows) for group, rows in zip(groups, results)},
            correlation_id=correlation_id,
        )
        return self._snapshot

    async def refresh_group(
        self,
        group_key: str,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Transaction, ...]:
        """Reload one group from the store."""
        self._registry.get(group_key)
        rows = await self._fetch_group(group_key, correlation_id or create_correlation_id())
        self._snapshot = self._snapshot.with_group(group_key, rows)
        self._aggregator.invalidate_annual_cache()
        return self._snapshot.for_group(group_key)

    async def _fetch_group(self, group_key: str, correlation_id: UUID) -> list[Transaction]:
        result = await self._store.fetch_group(group_key)
        if result.failed:
            await self._audit_logger.log_store_read_failed(
                group_key, result.error, correlation_id=correlation_id
            )
        return result.rows

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def add_transaction(
        self,
        group_key: str,
        raw: Mapping[str, Any],
        recurrence: Optional[RecurrenceRequest] = None,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        """
        Validate and store a new entry, or a batch of installments.

        With a recurrence request the anchor date only seeds the
        schedule: the stored entries are the installments, described
        "<description> (i/count)".

        Raises:
            TransactionValidationError, UnknownGroupError or
            InvalidCountError for bad input.

        Returns:
            The stored transactions; [] if the store rejected the write
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            base = self._validator.to_new_transaction(raw, group_key, today=today)
            to_insert = self._expand(base, recurrence)
        except (TransactionValidationError, UnknownGroupError) as e:
            field = getattr(e, "field", "group_key")
            await self._audit_logger.log_validation_failed(
                group_key,
                [{"field": field, "message": str(e)}],
                correlation_id=correlation_id,
            )
            raise

        self._store.last_error = None
        if recurrence is None:
            stored_one = await self._store.insert_one(to_insert[0])
            stored = [stored_one] if stored_one is not None else None
        else:
            stored = await self._store.insert_many(to_insert)

        if not stored:
            await self._audit_logger.log_write_failed(
                event_type=AuditEventType.SAVE_FAILED,
                entity_type="group",
                entity_id=group_key,
                description=f"Could not save {len(to_insert)} transaction(s)",
                error_message=self._store.last_error,
                correlation_id=correlation_id,
            )
            return []

        self._snapshot = self._snapshot.with_added(group_key, stored)
        self._aggregator.invalidate_annual_cache()

        if recurrence is None:
            await self._audit_logger.log_transaction_created(
                transaction_id=str(stored[0].id),
                group_key=group_key,
                description=stored[0].description,
                amount=str(stored[0].amount),
                correlation_id=correlation_id,
            )
        else:
            await self._audit_logger.log_installments_created(
                group_key=group_key,
                transaction_ids=[str(t.id) for t in stored],
                first_date=to_insert[0].date.isoformat(),
                last_date=to_insert[-1].date.isoformat(),
                correlation_id=correlation_id,
            )
        return stored

    def _expand(
        self,
        base: NewTransaction,
        recurrence: Optional[RecurrenceRequest],
    ) -> list[NewTransaction]:
        """Turn one validated entry into the rows to insert."""
        if recurrence is None:
            return [base]

        count = self._scheduler.resolve_count(recurrence)
        dates = self._scheduler.generate(base.date, count)

        installments = []
        for index, installment_date in enumerate(dates, start=1):
            description = f"{base.description} ({index}/{count})"
            if len(description) > self._validator.max_description_length:
                raise InvalidDescriptionError(
                    "Description is too long to number the installments"
                )
            installments.append(
                NewTransaction(
                    **base.model_dump(exclude={"date", "description"}),
                    date=installment_date,
                    description=description,
                )
            )
        return installments

    async def delete_transaction(
        self,
        transaction_id: TransactionId,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete an entry; the snapshot only changes if the store confirms."""
        correlation_id = correlation_id or create_correlation_id()

        self._store.last_error = None
        if not await self._store.delete_by_id(transaction_id):
            await self._audit_logger.log_write_failed(
                event_type=AuditEventType.DELETE_FAILED,
                entity_type="transaction",
                entity_id=str(transaction_id),
                description="Could not remove transaction",
                error_message=self._store.last_error,
                correlation_id=correlation_id,
            )
            return False

        self._snapshot = self._snapshot.without(transaction_id)
        self._aggregator.invalidate_annual_cache()
        await self._audit_logger.log_transaction_deleted(
            str(transaction_id), correlation_id=correlation_id
        )
        return True

    async def set_paid(
        self,
        transaction_id: TransactionId,
        is_paid: bool,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Toggle the paid flag of an expense.

        Raises:
            KeyError if the id is not in the snapshot
            ValueError for income entries
        """
        correlation_id = correlation_id or create_correlation_id()

        transaction = self._snapshot.find(transaction_id)
        if transaction is None:
            raise KeyError(transaction_id)
        if self._registry.get(transaction.group_key).is_income:
            raise ValueError("Paid status does not apply to income entries")

        self._store.last_error = None
        if not await self._store.set_paid(transaction_id, is_paid):
            await self._audit_logger.log_write_failed(
                event_type=AuditEventType.UPDATE_FAILED,
                entity_type="transaction",
                entity_id=str(transaction_id),
                description="Could not update payment status",
                error_message=self._store.last_error,
                correlation_id=correlation_id,
            )
            return False

        # Amounts are unchanged, so the annual cache stays valid
        self._snapshot = self._snapshot.with_paid(transaction_id, is_paid)
        await self._audit_logger.log_payment_status_updated(
            str(transaction_id), is_paid, correlation_id=correlation_id
        )
        return True

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    def current_month_totals(self, today: Optional[date] = None) -> CurrentMonthTotals:
        return self._aggregator.current_month_totals(self._snapshot, today or date.today())

    def annual_summary(self, year: Optional[int] = None) -> AnnualSummary:
        """Summary for `year`, defaulting to the dashboard year."""
        return self._aggregator.annual_summary(
            self._snapshot, year if year is not None else self.dashboard_year
        )

    def available_years(self, today: Optional[date] = None) -> list[int]:
        return self._aggregator.available_years(self._snapshot, today or date.today())

    def change_year(self, delta: int, today: Optional[date] = None) -> int:
        """
        Move the dashboard year by `delta`.

        Stays put if the target falls outside the available years.
        """
        years = self.available_years(today)
        target = self.dashboard_year + delta
        if min(years) <= target <= max(years):
            self.dashboard_year = target
        return self.dashboard_year

    def invalidate_annual_cache(self) -> None:
        self._aggregator.invalidate_annual_cache()

    async def execute_query(
        self,
        query_filter: QueryFilter,
        correlation_id: Optional[UUID] = None,
    ) -> QueryResult:
        """Run a filter against the current snapshot (audited)."""
        result = self._query_engine.execute(self._snapshot, query_filter)
        await self._audit_logger.log_query_executed(
            query_id=result.query_id,
            query_description=result.query_description,
            result_count=result.counts.total,
            correlation_id=correlation_id,
        )
        return result

    def all_categories(self) -> list[str]:
        return self._query_engine.all_categories(self._snapshot)

    def generate_schedule(self, start_date: date, count: int) -> list[date]:
        return self._scheduler.generate(start_date, count)

    def preview_schedule(self, start_date: date, count: int) -> SchedulePreview:
        return self._scheduler.preview(start_date, count)


def create_app_components(
    use_storage: bool = True,
) -> tuple[LedgerService, Optional[GoogleSheetsClient]]:
    """
    Factory function to create the ledger service.

    Args:
        use_storage: Whether to use Google Sheets storage.
                    Falls back to in-memory storage when False or
                    when Sheets is not configured.

    Returns:
        (ledger_service, sheets_client)
    """
    sheets_client = None
    store: TransactionStoreInterface
    audit_logger: AuditLogger

    if use_storage:
        configured = validate_all_settings()
        if not configured["google_sheets"]:
            logger.warning(
                "storage_not_configured", error=configured.get("google_sheets_error")
            )
            use_storage = False

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            store = GoogleSheetsTransactionStore(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            store = InMemoryTransactionStore()
            audit_logger = AuditLogger()
    else:
        store = InMemoryTransactionStore()
        audit_logger = AuditLogger()

    return LedgerService(store=store, audit_logger=audit_logger), sheets_client
