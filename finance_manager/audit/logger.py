"""
Audit Logger

Every write to the ledger and every failed attempt at one is logged:
1. Locally, as a structured JSON line (structlog)
2. To the audit store when one is configured

The audit logger:
- Is async, like the stores it writes to
- Never raises because logging failed
- Supports correlation IDs so installments of one entry can be traced together
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_manager.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from finance_manager.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Without a storage backend it only logs locally.
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the storage write succeeded (or no storage is configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_snapshot_loaded(
        self,
        group_counts: dict[str, int],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.snapshot_loaded(group_counts, correlation_id))

    async def log_store_read_failed(
        self,
        group_key: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.store_read_failed(group_key, error_message, correlation_id)
        )

    async def log_transaction_created(
        self,
        transaction_id: str,
        group_key: str,
        description: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a single saved entry."""
        event = AuditEventBuilder.transaction_created(
            transaction_id=transaction_id,
            group_key=group_key,
            description=description,
            amount=amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_installments_created(
        self,
        group_key: str,
        transaction_ids: list[str],
        first_date: str,
        last_date: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a batch of recurring installments."""
        event = AuditEventBuilder.installments_created(
            group_key=group_key,
            transaction_ids=transaction_ids,
            first_date=first_date,
            last_date=last_date,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_deleted(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(transaction_id, correlation_id))

    async def log_payment_status_updated(
        self,
        transaction_id: str,
        is_paid: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.payment_status_updated(transaction_id, is_paid, correlation_id)
        )

    async def log_write_failed(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        description: str,
        error_message: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a store write that reported failure."""
        event = AuditEventBuilder.write_failed(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            correlation_id=correlation_id,
        )
        if error_message:
            event = event.model_copy(update={"error_message": error_message})
        await self.log(event)

    async def log_validation_failed(
        self,
        group_key: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(group_key, issues, correlation_id))

    async def log_query_executed(
        self,
        query_id: UUID,
        query_description: str,
        result_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log query execution."""
        event = AuditEventBuilder.query_executed(
            query_id=query_id,
            query_description=query_description,
            result_count=result_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., saving a recurring entry)
    and pass it through every store call that action makes.
    """
    return uuid4()
