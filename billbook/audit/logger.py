"""
Audit Logger

Structured record of what happened to a ledger: binds and teardowns,
refreshes (applied, failed or discarded as stale), change-feed activity,
due edits and report exports.

Events always go to the local JSON log. When an AuditStorageInterface
is configured they are also appended there, and a failed append is
logged and reported through the return value instead of raised.
Related events (one report export) share a correlation id.
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from billbook.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from billbook.services.storage import AuditStorageInterface


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


def configure_logging(level: str = "INFO") -> None:
    """Route structlog's JSON lines to stderr at the given level."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )


_LEVELS = {
    AuditSeverity.DEBUG: logging.DEBUG,
    AuditSeverity.INFO: logging.INFO,
    AuditSeverity.WARNING: logging.WARNING,
    AuditSeverity.ERROR: logging.ERROR,
    AuditSeverity.CRITICAL: logging.ERROR,
}


class AuditLogger:
    """
    Writes ledger audit events.

    One `log_*` helper per event type; each builds the event with
    AuditEventBuilder and hands it to `log()`.
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Where events are persisted (e.g. the AuditLog sheet).
                    None keeps them in the local log only.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Record one event locally and, if configured, in audit storage.

        Returns False only when the storage append failed.
        """
        self._logger.log(_LEVELS[event.severity], "audit_event", **event.to_log_dict())

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Audit persistence never interrupts a ledger operation
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_store_initialized(self, principal_id: str) -> None:
        await self.log(AuditEventBuilder.store_initialized(principal_id))

    async def log_store_torn_down(self, principal_id: str) -> None:
        await self.log(AuditEventBuilder.store_torn_down(principal_id))

    async def log_snapshot_refreshed(
        self,
        principal_id: str,
        record_count: int,
        version: int,
    ) -> None:
        """Log a successfully applied refresh."""
        event = AuditEventBuilder.snapshot_refreshed(
            principal_id=principal_id,
            record_count=record_count,
            version=version,
        )
        await self.log(event)

    async def log_refresh_failed(
        self,
        principal_id: str,
        error_message: str,
    ) -> None:
        """Log a refresh that left the previous snapshot in place."""
        event = AuditEventBuilder.refresh_failed(
            principal_id=principal_id,
            error_message=error_message,
        )
        await self.log(event)

    async def log_stale_response_discarded(
        self,
        principal_id: Optional[str],
        request_sequence: int,
        applied_sequence: int,
    ) -> None:
        event = AuditEventBuilder.stale_response_discarded(
            principal_id=principal_id,
            request_sequence=request_sequence,
            applied_sequence=applied_sequence,
        )
        await self.log(event)

    async def log_subscription_opened(self, principal_id: str) -> None:
        await self.log(AuditEventBuilder.subscription_opened(principal_id))

    async def log_subscription_closed(self, principal_id: str) -> None:
        await self.log(AuditEventBuilder.subscription_closed(principal_id))

    async def log_remote_change(self, principal_id: str, event: str) -> None:
        await self.log(
            AuditEventBuilder.remote_change_received(principal_id, event)
        )

    async def log_due_updated(
        self,
        principal_id: str,
        transaction_id: str,
        new_due: str,
    ) -> None:
        """Log a successful due update."""
        event = AuditEventBuilder.due_updated(
            principal_id=principal_id,
            transaction_id=transaction_id,
            new_due=new_due,
        )
        await self.log(event)

    async def log_due_update_failed(
        self,
        principal_id: str,
        transaction_id: str,
        error_type: str,
        error_message: str,
    ) -> None:
        """Log a rejected or failed due update."""
        event = AuditEventBuilder.due_update_failed(
            principal_id=principal_id,
            transaction_id=transaction_id,
            error_type=error_type,
            error_message=error_message,
        )
        await self.log(event)

    async def log_report_generated(
        self,
        principal_id: Optional[str],
        period_label: str,
        sections: list[str],
        record_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log report generation."""
        event = AuditEventBuilder.report_generated(
            principal_id=principal_id,
            period_label=period_label,
            sections=sections,
            record_count=record_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_report_exported(
        self,
        principal_id: Optional[str],
        filename: str,
        size_bytes: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log report serialization."""
        event = AuditEventBuilder.report_exported(
            principal_id=principal_id,
            filename=filename,
            size_bytes=size_bytes,
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
    """New id shared by the events of one user action, e.g. a report export."""
    return uuid4()
