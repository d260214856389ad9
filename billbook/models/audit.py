"""
Audit Models for Billbook

An AuditEvent describes one thing that happened to a principal's
ledger (a sync, a due edit, an export). Events are appended to the
audit log and never rewritten.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Ledger events that are audited.

    Each store operation and export step has its own event type.
    """
    # Store lifecycle
    STORE_INITIALIZED = "store_initialized"
    STORE_TORN_DOWN = "store_torn_down"

    # Synchronization
    SNAPSHOT_REFRESHED = "snapshot_refreshed"
    REFRESH_FAILED = "refresh_failed"
    STALE_RESPONSE_DISCARDED = "stale_response_discarded"
    SUBSCRIPTION_OPENED = "subscription_opened"
    SUBSCRIPTION_CLOSED = "subscription_closed"
    REMOTE_CHANGE_RECEIVED = "remote_change_received"

    # Mutations
    DUE_UPDATED = "due_updated"
    DUE_UPDATE_FAILED = "due_update_failed"

    # Reporting
    REPORT_GENERATED = "report_generated"
    REPORT_EXPORTED = "report_exported"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    One audit log entry.

    `entity_type` / `entity_id` name what the event is about, e.g.
    ("transaction", "<id>") or ("report", "<filename>").
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="UTC time the event was recorded"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Subject
    principal_id: Optional[str] = Field(
        default=None,
        description="Principal whose ledger the event concerns"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="'transaction', 'snapshot', 'subscription' or 'report'"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Transaction id, snapshot version or report filename"
    )
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="Shared by every event of one report export"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    # Set on failure events only
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="True for due edits and exports, False for sync activity"
    )

    def to_log_dict(self) -> dict:
        """Flatten for structlog; UUIDs and timestamps become strings."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "principal_id": self.principal_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, principal_id, entity_type,
         entity_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.principal_id or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Constructors for each audited ledger event.

    Usage:
        event = AuditEventBuilder.snapshot_refreshed(principal_id, count, version)
        event = AuditEventBuilder.due_updated(principal_id, transaction_id, "150.00")
    """

    @staticmethod
    def store_initialized(principal_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_INITIALIZED,
            principal_id=principal_id,
            entity_type="snapshot",
            description="Ledger store bound to principal",
        )

    @staticmethod
    def store_torn_down(principal_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_TORN_DOWN,
            principal_id=principal_id,
            entity_type="snapshot",
            description="Ledger store torn down and snapshot cleared",
        )

    @staticmethod
    def snapshot_refreshed(
        principal_id: str,
        record_count: int,
        version: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_REFRESHED,
            severity=AuditSeverity.DEBUG,
            principal_id=principal_id,
            entity_type="snapshot",
            entity_id=str(version),
            description=f"Snapshot refreshed with {record_count} records",
            details={
                "record_count": record_count,
                "version": version,
            },
        )

    @staticmethod
    def refresh_failed(principal_id: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REFRESH_FAILED,
            severity=AuditSeverity.WARNING,
            principal_id=principal_id,
            entity_type="snapshot",
            description="Snapshot refresh failed; keeping previous snapshot",
            error_message=error_message,
        )

    @staticmethod
    def stale_response_discarded(
        principal_id: Optional[str],
        request_sequence: int,
        applied_sequence: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STALE_RESPONSE_DISCARDED,
            severity=AuditSeverity.DEBUG,
            principal_id=principal_id,
            entity_type="snapshot",
            description="Discarded fetch response older than applied snapshot",
            details={
                "request_sequence": request_sequence,
                "applied_sequence": applied_sequence,
            },
        )

    @staticmethod
    def subscription_opened(principal_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_OPENED,
            principal_id=principal_id,
            entity_type="subscription",
            description="Subscribed to remote change notifications",
        )

    @staticmethod
    def subscription_closed(principal_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_CLOSED,
            principal_id=principal_id,
            entity_type="subscription",
            description="Unsubscribed from remote change notifications",
        )

    @staticmethod
    def remote_change_received(principal_id: str, event: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_CHANGE_RECEIVED,
            severity=AuditSeverity.DEBUG,
            principal_id=principal_id,
            entity_type="subscription",
            description=f"Remote change received: {event}",
            details={"event": event},
        )

    @staticmethod
    def due_updated(
        principal_id: str,
        transaction_id: str,
        new_due: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUE_UPDATED,
            principal_id=principal_id,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Due amount set to {new_due}",
            details={"due": new_due},
            is_user_action=True,
        )

    @staticmethod
    def due_update_failed(
        principal_id: str,
        transaction_id: str,
        error_type: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUE_UPDATE_FAILED,
            severity=AuditSeverity.WARNING,
            principal_id=principal_id,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Due update failed: {error_type}",
            error_code=error_type,
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def report_generated(
        principal_id: Optional[str],
        period_label: str,
        sections: list[str],
        record_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_GENERATED,
            principal_id=principal_id,
            entity_type="report",
            correlation_id=correlation_id,
            description=f"Report generated for {period_label}",
            details={
                "period_label": period_label,
                "sections": sections,
                "record_count": record_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def report_exported(
        principal_id: Optional[str],
        filename: str,
        size_bytes: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_EXPORTED,
            principal_id=principal_id,
            entity_type="report",
            entity_id=filename,
            correlation_id=correlation_id,
            description=f"Report exported: {filename}",
            details={
                "filename": filename,
                "size_bytes": size_bytes,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
