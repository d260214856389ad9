"""
Storage Interfaces

The ledger store talks to its remote collection only through
TransactionSourceInterface: a full fetch per principal, a targeted due
update and a change feed. Google Sheets and the in-memory source are
the two implementations; audit events have their own append-only
AuditStorageInterface.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Awaitable, Callable

from pydantic import BaseModel, ConfigDict, Field

from billbook.models.audit import AuditEvent
from billbook.models.transaction import Transaction


class ChangeEventType(str, Enum):
    """Kind of remote change that triggered a notification."""
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class ChangeNotification(BaseModel):
    """
    A remote change signal.

    Carries no record payload: receivers treat it purely as a
    trigger to refetch.
    """
    model_config = ConfigDict(frozen=True)

    user_id: str
    event: ChangeEventType
    received_at: datetime = Field(default_factory=datetime.utcnow)


ChangeCallback = Callable[[ChangeNotification], Awaitable[None]]


class ChangeSubscription(ABC):
    """Handle for an open change-feed subscription."""

    @property
    @abstractmethod
    def closed(self) -> bool:
        """True once close() has run."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """
        Stop delivering notifications.

        Calling close() on an already closed subscription does nothing.
        """
        pass


class TransactionSourceInterface(ABC):
    """
    Abstract interface for the remote transaction collection.

    Any backend (Google Sheets, PostgreSQL, in-memory) must implement
    these methods. All reads and writes are scoped to one principal.
    """

    @abstractmethod
    async def fetch_transactions(self, user_id: str) -> list[Transaction]:
        """
        Fetch every record owned by a principal.

        Args:
            user_id: The owning principal

        Returns:
            All records, ordered by occurred_at descending

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def update_due(
        self,
        user_id: str,
        transaction_id: str,
        due: Decimal,
    ) -> None:
        """
        Overwrite the due amount of one record.

        Args:
            user_id: The owning principal
            transaction_id: Record to update
            due: New due amount (already validated, >= 0)

        Raises:
            NotFoundError: If the record doesn't exist for this principal
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def subscribe(
        self,
        user_id: str,
        callback: ChangeCallback,
    ) -> ChangeSubscription:
        """
        Receive insert/update/delete notifications for a principal.

        Args:
            user_id: The principal whose records to watch
            callback: Coroutine function invoked per notification

        Returns:
            A subscription handle; close it to stop notifications
        """
        pass


class AuditStorageInterface(ABC):
    """Destination for audit events. Events are only ever appended."""

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """Persist one event; False when the backend rejected it."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Up to `limit` events, newest first."""
        pass


class StorageError(Exception):
    """A backend read or write failed."""
    pass


class NotFoundError(StorageError):
    """No record with that id belongs to the principal."""
    pass


class ConnectionError(StorageError):
    """The backend could not be reached or authorized."""
    pass
