"""
In-Memory Storage Implementation

A process-local transaction collection with a synchronous change feed.
Used by the test suite and for running the engine without Google
credentials. Notifications are delivered by awaiting each subscriber
callback in turn, so a mutation returns only after every subscriber
has handled it.
"""

from decimal import Decimal
from typing import Optional

import structlog

from billbook.models.transaction import Transaction
from billbook.services.storage.interface import (
    ChangeCallback,
    ChangeEventType,
    ChangeNotification,
    ChangeSubscription,
    NotFoundError,
    StorageError,
    TransactionSourceInterface,
)


logger = structlog.get_logger(__name__)


class InMemorySubscription(ChangeSubscription):
    """Subscription handle for InMemoryTransactionSource."""

    def __init__(
        self,
        source: "InMemoryTransactionSource",
        user_id: str,
        callback: ChangeCallback,
    ):
        self._source = source
        self.user_id = user_id
        self.callback = callback
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._source._subscriptions.remove(self)


class InMemoryTransactionSource(TransactionSourceInterface):
    """
    Transaction collection held in a dict keyed by record id.

    The add/replace/remove methods stand in for external ingestion
    and fire change notifications like a real backend would.
    """

    def __init__(self, transactions: Optional[list[Transaction]] = None):
        self._records: dict[str, Transaction] = {}
        self._subscriptions: list[InMemorySubscription] = []
        for transaction in transactions or []:
            self._records[transaction.id] = transaction

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def get(self, transaction_id: str) -> Optional[Transaction]:
        return self._records.get(transaction_id)

    async def fetch_transactions(self, user_id: str) -> list[Transaction]:
        """Return the principal's records, newest first."""
        owned = [t for t in self._records.values() if t.user_id == user_id]
        owned.sort(key=lambda t: t.occurred_at, reverse=True)
        return owned

    async def update_due(
        self,
        user_id: str,
        transaction_id: str,
        due: Decimal,
    ) -> None:
        """Overwrite one record's due amount."""
        record = self._records.get(transaction_id)
        if record is None or record.user_id != user_id:
            raise NotFoundError(f"Transaction not found: {transaction_id}")

        try:
            updated = record.model_copy(update={"due": due})
            # model_copy skips validation
            self._records[transaction_id] = Transaction.model_validate(
                updated.model_dump()
            )
        except ValueError as e:
            raise StorageError(f"Failed to update due amount: {e}")

        await self._notify(user_id, ChangeEventType.UPDATE)

    async def subscribe(
        self,
        user_id: str,
        callback: ChangeCallback,
    ) -> ChangeSubscription:
        subscription = InMemorySubscription(self, user_id, callback)
        self._subscriptions.append(subscription)
        return subscription

    async def add_transaction(self, transaction: Transaction) -> None:
        """Insert a record (external ingestion)."""
        self._records[transaction.id] = transaction
        await self._notify(transaction.user_id, ChangeEventType.INSERT)

    async def replace_transaction(self, transaction: Transaction) -> None:
        """Replace an existing record (external edit)."""
        if transaction.id not in self._records:
            raise NotFoundError(f"Transaction not found: {transaction.id}")
        self._records[transaction.id] = transaction
        await self._notify(transaction.user_id, ChangeEventType.UPDATE)

    async def remove_transaction(self, transaction_id: str) -> None:
        """Delete a record (external deletion)."""
        record = self._records.pop(transaction_id, None)
        if record is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}")
        await self._notify(record.user_id, ChangeEventType.DELETE)

    async def _notify(self, user_id: str, event: ChangeEventType) -> None:
        notification = ChangeNotification(user_id=user_id, event=event)
        # Copy: callbacks may close their own subscription
        for subscription in list(self._subscriptions):
            if subscription.closed or subscription.user_id != user_id:
                continue
            logger.debug(
                "change_notification_dispatched",
                user_id=user_id,
                change_event=event.value,
            )
            await subscription.callback(notification)
