"""
Ledger Store

Holds the authoritative in-memory snapshot of one principal's
transactions and keeps it synchronized with the remote collection.

DESIGN DECISION: Every change is handled by a full refetch that
replaces the snapshot atomically. There is no partial merge, so the
snapshot can never diverge from the remote collection through a
mis-applied patch. Snapshots are small (personal bookkeeping scale),
so the extra bandwidth doesn't matter.

CONCURRENCY: Single-threaded asyncio. Overlapping refreshes are not
serialized. Instead every fetch is stamped with a request sequence
number, and a response older than the snapshot already applied is
discarded. A response that arrives after teardown or after the store
was re-bound to another principal is discarded too (tracked by a
generation counter).
"""

import inspect
from typing import Awaitable, Callable, Optional, Union

import structlog

from billbook.audit import AuditLogger
from billbook.ledger.errors import (
    AuthenticationRequiredError,
    LedgerError,
    LedgerValidationError,
    SyncFailureError,
    TransactionNotFoundError,
)
from billbook.ledger.filters import sort_transactions
from billbook.ledger.validation import validate_due_amount, validate_principal_id
from billbook.models.filters import SortOrder
from billbook.models.transaction import Transaction
from billbook.services.storage import (
    ChangeNotification,
    ChangeSubscription,
    NotFoundError,
    StorageError,
    TransactionSourceInterface,
)


Snapshot = tuple[Transaction, ...]
SnapshotListener = Callable[[Snapshot], Union[None, Awaitable[None]]]


class ChangeHandle:
    """
    Returned by LedgerStore.subscribe().

    Call unsubscribe() once when the subscriber goes away.
    """

    def __init__(
        self,
        store: "LedgerStore",
        subscription: ChangeSubscription,
        principal_id: str,
    ):
        self._store = store
        self._subscription = subscription
        self._principal_id = principal_id
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    async def unsubscribe(self) -> None:
        """Stop receiving change notifications."""
        if not self._active:
            self._store._logger.warning(
                "unsubscribe_called_twice",
                principal_id=self._principal_id,
            )
            return
        self._active = False
        await self._subscription.close()
        if self in self._store._handles:
            self._store._handles.remove(self)
        await self._store._audit.log_subscription_closed(self._principal_id)


class LedgerStore:
    """
    Principal-scoped, eventually-consistent view of the transaction collection.

    Usage:
        store = LedgerStore(source)
        await store.initialize(user_id)
        await store.refresh()
        handle = await store.subscribe(on_change)
        ...
        await store.teardown()

    The snapshot is exposed read-only through `snapshot` / `read()`.
    Nothing outside the store mutates it.
    """

    def __init__(
        self,
        source: TransactionSourceInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._source = source
        self._audit = audit_logger or AuditLogger()
        self._logger = structlog.get_logger(__name__)

        self._principal_id: Optional[str] = None
        self._snapshot: Snapshot = ()
        self._error: Optional[LedgerError] = None

        # Bumped on every bind/teardown; fetches from older generations are dropped
        self._generation = 0
        self._request_sequence = 0
        self._applied_sequence = 0
        self._version = 0
        self._in_flight = 0

        self._handles: list[ChangeHandle] = []

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def principal_id(self) -> Optional[str]:
        return self._principal_id

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    def read(self) -> Snapshot:
        """Pull the current snapshot."""
        return self._snapshot

    def get(self, transaction_id: str) -> Optional[Transaction]:
        for transaction in self._snapshot:
            if transaction.id == transaction_id:
                return transaction
        return None

    @property
    def error(self) -> Optional[LedgerError]:
        """Error from the last failed operation, cleared by a good refresh."""
        return self._error

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    @property
    def version(self) -> int:
        """Number of snapshots applied since the principal was bound."""
        return self._version

    @property
    def subscription_count(self) -> int:
        return len(self._handles)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self, principal_id: Optional[str]) -> None:
        """
        Bind the store to a principal, clearing any prior state.

        Raises:
            AuthenticationRequiredError: principal_id is missing or blank
        """
        if self._principal_id is not None:
            await self.teardown()

        try:
            principal_id = validate_principal_id(principal_id)
        except AuthenticationRequiredError as e:
            self._error = e
            self._logger.warning("ledger_initialize_unauthenticated")
            raise

        self._generation += 1
        self._principal_id = principal_id
        self._snapshot = ()
        self._error = None
        self._version = 0
        self._applied_sequence = self._request_sequence

        await self._audit.log_store_initialized(principal_id)

    async def teardown(self) -> None:
        """
        Unbind the principal: close every subscription and clear the snapshot.

        In-flight fetches may still complete; their results are ignored.
        """
        principal_id = self._principal_id

        for handle in list(self._handles):
            await handle.unsubscribe()

        self._generation += 1
        self._principal_id = None
        self._snapshot = ()
        self._error = None
        self._version = 0

        if principal_id is not None:
            await self._audit.log_store_torn_down(principal_id)

    def _require_principal(self) -> str:
        if self._principal_id is None:
            raise AuthenticationRequiredError("Ledger store is not bound to a principal")
        return self._principal_id

    # ------------------------------------------------------------------
    # Synchronization
    # ------------------------------------------------------------------

    async def refresh(self) -> bool:
        """
        Refetch every record and replace the snapshot.

        Failures don't raise: they are recorded in `error` and the
        previous snapshot stays available.

        Returns:
            True if a new snapshot was applied

        Raises:
            AuthenticationRequiredError: store is not bound
        """
        principal_id = self._require_principal()
        generation = self._generation
        self._request_sequence += 1
        sequence = self._request_sequence

        self._in_flight += 1
        try:
            records = await self._source.fetch_transactions(principal_id)
        except StorageError as e:
            if generation != self._generation or sequence < self._applied_sequence:
                return False
            self._error = SyncFailureError(str(e))
            self._logger.warning(
                "ledger_refresh_failed",
                principal_id=principal_id,
                error=str(e),
            )
            await self._audit.log_refresh_failed(principal_id, str(e))
            return False
        finally:
            self._in_flight -= 1

        if generation != self._generation:
            self._logger.info(
                "ledger_refresh_ignored_after_teardown",
                principal_id=principal_id,
            )
            return False

        if sequence < self._applied_sequence:
            await self._audit.log_stale_response_discarded(
                principal_id, sequence, self._applied_sequence
            )
            return False

        self._snapshot = sort_transactions(records, SortOrder.NEWEST_FIRST)
        self._applied_sequence = sequence
        self._version += 1
        self._error = None

        await self._audit.log_snapshot_refreshed(
            principal_id, len(self._snapshot), self._version
        )
        return True

    async def subscribe(
        self,
        on_change: Optional[SnapshotListener] = None,
    ) -> ChangeHandle:
        """
        Refresh whenever the remote collection changes.

        After each notification-triggered refresh, `on_change` (if given)
        is called with the current snapshot.

        Raises:
            AuthenticationRequiredError: store is not bound
            SyncFailureError: the change feed could not be opened
        """
        principal_id = self._require_principal()
        generation = self._generation

        async def handle_change(notification: ChangeNotification) -> None:
            if generation != self._generation:
                return
            await self._audit.log_remote_change(principal_id, notification.event.value)
            await self.refresh()
            if on_change is None or generation != self._generation:
                return
            try:
                result = on_change(self._snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self._logger.exception(
                    "ledger_change_listener_failed",
                    principal_id=principal_id,
                )
                await self._audit.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"stage": "change_listener"},
                )

        try:
            subscription = await self._source.subscribe(principal_id, handle_change)
        except StorageError as e:
            self._error = SyncFailureError(str(e))
            raise self._error from e

        handle = ChangeHandle(self, subscription, principal_id)
        self._handles.append(handle)
        await self._audit.log_subscription_opened(principal_id)
        return handle

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    async def update_due(self, transaction_id: str, new_due) -> None:
        """
        Set one record's outstanding due amount, then refresh.

        The local snapshot is only changed by the follow-up refresh,
        never before the remote write succeeds.

        Raises:
            AuthenticationRequiredError: store is not bound
            LedgerValidationError: new_due is negative or not a valid amount
            TransactionNotFoundError: no such record for this principal
            SyncFailureError: the remote write failed
        """
        principal_id = self._require_principal()

        try:
            due = validate_due_amount(new_due)
        except LedgerValidationError as e:
            await self._audit.log_due_update_failed(
                principal_id, transaction_id, type(e).__name__, str(e)
            )
            raise

        try:
            await self._source.update_due(principal_id, transaction_id, due)
        except NotFoundError as e:
            await self._audit.log_due_update_failed(
                principal_id, transaction_id, "TransactionNotFoundError", str(e)
            )
            raise TransactionNotFoundError(transaction_id) from e
        except StorageError as e:
            await self._audit.log_due_update_failed(
                principal_id, transaction_id, "SyncFailureError", str(e)
            )
            raise SyncFailureError(str(e)) from e

        await self._audit.log_due_updated(principal_id, transaction_id, str(due))
        await self.refresh()
