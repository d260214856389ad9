"""
Google Sheets Storage Implementation

The remote transaction collection is one worksheet shared by all
principals (one row per record, header row first); audit events go to
a second worksheet.

TRADEOFFS:
- Every read pulls the whole sheet; fine at personal-ledger scale
- Writes are single-cell updates with no transactions, so the ledger
  store always refetches after a write
- Sheets has no push API, so the change feed polls and diffs rows
"""

import asyncio
import json
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from billbook.config import GoogleSheetsSettings, get_settings
from billbook.models.audit import AuditEvent, AuditEventType, AuditSeverity
from billbook.models.transaction import Transaction, TransactionKind
from billbook.services.storage.interface import (
    AuditStorageInterface,
    ChangeCallback,
    ChangeEventType,
    ChangeNotification,
    ChangeSubscription,
    ConnectionError,
    NotFoundError,
    StorageError,
    TransactionSourceInterface,
)


logger = structlog.get_logger(__name__)


# Column layout of the Transactions sheet (mirrors the remote schema)
TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "title",
    "amount",
    "type",
    "description",
    "date",
    "bill_url",
    "due",
]

# 1-based column number of `due`, for targeted cell updates
DUE_COLUMN = TRANSACTION_COLUMNS.index("due") + 1

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "principal_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

CENT = Decimal("0.01")


def _cell(row: list, index: int) -> str:
    """Cell text, or "" when the row is shorter than the header."""
    return row[index] if index < len(row) and row[index] else ""


def parse_amount(value: str) -> Decimal:
    """
    Parse a currency cell into a 2-decimal Decimal.

    Accepts thousands separators ("1,250.5"). Blank means zero.
    """
    cleaned = (value or "").strip().replace(",", "")
    if not cleaned:
        return Decimal("0.00")
    try:
        return Decimal(cleaned).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO 8601 date or timestamp cell.

    Timezone-aware values are converted to local wall-clock time so
    every occurred_at in a snapshot is naive and comparable.
    """
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def diff_rows(
    previous: dict[str, tuple],
    current: dict[str, tuple],
) -> list[ChangeEventType]:
    """
    Compare two {id: row} views of a principal's records.

    Returns the distinct change kinds found, in insert/update/delete order.
    """
    events = []
    if current.keys() - previous.keys():
        events.append(ChangeEventType.INSERT)
    if any(
        previous[key] != row
        for key, row in current.items()
        if key in previous
    ):
        events.append(ChangeEventType.UPDATE)
    if previous.keys() - current.keys():
        events.append(ChangeEventType.DELETE)
    return events


SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]


class GoogleSheetsClient:
    """
    Authorized handle on the ledger spreadsheet.

    The gspread client and spreadsheet are opened on first use and
    reused; worksheets missing from the spreadsheet are created with
    their header row.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._settings = settings or get_settings().google_sheets
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """Authorize with the service account key (retried with backoff)."""
        if self._client is not None:
            return self._client

        key_path = self._settings.credentials_path
        try:
            credentials = Credentials.from_service_account_file(key_path, scopes=SCOPES)
            self._client = gspread.authorize(credentials)
        except FileNotFoundError:
            raise ConnectionError(f"Service account key not found: {key_path}")
        except Exception as e:
            raise ConnectionError(f"Google Sheets authorization failed: {e}")

        logger.info("sheets_connected", spreadsheet_id=self._settings.spreadsheet_id)
        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        if self._spreadsheet is None:
            spreadsheet_id = self._settings.spreadsheet_id
            try:
                self._spreadsheet = self.connect().open_by_key(spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(f"No spreadsheet with key {spreadsheet_id}")
        return self._spreadsheet

    def _worksheet(
        self,
        title: str,
        header: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            return spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            logger.info("worksheet_created", title=title)
            sheet = spreadsheet.add_worksheet(title=title, rows=rows, cols=len(header))
            sheet.append_row(header)
            return sheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        return self._worksheet(
            self._settings.transactions_sheet_name,
            TRANSACTION_COLUMNS,
            rows=1000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        # Audit rows accumulate much faster than transactions
        return self._worksheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,
        )


class SheetsPollingSubscription(ChangeSubscription):
    """
    Change feed for a Sheets-backed collection.

    Sheets cannot push changes, so a background task re-reads the
    principal's rows every `interval` seconds and emits one notification
    per kind of difference it finds.
    """

    def __init__(
        self,
        source: "GoogleSheetsTransactionSource",
        user_id: str,
        callback: ChangeCallback,
        interval: float,
        baseline: dict[str, tuple],
    ):
        self._source = source
        self._user_id = user_id
        self._callback = callback
        self._interval = interval
        self._last_seen = baseline
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        self._task = asyncio.create_task(self._run())

    async def poll_once(self) -> list[ChangeEventType]:
        """Read the sheet once and dispatch notifications for any changes."""
        current = self._source._rows_by_id(self._user_id)
        events = diff_rows(self._last_seen, current)
        self._last_seen = current
        for event in events:
            if self._closed:
                break
            await self._callback(
                ChangeNotification(user_id=self._user_id, event=event)
            )
        return events

    async def _run(self) -> None:
        while not self._closed:
            await asyncio.sleep(self._interval)
            try:
                await self.poll_once()
            except StorageError as e:
                # Next poll retries; the store keeps its last snapshot meanwhile
                logger.warning(
                    "change_poll_failed",
                    user_id=self._user_id,
                    error=str(e),
                )
            except Exception:
                # Nothing awaits this task; log and keep polling
                logger.exception("change_poll_crashed", user_id=self._user_id)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._task is None:
            return
        self._task.cancel()
        if self._task is asyncio.current_task():
            # Closed from inside our own callback
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass


class GoogleSheetsTransactionSource(TransactionSourceInterface):
    """
    Google Sheets implementation of the transaction collection.

    Records are stored one per row, columns as in TRANSACTION_COLUMNS.
    Rows of every principal share the sheet; reads filter on user_id.
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        poll_interval: Optional[float] = None,
    ):
        self._client = client or GoogleSheetsClient()
        self._poll_interval = (
            poll_interval
            if poll_interval is not None
            else get_settings().ledger.change_poll_interval_seconds
        )

    @staticmethod
    def _row_to_transaction(row: list) -> Transaction:
        """Map a row laid out as TRANSACTION_COLUMNS; short rows read as blanks."""
        return Transaction(
            id=_cell(row, 0),
            user_id=_cell(row, 1),
            title=_cell(row, 2),
            amount=parse_amount(_cell(row, 3)),
            kind=TransactionKind(_cell(row, 4).strip().lower()),
            note=_cell(row, 5),
            occurred_at=parse_timestamp(_cell(row, 6)),
            attachment_ref=_cell(row, 7) or None,
            due=parse_amount(_cell(row, 8)),
        )

    @staticmethod
    def _transaction_to_row(transaction: Transaction) -> list:
        return [
            transaction.id,
            transaction.user_id,
            transaction.title,
            str(transaction.amount),
            transaction.kind.value,
            transaction.note,
            transaction.occurred_at.isoformat(),
            transaction.attachment_ref or "",
            str(transaction.due),
        ]

    def _read_rows(self) -> list[list]:
        try:
            sheet = self._client.get_transactions_sheet()
            # Row 1 is the header
            return sheet.get_all_values()[1:]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read transactions: {e}")

    def _rows_by_id(self, user_id: str) -> dict[str, tuple]:
        return {
            row[0]: tuple(row)
            for row in self._read_rows()
            if len(row) > 1 and row[0] and row[1] == user_id
        }

    async def fetch_transactions(self, user_id: str) -> list[Transaction]:
        """Fetch every record owned by user_id, newest first."""
        transactions = []
        for row in self._read_rows():
            if len(row) < 2 or not row[0] or row[1] != user_id:
                continue

            try:
                transactions.append(self._row_to_transaction(row))
            except ValueError as e:
                logger.warning(
                    "malformed_transaction_row",
                    transaction_id=row[0],
                    error=str(e),
                )

        transactions.sort(key=lambda t: t.occurred_at, reverse=True)
        return transactions

    async def update_due(
        self,
        user_id: str,
        transaction_id: str,
        due: Decimal,
    ) -> None:
        """Overwrite the due cell of one record."""
        try:
            sheet = self._client.get_transactions_sheet()
            all_rows = sheet.get_all_values()

            # Sheet row numbers are 1-based and row 1 is the header
            for idx, row in enumerate(all_rows[1:], start=2):
                if len(row) > 1 and row[0] == transaction_id and row[1] == user_id:
                    sheet.update_cell(idx, DUE_COLUMN, str(due))
                    return

            raise NotFoundError(f"Transaction not found: {transaction_id}")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update due amount: {e}")

    async def append_transaction(self, transaction: Transaction) -> None:
        """Append a record (used for seeding and imports)."""
        try:
            sheet = self._client.get_transactions_sheet()
            sheet.append_row(
                self._transaction_to_row(transaction),
                value_input_option="RAW",
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")

    async def subscribe(
        self,
        user_id: str,
        callback: ChangeCallback,
    ) -> ChangeSubscription:
        """Start polling the sheet for changes to user_id's rows."""
        subscription = SheetsPollingSubscription(
            source=self,
            user_id=user_id,
            callback=callback,
            interval=self._poll_interval,
            baseline=self._rows_by_id(user_id),
        )
        subscription.start()
        return subscription


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """Append-only audit log on the AuditLog worksheet (AUDIT_COLUMNS)."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _row_to_event(row: list) -> AuditEvent:
        details = _cell(row, 9)
        return AuditEvent(
            event_id=_cell(row, 0),
            timestamp=datetime.fromisoformat(_cell(row, 1)),
            event_type=AuditEventType(_cell(row, 2)),
            severity=AuditSeverity(_cell(row, 3)),
            principal_id=_cell(row, 4) or None,
            entity_type=_cell(row, 5) or None,
            entity_id=_cell(row, 6) or None,
            correlation_id=_cell(row, 7) or None,
            description=_cell(row, 8),
            details=json.loads(details) if details else {},
            error_message=_cell(row, 10) or None,
            is_user_action=_cell(row, 11).lower() == "true",
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Returns False (and logs) instead of raising when the write fails."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
        except Exception as e:
            logger.warning(
                "audit_event_write_failed",
                event_id=str(event.event_id),
                error=str(e),
            )
            return False
        return True

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Newest first; unreadable rows are skipped."""
        try:
            rows = self._client.get_audit_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to read audit log: {e}")

        events = []
        for row in rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except ValueError as e:
                logger.warning("malformed_audit_row", error=str(e))

        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
