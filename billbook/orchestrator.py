"""
Main Orchestrator for Billbook

This module ties together all the components and defines the
end-to-end flows for:
1. Session (bind principal → initial sync → live change feed → teardown)
2. Dashboard (snapshot → time window → aggregates, scoped + sorted list)
3. Report export (snapshot → period → document → .xlsx artifact)

DESIGN DECISION: Flows only ever read the store's snapshot.
Every number they return is recomputed from it on each call, so the
dashboard and the exported report can never disagree with the ledger.
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from billbook.audit import AuditLogger, configure_logging, create_correlation_id
from billbook.config import get_settings
from billbook.ledger import (
    ChangeHandle,
    LedgerStore,
    daily_maxima,
    daily_totals,
    filter_transactions,
    monthly_history,
    select_report_period,
    selectable_months,
    totals,
)
from billbook.ledger.store import SnapshotListener
from billbook.models.filters import (
    ReportPeriod,
    SortOrder,
    TimeWindow,
    TransactionScope,
)
from billbook.models.report import ReportDocument, ReportOptions
from billbook.models.summary import DailyMaxima, DailyTotals, LedgerTotals, MonthlyBucket
from billbook.models.transaction import Transaction
from billbook.reports import XLSX_MIME_TYPE, ReportBuilder, XlsxReportWriter, report_filename
from billbook.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionSource,
    InMemoryTransactionSource,
    TransactionSourceInterface,
)


class LedgerSession:
    """
    Owns the store's lifetime for one signed-in principal.

    Flow:
    1. open(principal) → bind, initial refresh, subscribe to changes
    2. ... dashboard / export flows read the snapshot ...
    3. close() → unsubscribe and clear (principal change or sign-out)
    """

    def __init__(self, store: LedgerStore):
        self._store = store
        self._handle: Optional[ChangeHandle] = None

    @property
    def store(self) -> LedgerStore:
        return self._store

    @property
    def is_open(self) -> bool:
        return self._handle is not None and self._handle.active

    async def open(
        self,
        principal_id: Optional[str],
        on_change: Optional[SnapshotListener] = None,
    ) -> bool:
        """
        Start a session.

        Returns:
            True if the initial refresh succeeded. On False the session is
            still live and `store.error` says why; a later change
            notification or retry() may recover.
        """
        if self._handle is not None:
            await self.close()
        await self._store.initialize(principal_id)
        synced = await self._store.refresh()
        self._handle = await self._store.subscribe(on_change)
        return synced

    async def retry(self) -> bool:
        """Retry after a sync failure."""
        return await self._store.refresh()

    async def close(self) -> None:
        if self._handle is not None and self._handle.active:
            await self._handle.unsubscribe()
        self._handle = None
        await self._store.teardown()


class DashboardView(BaseModel):
    """Everything the dashboard shows, derived from one snapshot."""
    model_config = ConfigDict(frozen=True)

    window: TimeWindow
    scope: TransactionScope
    sort: SortOrder
    totals: LedgerTotals
    today: DailyTotals
    today_maxima: DailyMaxima
    monthly_history: tuple[MonthlyBucket, ...]
    transactions: tuple[Transaction, ...]
    selectable_months: tuple[date, ...]
    snapshot_version: int
    error_message: Optional[str] = None
    loading: bool = False


class DashboardFlow:
    """
    Derives the dashboard from the store snapshot.

    - Summary totals follow the time window
    - The transaction list applies the scope and sort on top of the window
    - Today's cards and the monthly chart always use the whole snapshot
    """

    def __init__(self, store: LedgerStore, week_start: Optional[int] = None):
        self._store = store
        self._week_start = (
            week_start
            if week_start is not None
            else get_settings().ledger.week_start_weekday
        )

    def build_view(
        self,
        window: Optional[TimeWindow] = None,
        scope: Optional[TransactionScope] = None,
        sort: SortOrder = SortOrder.NEWEST_FIRST,
        now: Optional[datetime] = None,
    ) -> DashboardView:
        window = window or TimeWindow.all()
        scope = scope or TransactionScope.all()
        now = now or datetime.now()
        snapshot = self._store.read()
        today = now.date()

        windowed = filter_transactions(snapshot, window=window, now=now)
        listed = filter_transactions(
            windowed,
            scope=scope,
            order=sort,
            now=now,
            week_start=self._week_start,
        )
        error = self._store.error

        return DashboardView(
            window=window,
            scope=scope,
            sort=sort,
            totals=totals(windowed),
            today=daily_totals(snapshot, today),
            today_maxima=daily_maxima(snapshot, today),
            monthly_history=tuple(monthly_history(snapshot)),
            transactions=listed,
            selectable_months=tuple(selectable_months(now)),
            snapshot_version=self._store.version,
            error_message=str(error) if error else None,
            loading=self._store.loading,
        )


class ExportedReport(BaseModel):
    """A serialized report ready for download."""
    model_config = ConfigDict(frozen=True)

    filename: str
    mime_type: str = XLSX_MIME_TYPE
    content: bytes
    document: ReportDocument


class ReportExportFlow:
    """
    Orchestrates the report download.

    Flow:
    1. Narrow the snapshot to the chosen period (and get its label)
    2. Build the report document
    3. Serialize to .xlsx and name it with the generation time
    """

    def __init__(
        self,
        store: LedgerStore,
        builder: Optional[ReportBuilder] = None,
        writer: Optional[XlsxReportWriter] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._builder = builder or ReportBuilder()
        self._writer = writer or XlsxReportWriter(self._builder.currency_symbol)
        self._audit_logger = audit_logger

    async def generate(
        self,
        period: Optional[ReportPeriod] = None,
        options: Optional[ReportOptions] = None,
        sort: SortOrder = SortOrder.NEWEST_FIRST,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ReportDocument:
        """Build the report document for a period."""
        period = period or ReportPeriod()
        now = now or datetime.now()

        selected, label = select_report_period(self._store.read(), period, now)
        selected = filter_transactions(selected, order=sort)
        document = self._builder.build(selected, label, options, now)

        if self._audit_logger:
            await self._audit_logger.log_report_generated(
                principal_id=self._store.principal_id,
                period_label=label,
                sections=[section.kind.value for section in document.sections],
                record_count=len(selected),
                correlation_id=correlation_id,
            )

        return document

    async def export(
        self,
        period: Optional[ReportPeriod] = None,
        options: Optional[ReportOptions] = None,
        sort: SortOrder = SortOrder.NEWEST_FIRST,
        now: Optional[datetime] = None,
    ) -> ExportedReport:
        """Build and serialize the report."""
        correlation_id = create_correlation_id()
        now = now or datetime.now()

        document = await self.generate(period, options, sort, now, correlation_id)
        content = self._writer.render(document)
        filename = report_filename(now)

        if self._audit_logger:
            await self._audit_logger.log_report_exported(
                principal_id=self._store.principal_id,
                filename=filename,
                size_bytes=len(content),
                correlation_id=correlation_id,
            )

        return ExportedReport(filename=filename, content=content, document=document)


def create_app_components(
    use_storage: bool = True,
    source: Optional[TransactionSourceInterface] = None,
) -> tuple[LedgerSession, DashboardFlow, ReportExportFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run against an in-memory source.
        source: Explicit transaction source (overrides use_storage)

    Returns:
        (session, dashboard_flow, report_export_flow, sheets_client)
    """
    configure_logging(get_settings().app.log_level)

    sheets_client = None
    audit_logger = AuditLogger()  # Local-only logging

    if source is None and use_storage:
        sheets_client = GoogleSheetsClient()
        source = GoogleSheetsTransactionSource(sheets_client)
        audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
    elif source is None:
        source = InMemoryTransactionSource()

    store = LedgerStore(source, audit_logger)

    return (
        LedgerSession(store),
        DashboardFlow(store),
        ReportExportFlow(store, audit_logger=audit_logger),
        sheets_client,
    )
