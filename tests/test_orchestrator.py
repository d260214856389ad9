"""
Tests for the end-to-end flows.

Everything runs against the in-memory source.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO

from openpyxl import load_workbook

from billbook.audit import AuditLogger
from billbook.ledger import AuthenticationRequiredError, LedgerStore
from billbook.models.audit import AuditEventType
from billbook.models.filters import (
    ReportPeriod,
    ReportPeriodKind,
    SortOrder,
    TimeWindow,
    TransactionScope,
)
from billbook.models.report import ReportOptions, SectionKind
from billbook.models.transaction import TransactionKind
from billbook.orchestrator import (
    DashboardFlow,
    LedgerSession,
    ReportExportFlow,
    create_app_components,
)
from billbook.reports import XLSX_MIME_TYPE, ReportBuilder
from billbook.services.storage import (
    AuditStorageInterface,
    InMemoryTransactionSource,
    StorageError,
)


USER_ID = "user-1"
SUNDAY = 6


class RecordingAuditStorage(AuditStorageInterface):
    def __init__(self):
        self.events = []

    async def append_event(self, event):
        self.events.append(event)
        return True

    async def get_recent_events(self, limit=100):
        return list(reversed(self.events))[:limit]


@pytest.fixture
def source(make_txn):
    return InMemoryTransactionSource([
        make_txn(id="salary", title="Salary", amount="1000", kind=TransactionKind.INCOME,
                 occurred_at=datetime(2026, 10, 19, 9, 0)),
        make_txn(id="groceries", title="Groceries", amount="150", due="30",
                 occurred_at=datetime(2026, 10, 19, 18, 0)),
        make_txn(id="rent", title="Rent", amount="400",
                 occurred_at=datetime(2026, 10, 5, 9, 0)),
        make_txn(id="bonus", title="Bonus", amount="500", kind=TransactionKind.INCOME,
                 occurred_at=datetime(2025, 12, 20, 9, 0)),
    ])


@pytest.fixture
def audit_storage():
    return RecordingAuditStorage()


@pytest.fixture
def store(source, audit_storage):
    return LedgerStore(source, AuditLogger(audit_storage))


class TestLedgerSession:
    """Tests for the session lifecycle."""

    @pytest.mark.asyncio
    async def test_open_syncs_and_subscribes(self, store, source):
        session = LedgerSession(store)

        assert await session.open(USER_ID) is True

        assert session.is_open is True
        assert len(store.snapshot) == 4
        assert source.subscription_count == 1

    @pytest.mark.asyncio
    async def test_open_without_principal(self, store):
        session = LedgerSession(store)
        with pytest.raises(AuthenticationRequiredError):
            await session.open(None)
        assert session.is_open is False

    @pytest.mark.asyncio
    async def test_live_changes_reach_listener(self, store, source, make_txn):
        versions = []
        session = LedgerSession(store)
        await session.open(USER_ID, on_change=lambda snapshot: versions.append(len(snapshot)))

        await source.add_transaction(make_txn(id="coffee", amount="4"))

        assert versions == [5]

    @pytest.mark.asyncio
    async def test_close_releases_everything(self, store, source):
        session = LedgerSession(store)
        await session.open(USER_ID)

        await session.close()

        assert session.is_open is False
        assert source.subscription_count == 0
        assert store.snapshot == ()
        assert store.principal_id is None

    @pytest.mark.asyncio
    async def test_reopen_switches_principal(self, store, source, make_txn):
        await source.add_transaction(make_txn(id="theirs", user_id="user-2"))
        session = LedgerSession(store)
        await session.open(USER_ID)

        await session.open("user-2")

        assert [t.id for t in store.snapshot] == ["theirs"]
        assert source.subscription_count == 1


class TestDashboardFlow:
    """Tests for the dashboard view."""

    @pytest.mark.asyncio
    async def test_default_view(self, store, now):
        await LedgerSession(store).open(USER_ID)

        view = DashboardFlow(store, week_start=SUNDAY).build_view(now=now)

        assert view.totals.income == Decimal("1500")
        assert view.totals.expense == Decimal("550")
        assert view.totals.profit == Decimal("950")
        assert view.totals.due == Decimal("30")
        assert [t.id for t in view.transactions] == ["groceries", "salary", "rent", "bonus"]
        assert view.snapshot_version == 1
        assert view.error_message is None

    @pytest.mark.asyncio
    async def test_window_drives_totals_and_list(self, store, now):
        await LedgerSession(store).open(USER_ID)

        view = DashboardFlow(store, week_start=SUNDAY).build_view(
            window=TimeWindow.current_year(),
            scope=TransactionScope.this_week(),
            sort=SortOrder.AMOUNT_DESCENDING,
            now=now,
        )

        assert view.totals.income == Decimal("1000")
        assert view.totals.expense == Decimal("550")
        assert [t.id for t in view.transactions] == ["salary", "groceries"]

    @pytest.mark.asyncio
    async def test_today_cards_ignore_window(self, store, now):
        await LedgerSession(store).open(USER_ID)

        view = DashboardFlow(store, week_start=SUNDAY).build_view(
            window=TimeWindow.custom(date(2025, 1, 1), date(2025, 12, 31)),
            now=now,
        )

        assert view.totals.income == Decimal("500")
        assert view.today.income == Decimal("1000")
        assert view.today.expense == Decimal("150")
        assert view.today_maxima.max_due == Decimal("30")
        assert [b.label for b in view.monthly_history] == ["December 2025", "October 2026"]
        assert view.selectable_months[0] == date(2026, 10, 1)

    @pytest.mark.asyncio
    async def test_view_reports_sync_error(self, store, now, monkeypatch):
        await LedgerSession(store).open(USER_ID)

        async def broken_fetch(user_id):
            raise StorageError("offline")

        monkeypatch.setattr(store._source, "fetch_transactions", broken_fetch)
        await store.refresh()

        view = DashboardFlow(store, week_start=SUNDAY).build_view(now=now)
        assert view.error_message == "offline"
        assert len(view.transactions) == 4

    def test_week_start_from_settings(self, store, monkeypatch, now):
        monkeypatch.setenv("LEDGER_WEEK_STARTS_ON", "Monday")
        flow = DashboardFlow(store)
        assert flow._week_start == 0


class TestReportExportFlow:
    """Tests for report generation and download."""

    @pytest.mark.asyncio
    async def test_generate_month_report(self, store, now):
        await LedgerSession(store).open(USER_ID)
        flow = ReportExportFlow(store, builder=ReportBuilder(currency_symbol="₹"))

        document = await flow.generate(ReportPeriod(kind=ReportPeriodKind.MONTH), now=now)

        assert document.header.period_label == "October 2026"
        detail = document.section(SectionKind.TRANSACTION_DETAIL)
        assert [row.cells[0].value for row in detail.rows] == ["Groceries", "Salary", "Rent"]

    @pytest.mark.asyncio
    async def test_generate_respects_sort(self, store, now):
        await LedgerSession(store).open(USER_ID)
        flow = ReportExportFlow(store, builder=ReportBuilder(currency_symbol="₹"))

        document = await flow.generate(sort=SortOrder.AMOUNT_ASCENDING, now=now)

        detail = document.section(SectionKind.TRANSACTION_DETAIL)
        assert [row.cells[0].value for row in detail.rows] == [
            "Groceries", "Rent", "Bonus", "Salary"
        ]

    @pytest.mark.asyncio
    async def test_export_produces_workbook(self, store, now, audit_storage):
        await LedgerSession(store).open(USER_ID)
        flow = ReportExportFlow(
            store,
            builder=ReportBuilder(currency_symbol="₹"),
            audit_logger=AuditLogger(audit_storage),
        )

        exported = await flow.export(ReportPeriod(kind=ReportPeriodKind.DAY), now=now)

        assert exported.filename == "Financial_Report_20261019_120000.xlsx"
        assert exported.mime_type == XLSX_MIME_TYPE
        sheet = load_workbook(BytesIO(exported.content)).active
        assert sheet["A2"].value == "October 19, 2026"

        types = [event.event_type for event in audit_storage.events]
        assert AuditEventType.REPORT_GENERATED in types
        assert AuditEventType.REPORT_EXPORTED in types
        generated, exported_event = [
            e for e in audit_storage.events
            if e.event_type in (AuditEventType.REPORT_GENERATED, AuditEventType.REPORT_EXPORTED)
        ]
        assert generated.correlation_id == exported_event.correlation_id

    @pytest.mark.asyncio
    async def test_empty_period_has_no_detail(self, store, now):
        await LedgerSession(store).open(USER_ID)
        flow = ReportExportFlow(store, builder=ReportBuilder(currency_symbol="₹"))
        period = ReportPeriod(
            kind=ReportPeriodKind.CUSTOM,
            start=date(2024, 1, 1),
            end=date(2024, 1, 31),
        )

        document = await flow.generate(period, ReportOptions(), now=now)

        assert document.section(SectionKind.TRANSACTION_DETAIL) is None
        assert document.header.period_label == "Custom Range: Jan 1, 2024 - Jan 31, 2024"


class TestCreateAppComponents:
    """Tests for the component factory."""

    @pytest.mark.asyncio
    async def test_in_memory_components(self):
        session, dashboard, export, sheets_client = create_app_components(use_storage=False)

        assert sheets_client is None
        assert await session.open(USER_ID) is True
        assert dashboard.build_view().transactions == ()
        await session.close()

    def test_explicit_source_is_used(self, source):
        session, _, _, sheets_client = create_app_components(source=source)
        assert sheets_client is None
        assert session.store._source is source


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
