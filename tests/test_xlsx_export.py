"""
Tests for the .xlsx serialization of report documents.

Workbooks are rendered to bytes and read back with openpyxl.
"""

import pytest
from datetime import datetime
from io import BytesIO

from openpyxl import load_workbook

from billbook.models.report import ReportOptions
from billbook.models.transaction import TransactionKind
from billbook.reports.builder import ReportBuilder
from billbook.reports.xlsx import (
    SHEET_TITLE,
    XlsxReportWriter,
    currency_number_format,
    render_xlsx,
    report_filename,
)


# Row layout with all sections and a 12-month breakdown
SUMMARY_TITLE_ROW = 4
MONTHLY_HEADER_ROW = 11
DETAIL_HEADER_ROW = 26


@pytest.fixture
def document(make_txn, now):
    collection = (
        make_txn(title="Salary", amount="1000", kind=TransactionKind.INCOME),
        make_txn(title="Rent", amount="400", due="50", occurred_at=datetime(2026, 10, 2)),
        make_txn(title="", amount="200", kind=TransactionKind.INCOME,
                 occurred_at=datetime(2026, 9, 3)),
    )
    builder = ReportBuilder(currency_symbol="₹", title="Financial Report", breakdown_months=12)
    return builder.build(collection, "All Time", now=now)


def _load(content: bytes):
    return load_workbook(BytesIO(content))[SHEET_TITLE]


class TestHelpers:
    """Tests for naming and number formats."""

    def test_report_filename_uses_timestamp(self):
        assert report_filename(datetime(2026, 10, 19, 14, 30, 5)) == (
            "Financial_Report_20261019_143005.xlsx"
        )

    def test_currency_number_format(self):
        assert currency_number_format("₹") == '"₹"#,##0.00'


class TestWorkbookLayout:
    """Tests for the rendered sheet."""

    def test_header_rows(self, document):
        ws = _load(render_xlsx(document, "₹"))

        assert ws["A1"].value == "Financial Report"
        assert ws["A2"].value == "All Time"
        assert ws["A3"].value is None
        merged = {str(r) for r in ws.merged_cells.ranges}
        assert "A1:E1" in merged
        assert "A2:E2" in merged

    def test_summary_values_are_numeric(self, document):
        ws = _load(render_xlsx(document, "₹"))
        row = SUMMARY_TITLE_ROW

        assert ws.cell(row=row, column=1).value == "Financial Summary"
        assert ws.cell(row=row + 1, column=1).value == "Total Income"
        assert ws.cell(row=row + 1, column=2).value == 1200
        assert ws.cell(row=row + 1, column=2).number_format == '"₹"#,##0.00'
        assert ws.cell(row=row + 3, column=1).value == "Profit/Loss"
        assert ws.cell(row=row + 3, column=2).value == 800
        assert ws.cell(row=row + 4, column=2).value == 50

    def test_profit_colored_by_sign(self, document):
        ws = _load(render_xlsx(document, "₹"))
        profit = ws.cell(row=SUMMARY_TITLE_ROW + 3, column=2)
        assert profit.font.color.rgb == "FF00B050"

    def test_monthly_breakdown_table(self, document):
        ws = _load(render_xlsx(document, "₹"))
        header = [ws.cell(row=MONTHLY_HEADER_ROW, column=c).value for c in range(1, 5)]

        assert header == ["Month", "Income", "Expenses", "Profit/Loss"]
        assert ws.cell(row=MONTHLY_HEADER_ROW, column=1).font.bold is True
        assert ws.cell(row=MONTHLY_HEADER_ROW + 1, column=1).value == "Nov 2025"
        assert ws.cell(row=MONTHLY_HEADER_ROW + 12, column=1).value == "Oct 2026"

    def test_detail_table(self, document):
        ws = _load(render_xlsx(document, "₹"))
        header = [ws.cell(row=DETAIL_HEADER_ROW, column=c).value for c in range(1, 6)]
        first = [ws.cell(row=DETAIL_HEADER_ROW + 1, column=c).value for c in range(1, 6)]
        last_title = ws.cell(row=DETAIL_HEADER_ROW + 3, column=1).value

        assert header == ["Title", "Date", "Type", "Amount", "Due"]
        assert first == ["Salary", "2026-10-19", "Income", 1000, 0]
        assert last_title == "Untitled"

    def test_detail_table_has_auto_filter(self, document):
        ws = XlsxReportWriter("₹").build_workbook(document).active
        assert ws.auto_filter.ref == f"A{DETAIL_HEADER_ROW}:E{DETAIL_HEADER_ROW + 3}"

    def test_header_only_document(self, make_txn, now):
        options = ReportOptions(
            include_summary=False,
            include_monthly_breakdown=False,
            include_transaction_detail=False,
        )
        document = ReportBuilder(currency_symbol="$").build(
            [make_txn()], "Year 2026", options, now
        )

        ws = _load(render_xlsx(document, "$"))

        assert ws["A2"].value == "Year 2026"
        assert ws.max_row == 2

    def test_render_is_valid_zip(self, document):
        content = XlsxReportWriter("₹").render(document)
        assert content[:2] == b"PK"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
