"""
Spreadsheet Export

Serializes a ReportDocument to an .xlsx workbook with openpyxl.

Layout (single sheet, columns A-E):
- Row 1: report title, row 2: period label, then a blank row
- Each section: a merged title row, an optional column header row,
  the data rows, then a blank separator row
- The transaction detail table gets an auto-filter

Sign hints become green/red fonts; currency cells use a two-decimal
number format prefixed with the document's currency symbol.
"""

from datetime import datetime
from io import BytesIO
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from billbook.config import get_settings
from billbook.models.report import (
    CellFormat,
    ReportCell,
    ReportDocument,
    ReportSection,
    SectionKind,
    ValueSign,
)


SHEET_TITLE = "Financial Report"
XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
LAST_COLUMN = 5

TITLE_FONT = Font(bold=True, size=18, color="FF2F5496")
PERIOD_FONT = Font(size=14, italic=True)
SECTION_FONT = Font(bold=True, size=14, color="FF2F5496")
BOLD = Font(bold=True)
POSITIVE_COLOR = "FF00B050"
NEGATIVE_COLOR = "FFC00000"
HEADER_FILL = PatternFill(fill_type="solid", fgColor="FFD9E1F2")
THIN = Side(style="thin")
HEADER_BORDER = Border(top=THIN, left=THIN, bottom=THIN, right=THIN)
ROW_BORDER = Border(left=THIN, right=THIN, bottom=THIN)
CENTER = Alignment(horizontal="center")
RIGHT = Alignment(horizontal="right")

COLUMN_WIDTHS = {
    SectionKind.SUMMARY: [20, 20],
    SectionKind.MONTHLY_BREAKDOWN: [15, 15, 15, 15],
    SectionKind.TRANSACTION_DETAIL: [25, 12, 10, 15, 15],
}


def currency_number_format(symbol: str) -> str:
    return f'"{symbol}"#,##0.00'


def report_filename(generated_at: Optional[datetime] = None) -> str:
    """File name with a generation timestamp, e.g. Financial_Report_20261019_143005.xlsx"""
    generated_at = generated_at or datetime.now()
    return f"Financial_Report_{generated_at:%Y%m%d_%H%M%S}.xlsx"


class XlsxReportWriter:
    """Writes ReportDocuments as styled single-sheet workbooks."""

    def __init__(self, currency_symbol: Optional[str] = None):
        if currency_symbol is None:
            currency_symbol = get_settings().ledger.currency_symbol
        self.number_format = currency_number_format(currency_symbol)

    def build_workbook(self, document: ReportDocument) -> Workbook:
        workbook = Workbook()
        ws = workbook.active
        ws.title = SHEET_TITLE

        self._merged_row(ws, document.header.title, TITLE_FONT)
        ws.row_dimensions[1].height = 30
        self._merged_row(ws, document.header.period_label, PERIOD_FONT)
        ws.append([])

        for section in document.sections:
            self._write_section(ws, section)

        return workbook

    def render(self, document: ReportDocument) -> bytes:
        """Serialize to .xlsx bytes."""
        buffer = BytesIO()
        self.build_workbook(document).save(buffer)
        return buffer.getvalue()

    def _merged_row(self, ws: Worksheet, text: str, font: Font) -> int:
        ws.append([text])
        row = ws.max_row
        ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=LAST_COLUMN)
        cell = ws.cell(row=row, column=1)
        cell.font = font
        cell.alignment = CENTER
        return row

    def _write_section(self, ws: Worksheet, section: ReportSection) -> None:
        self._merged_row(ws, section.title, SECTION_FONT)

        header_row = None
        if section.columns:
            ws.append(list(section.columns))
            header_row = ws.max_row
            for column in range(1, len(section.columns) + 1):
                cell = ws.cell(row=header_row, column=column)
                cell.font = BOLD
                cell.fill = HEADER_FILL
                cell.border = HEADER_BORDER

        tabular = bool(section.columns)
        for report_row in section.rows:
            ws.append([self._raw_value(cell) for cell in report_row.cells])
            row = ws.max_row
            for column, report_cell in enumerate(report_row.cells, start=1):
                self._style_cell(ws.cell(row=row, column=column), report_cell, tabular)

        if section.kind == SectionKind.TRANSACTION_DETAIL and header_row and section.rows:
            last_column = get_column_letter(len(section.columns))
            ws.auto_filter.ref = f"A{header_row}:{last_column}{ws.max_row}"

        for index, width in enumerate(COLUMN_WIDTHS.get(section.kind, []), start=1):
            ws.column_dimensions[get_column_letter(index)].width = width

        ws.append([])

    @staticmethod
    def _raw_value(cell: ReportCell):
        if cell.format == CellFormat.CURRENCY:
            return cell.value
        return cell.display

    def _style_cell(self, target, report_cell: ReportCell, tabular: bool) -> None:
        if report_cell.format == CellFormat.CURRENCY:
            target.number_format = self.number_format
            target.alignment = RIGHT

        if report_cell.sign is not None:
            color = POSITIVE_COLOR if report_cell.sign == ValueSign.POSITIVE else NEGATIVE_COLOR
            target.font = Font(bold=not tabular, color=color)
        elif report_cell.is_label:
            target.font = BOLD

        if tabular:
            target.border = ROW_BORDER


def render_xlsx(
    document: ReportDocument,
    currency_symbol: Optional[str] = None,
) -> bytes:
    """Serialize a report document to .xlsx bytes."""
    return XlsxReportWriter(currency_symbol).render(document)
