"""
Reports Package

Deterministic report documents and their spreadsheet serialization.
"""

from billbook.reports.builder import (
    DETAIL_COLUMNS,
    MONTHLY_COLUMNS,
    ReportBuilder,
    build_report,
    format_currency,
)
from billbook.reports.xlsx import (
    XLSX_MIME_TYPE,
    XlsxReportWriter,
    render_xlsx,
    report_filename,
)

__all__ = [
    "DETAIL_COLUMNS",
    "MONTHLY_COLUMNS",
    "ReportBuilder",
    "build_report",
    "format_currency",
    "XLSX_MIME_TYPE",
    "XlsxReportWriter",
    "render_xlsx",
    "report_filename",
]
