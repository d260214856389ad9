"""
Data Models Package

This package contains all Pydantic models used in Billbook.
All data flowing through the system must conform to these schemas.
"""

from billbook.models.transaction import (
    UNTITLED,
    Transaction,
    TransactionKind,
)
from billbook.models.summary import (
    DailyMaxima,
    DailyTotals,
    LedgerTotals,
    MonthlyBucket,
)
from billbook.models.filters import (
    ReportPeriod,
    ReportPeriodKind,
    ScopeKind,
    SortOrder,
    TimeWindow,
    TimeWindowKind,
    TransactionScope,
)
from billbook.models.report import (
    CellFormat,
    ReportCell,
    ReportDocument,
    ReportHeader,
    ReportOptions,
    ReportRow,
    ReportSection,
    SectionKind,
    ValueSign,
)
from billbook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "UNTITLED",
    "Transaction",
    "TransactionKind",
    # Aggregates
    "DailyMaxima",
    "DailyTotals",
    "LedgerTotals",
    "MonthlyBucket",
    # Filters
    "ReportPeriod",
    "ReportPeriodKind",
    "ScopeKind",
    "SortOrder",
    "TimeWindow",
    "TimeWindowKind",
    "TransactionScope",
    # Reports
    "CellFormat",
    "ReportCell",
    "ReportDocument",
    "ReportHeader",
    "ReportOptions",
    "ReportRow",
    "ReportSection",
    "SectionKind",
    "ValueSign",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
