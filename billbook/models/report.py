"""
Report Document Models

A report is a logical document tree: a header followed by optional
tabular sections. It carries no file-format details. Serialization
adapters (see `billbook.reports.xlsx`) turn it into an artifact.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class SectionKind(str, Enum):
    """Sections a report may contain, in document order."""
    SUMMARY = "summary"
    MONTHLY_BREAKDOWN = "monthly_breakdown"
    TRANSACTION_DETAIL = "transaction_detail"


class CellFormat(str, Enum):
    """How a cell value should be presented."""
    TEXT = "text"
    CURRENCY = "currency"
    DATE = "date"


class ValueSign(str, Enum):
    """Presentation hint for signed values (e.g. green/red)."""
    POSITIVE = "positive"
    NEGATIVE = "negative"


class ReportOptions(BaseModel):
    """Which sections to include in a generated report."""
    model_config = ConfigDict(frozen=True)

    include_summary: bool = True
    include_monthly_breakdown: bool = True
    include_transaction_detail: bool = True


class ReportCell(BaseModel):
    """
    One cell of a report table.

    `value` is the raw value (Decimal for currency cells);
    `display` is the preformatted text for text-only renderers.
    """
    model_config = ConfigDict(frozen=True)

    value: Union[Decimal, str]
    display: str
    format: CellFormat = CellFormat.TEXT
    sign: Optional[ValueSign] = None
    is_label: bool = False


class ReportRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    cells: tuple[ReportCell, ...]


class ReportSection(BaseModel):
    """A titled table. `columns` is empty for label/value sections."""
    model_config = ConfigDict(frozen=True)

    kind: SectionKind
    title: str
    columns: tuple[str, ...] = ()
    rows: tuple[ReportRow, ...] = ()


class ReportHeader(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    period_label: str


class ReportDocument(BaseModel):
    """
    Complete report, ready for serialization.

    Identical inputs to the builder always produce equal documents.
    """
    model_config = ConfigDict(frozen=True)

    header: ReportHeader
    sections: tuple[ReportSection, ...] = Field(default_factory=tuple)

    def section(self, kind: SectionKind) -> Optional[ReportSection]:
        """Get a section by kind, or None if it was not included."""
        for section in self.sections:
            if section.kind == kind:
                return section
        return None
