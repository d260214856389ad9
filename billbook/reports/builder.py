"""
Report Builder

Turns a (period-filtered) transaction collection into a ReportDocument.

GUARANTEES:
- Deterministic: identical inputs (including `now`) produce equal documents
- No file format knowledge: serialization is a separate adapter
- Transaction rows keep the caller's order (pre-sort before building)
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

from billbook.config import get_settings
from billbook.ledger.aggregation import monthly_buckets, totals
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
from billbook.models.transaction import Transaction, TransactionKind


SUMMARY_TITLE = "Financial Summary"
MONTHLY_TITLE = "Monthly Financial Overview"
DETAIL_TITLE = "Transaction Details"

MONTHLY_COLUMNS = ("Month", "Income", "Expenses", "Profit/Loss")
DETAIL_COLUMNS = ("Title", "Date", "Type", "Amount", "Due")


def format_currency(value: Decimal, symbol: str) -> str:
    """Format as e.g. "₹1,234.50" or "-₹400.00"."""
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def sign_of(value: Decimal) -> ValueSign:
    """Zero counts as positive (break-even is not a loss)."""
    return ValueSign.POSITIVE if value >= 0 else ValueSign.NEGATIVE


class ReportBuilder:
    """
    Builds financial report documents.

    Settings supply the defaults for the currency symbol, report title
    and the length of the monthly breakdown.
    """

    def __init__(
        self,
        currency_symbol: Optional[str] = None,
        title: Optional[str] = None,
        breakdown_months: Optional[int] = None,
    ):
        settings = get_settings().ledger
        self.currency_symbol = currency_symbol if currency_symbol is not None else settings.currency_symbol
        self.title = title or settings.report_title
        self.breakdown_months = breakdown_months or settings.monthly_breakdown_months

    def build(
        self,
        transactions: Sequence[Transaction],
        period_label: str,
        options: Optional[ReportOptions] = None,
        now: Optional[datetime] = None,
    ) -> ReportDocument:
        """
        Build a report.

        Args:
            transactions: Records already narrowed to the report period
            period_label: Human description of the period ("October 2026")
            options: Which sections to include (all by default)
            now: Reference time for the monthly breakdown window
        """
        options = options or ReportOptions()
        collection = tuple(transactions)
        sections = []

        if options.include_summary:
            sections.append(self._summary_section(collection))

        if options.include_monthly_breakdown:
            sections.append(self._monthly_section(collection, now))

        if options.include_transaction_detail and collection:
            sections.append(self._detail_section(collection))

        return ReportDocument(
            header=ReportHeader(title=self.title, period_label=period_label),
            sections=tuple(sections),
        )

    def _currency(
        self,
        value: Decimal,
        sign: Optional[ValueSign] = None,
    ) -> ReportCell:
        return ReportCell(
            value=value,
            display=format_currency(value, self.currency_symbol),
            format=CellFormat.CURRENCY,
            sign=sign,
        )

    @staticmethod
    def _text(value: str, is_label: bool = False) -> ReportCell:
        return ReportCell(value=value, display=value, is_label=is_label)

    def _summary_section(self, collection: tuple[Transaction, ...]) -> ReportSection:
        summary = totals(collection)
        rows = [
            ("Total Income", self._currency(summary.income)),
            ("Total Expenses", self._currency(summary.expense)),
            ("Profit/Loss", self._currency(summary.profit, sign_of(summary.profit))),
            ("Total Due", self._currency(summary.due)),
        ]
        return ReportSection(
            kind=SectionKind.SUMMARY,
            title=SUMMARY_TITLE,
            rows=tuple(
                ReportRow(cells=(self._text(label, is_label=True), cell))
                for label, cell in rows
            ),
        )

    def _monthly_section(
        self,
        collection: tuple[Transaction, ...],
        now: Optional[datetime],
    ) -> ReportSection:
        buckets = monthly_buckets(collection, self.breakdown_months, now)
        return ReportSection(
            kind=SectionKind.MONTHLY_BREAKDOWN,
            title=MONTHLY_TITLE,
            columns=MONTHLY_COLUMNS,
            rows=tuple(
                ReportRow(cells=(
                    self._text(bucket.label),
                    self._currency(bucket.income),
                    self._currency(bucket.expense),
                    self._currency(bucket.profit, sign_of(bucket.profit)),
                ))
                for bucket in buckets
            ),
        )

    def _detail_section(self, collection: tuple[Transaction, ...]) -> ReportSection:
        rows = []
        for transaction in collection:
            amount_sign = (
                ValueSign.POSITIVE
                if transaction.kind == TransactionKind.INCOME
                else ValueSign.NEGATIVE
            )
            occurred = transaction.occurred_on.isoformat()
            rows.append(ReportRow(cells=(
                self._text(transaction.display_title),
                ReportCell(value=occurred, display=occurred, format=CellFormat.DATE),
                self._text(transaction.kind.value.capitalize()),
                self._currency(transaction.amount, amount_sign),
                self._currency(transaction.due),
            )))

        return ReportSection(
            kind=SectionKind.TRANSACTION_DETAIL,
            title=DETAIL_TITLE,
            columns=DETAIL_COLUMNS,
            rows=tuple(rows),
        )


def build_report(
    transactions: Sequence[Transaction],
    period_label: str,
    options: Optional[ReportOptions] = None,
    now: Optional[datetime] = None,
) -> ReportDocument:
    """Build a report with settings-default presentation."""
    return ReportBuilder().build(transactions, period_label, options, now)
