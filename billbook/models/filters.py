"""
Filter and Sort Options

Plain descriptions of how to narrow and order a ledger snapshot.
The functions that apply them live in `billbook.ledger.filters`.

DESIGN DECISION: A custom range with a missing bound is not an error.
It degrades to "all" so a half-filled date picker never hides data.
"""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator


class TimeWindowKind(str, Enum):
    """Dashboard-level time window."""
    ALL = "all"
    CURRENT_YEAR = "current_year"
    CURRENT_MONTH = "current_month"
    CUSTOM = "custom"


class ScopeKind(str, Enum):
    """Transaction-list scope, applied independently of the time window."""
    ALL = "all"
    TODAY = "today"
    THIS_WEEK = "this_week"
    BY_MONTH = "by_month"
    CUSTOM = "custom"


class SortOrder(str, Enum):
    """Ordering options for the transaction list."""
    NEWEST_FIRST = "newest_first"
    OLDEST_FIRST = "oldest_first"
    AMOUNT_DESCENDING = "amount_descending"
    AMOUNT_ASCENDING = "amount_ascending"


class ReportPeriodKind(str, Enum):
    """Period choices offered when downloading a report."""
    ALL = "all"
    YEAR = "year"
    MONTH = "month"
    DAY = "day"
    CUSTOM = "custom"


class _DateRangeMixin(BaseModel):
    """Shared inclusive date bounds for the custom variants."""
    model_config = ConfigDict(frozen=True)

    start: Optional[date] = None
    end: Optional[date] = None

    @property
    def has_range(self) -> bool:
        return self.start is not None and self.end is not None

    @model_validator(mode='after')
    def validate_range(self):
        if self.has_range and self.end < self.start:
            raise ValueError("Range end cannot be before range start")
        return self


class TimeWindow(_DateRangeMixin):
    """
    Which part of the ledger the dashboard summarizes.

    Usage:
        TimeWindow.all()
        TimeWindow.custom(date(2026, 1, 1), date(2026, 3, 31))
    """

    kind: TimeWindowKind = TimeWindowKind.ALL

    @classmethod
    def all(cls) -> "TimeWindow":
        return cls(kind=TimeWindowKind.ALL)

    @classmethod
    def current_year(cls) -> "TimeWindow":
        return cls(kind=TimeWindowKind.CURRENT_YEAR)

    @classmethod
    def current_month(cls) -> "TimeWindow":
        return cls(kind=TimeWindowKind.CURRENT_MONTH)

    @classmethod
    def custom(cls, start: Optional[date], end: Optional[date]) -> "TimeWindow":
        return cls(kind=TimeWindowKind.CUSTOM, start=start, end=end)


class TransactionScope(_DateRangeMixin):
    """
    Which transactions the detail list shows.

    `month` is only read for BY_MONTH; any day of the month may be given.
    """

    kind: ScopeKind = ScopeKind.ALL
    month: Optional[date] = None

    @classmethod
    def all(cls) -> "TransactionScope":
        return cls(kind=ScopeKind.ALL)

    @classmethod
    def today(cls) -> "TransactionScope":
        return cls(kind=ScopeKind.TODAY)

    @classmethod
    def this_week(cls) -> "TransactionScope":
        return cls(kind=ScopeKind.THIS_WEEK)

    @classmethod
    def by_month(cls, month: Optional[date]) -> "TransactionScope":
        return cls(kind=ScopeKind.BY_MONTH, month=month)

    @classmethod
    def custom(cls, start: Optional[date], end: Optional[date]) -> "TransactionScope":
        return cls(kind=ScopeKind.CUSTOM, start=start, end=end)


class ReportPeriod(_DateRangeMixin):
    """Period selected in the report download dialog."""

    kind: ReportPeriodKind = ReportPeriodKind.ALL
