"""
Filter Pipeline

Pure narrowing and ordering of a ledger snapshot.

Every function takes a sequence of transactions and returns a new
tuple; the input is never mutated. Time-relative filters take an
explicit `now` (defaulting to the current local time) so results are
reproducible.

All date comparisons are made at calendar-day granularity, which is what
makes the time-window and scope filters commute: each one is a
predicate on `occurred_on`, so applying them in either order keeps the
same records.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Callable, Iterable, Optional, Sequence

from billbook.models.filters import (
    ReportPeriod,
    ReportPeriodKind,
    ScopeKind,
    SortOrder,
    TimeWindow,
    TimeWindowKind,
    TransactionScope,
)
from billbook.models.transaction import Transaction


SUNDAY = 6

# Fixed English names so labels do not follow the process locale
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
MONTH_ABBREVIATIONS = tuple(name[:3] for name in MONTH_NAMES)

Predicate = Callable[[Transaction], bool]


def _resolve_now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now()


def _keep(transactions: Iterable[Transaction], predicate: Predicate) -> tuple[Transaction, ...]:
    return tuple(t for t in transactions if predicate(t))


def month_bounds(day: date) -> tuple[date, date]:
    """First and last calendar day of the month containing `day`."""
    last = calendar.monthrange(day.year, day.month)[1]
    return date(day.year, day.month, 1), date(day.year, day.month, last)


def week_bounds(day: date, week_start: int = SUNDAY) -> tuple[date, date]:
    """
    First and last day of the week containing `day`.

    `week_start` is a `date.weekday()` number; the default (Sunday)
    matches the most common locale convention.
    """
    start = day - timedelta(days=(day.weekday() - week_start) % 7)
    return start, start + timedelta(days=6)


def within(start: date, end: date) -> Predicate:
    """Predicate: occurred on a day in [start, end]."""
    return lambda t: start <= t.occurred_on <= end


def apply_time_window(
    transactions: Sequence[Transaction],
    window: TimeWindow,
    now: Optional[datetime] = None,
) -> tuple[Transaction, ...]:
    """Narrow a snapshot to the dashboard's time window."""
    today = _resolve_now(now).date()

    if window.kind == TimeWindowKind.CURRENT_YEAR:
        return _keep(transactions, lambda t: t.occurred_on.year == today.year)
    if window.kind == TimeWindowKind.CURRENT_MONTH:
        return _keep(transactions, within(*month_bounds(today)))
    if window.kind == TimeWindowKind.CUSTOM and window.has_range:
        return _keep(transactions, within(window.start, window.end))

    # ALL, or a custom range missing a bound
    return tuple(transactions)


def apply_scope(
    transactions: Sequence[Transaction],
    scope: TransactionScope,
    now: Optional[datetime] = None,
    week_start: int = SUNDAY,
) -> tuple[Transaction, ...]:
    """Narrow a collection to the transaction list's scope."""
    today = _resolve_now(now).date()

    if scope.kind == ScopeKind.TODAY:
        return _keep(transactions, lambda t: t.occurred_on == today)
    if scope.kind == ScopeKind.THIS_WEEK:
        return _keep(transactions, within(*week_bounds(today, week_start)))
    if scope.kind == ScopeKind.BY_MONTH and scope.month is not None:
        return _keep(transactions, within(*month_bounds(scope.month)))
    if scope.kind == ScopeKind.CUSTOM and scope.has_range:
        return _keep(transactions, within(scope.start, scope.end))

    return tuple(transactions)


_SORT_KEYS = {
    SortOrder.NEWEST_FIRST: (lambda t: t.occurred_at, True),
    SortOrder.OLDEST_FIRST: (lambda t: t.occurred_at, False),
    SortOrder.AMOUNT_DESCENDING: (lambda t: t.amount, True),
    SortOrder.AMOUNT_ASCENDING: (lambda t: t.amount, False),
}


def sort_transactions(
    transactions: Sequence[Transaction],
    order: SortOrder = SortOrder.NEWEST_FIRST,
) -> tuple[Transaction, ...]:
    """
    Order a collection.

    Stable: records with equal keys keep their input order, including
    for the descending orders.
    """
    key, descending = _SORT_KEYS[order]
    return tuple(sorted(transactions, key=key, reverse=descending))


def filter_transactions(
    transactions: Sequence[Transaction],
    window: Optional[TimeWindow] = None,
    scope: Optional[TransactionScope] = None,
    order: Optional[SortOrder] = None,
    now: Optional[datetime] = None,
    week_start: int = SUNDAY,
) -> tuple[Transaction, ...]:
    """Apply window, then scope, then sort. Omitted steps are skipped."""
    now = _resolve_now(now)
    result = tuple(transactions)
    if window is not None:
        result = apply_time_window(result, window, now)
    if scope is not None:
        result = apply_scope(result, scope, now, week_start)
    if order is not None:
        result = sort_transactions(result, order)
    return result


def select_report_period(
    transactions: Sequence[Transaction],
    period: ReportPeriod,
    now: Optional[datetime] = None,
) -> tuple[tuple[Transaction, ...], str]:
    """
    Narrow a snapshot to a report period and describe it.

    Returns:
        (transactions, period_label)
    """
    today = _resolve_now(now).date()

    if period.kind == ReportPeriodKind.YEAR:
        return (
            _keep(transactions, lambda t: t.occurred_on.year == today.year),
            f"Year {today.year}",
        )
    if period.kind == ReportPeriodKind.MONTH:
        return (
            _keep(transactions, within(*month_bounds(today))),
            f"{MONTH_NAMES[today.month - 1]} {today.year}",
        )
    if period.kind == ReportPeriodKind.DAY:
        return (
            _keep(transactions, lambda t: t.occurred_on == today),
            f"{MONTH_NAMES[today.month - 1]} {today.day}, {today.year}",
        )
    if period.kind == ReportPeriodKind.CUSTOM and period.has_range:
        label = (
            f"Custom Range: {_short_date(period.start)} - {_short_date(period.end)}"
        )
        return _keep(transactions, within(period.start, period.end)), label

    return tuple(transactions), "All Time"


def _short_date(day: date) -> str:
    return f"{MONTH_ABBREVIATIONS[day.month - 1]} {day.day}, {day.year}"


def selectable_months(now: Optional[datetime] = None, count: int = 13) -> list[date]:
    """
    First days of the `count` most recent months, newest first.

    These are the choices offered for the by-month scope.
    """
    today = _resolve_now(now).date()
    months = []
    year, month = today.year, today.month
    for _ in range(count):
        months.append(date(year, month, 1))
        year, month = (year - 1, 12) if month == 1 else (year, month - 1)
    return months
