"""
Aggregation Engine

Pure functions deriving numeric summaries from any transaction
collection, filtered or not. Nothing here is cached or persisted:
callers recompute on every read, so aggregates can never drift from
the snapshot they were computed from.

All arithmetic is Decimal. Records with due == 0 never contribute to
due totals or maxima.
"""

from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from billbook.ledger.filters import MONTH_ABBREVIATIONS, MONTH_NAMES
from billbook.models.summary import (
    ZERO,
    DailyMaxima,
    DailyTotals,
    LedgerTotals,
    MonthlyBucket,
)
from billbook.models.transaction import Transaction, TransactionKind


def _sum(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def _max(values: Iterable[Decimal]) -> Decimal:
    return max(values, default=ZERO)


def _income(transactions: Iterable[Transaction]) -> Decimal:
    return _sum(t.amount for t in transactions if t.kind == TransactionKind.INCOME)


def _expense(transactions: Iterable[Transaction]) -> Decimal:
    return _sum(t.amount for t in transactions if t.kind == TransactionKind.EXPENSE)


def _outstanding(transactions: Iterable[Transaction]) -> Decimal:
    return _sum(t.due for t in transactions if t.due > 0)


def totals(transactions: Iterable[Transaction]) -> LedgerTotals:
    """
    Income, expense, profit and outstanding due.

    profit is income - expense exactly and may be negative.
    """
    collection = tuple(transactions)
    income = _income(collection)
    expense = _expense(collection)
    return LedgerTotals(
        income=income,
        expense=expense,
        profit=income - expense,
        due=_outstanding(collection),
    )


def _on_day(transactions: Iterable[Transaction], day: date) -> tuple[Transaction, ...]:
    return tuple(t for t in transactions if t.occurred_on == day)


def daily_totals(transactions: Iterable[Transaction], day: date) -> DailyTotals:
    """Income, expense and due for records that occurred on `day`."""
    records = _on_day(transactions, day)
    return DailyTotals(
        day=day,
        income=_income(records),
        expense=_expense(records),
        due=_outstanding(records),
    )


def daily_maxima(transactions: Iterable[Transaction], day: date) -> DailyMaxima:
    """
    Largest single income, expense and due recorded on `day`.

    Each value is 0 when no qualifying record exists.
    """
    records = _on_day(transactions, day)
    return DailyMaxima(
        day=day,
        max_income=_max(t.amount for t in records if t.kind == TransactionKind.INCOME),
        max_expense=_max(t.amount for t in records if t.kind == TransactionKind.EXPENSE),
        max_due=_max(t.due for t in records if t.due > 0),
    )


def _month_key(transaction: Transaction) -> tuple[int, int]:
    return transaction.occurred_at.year, transaction.occurred_at.month


def _bucket(year: int, month: int, label: str, records: list[Transaction]) -> MonthlyBucket:
    income = _income(records)
    expense = _expense(records)
    return MonthlyBucket(
        year=year,
        month=month,
        label=label,
        income=income,
        expense=expense,
        profit=income - expense,
    )


def trailing_months(months_back: int, now: Optional[datetime] = None) -> list[tuple[int, int]]:
    """(year, month) pairs for the last `months_back` months, oldest first."""
    if months_back < 1:
        raise ValueError(f"months_back must be at least 1, got {months_back}")

    today = (now or datetime.now()).date()
    # Count months from year 0 so subtraction wraps years
    current = today.year * 12 + (today.month - 1)
    return [
        divmod(index, 12)
        for index in range(current - months_back + 1, current + 1)
    ]


def monthly_buckets(
    transactions: Iterable[Transaction],
    months_back: int,
    now: Optional[datetime] = None,
) -> list[MonthlyBucket]:
    """
    Per-month income, expense and profit over a dense trailing window.

    Always returns exactly `months_back` buckets in chronological order,
    ending with the month of `now`. Months without records are
    zero-filled, never omitted.
    """
    grouped: dict[tuple[int, int], list[Transaction]] = defaultdict(list)
    for transaction in transactions:
        grouped[_month_key(transaction)].append(transaction)

    buckets = []
    for year, zero_based_month in trailing_months(months_back, now):
        month = zero_based_month + 1
        label = f"{MONTH_ABBREVIATIONS[month - 1]} {year}"
        buckets.append(_bucket(year, month, label, grouped.get((year, month), [])))
    return buckets


def monthly_history(transactions: Iterable[Transaction]) -> list[MonthlyBucket]:
    """
    Per-month totals for every month that has records, oldest first.

    Unlike monthly_buckets this is sparse; it backs the all-time chart.
    """
    grouped: dict[tuple[int, int], list[Transaction]] = defaultdict(list)
    for transaction in transactions:
        grouped[_month_key(transaction)].append(transaction)

    return [
        _bucket(year, month, f"{MONTH_NAMES[month - 1]} {year}", records)
        for (year, month), records in sorted(grouped.items())
    ]
