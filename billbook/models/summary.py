"""
Aggregate Models

Results of the aggregation engine. These are derived values only:
they are recomputed from a transaction collection on demand and are
never persisted.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


ZERO = Decimal("0")


class LedgerTotals(BaseModel):
    """Income, expense, profit and outstanding due over a collection."""
    model_config = ConfigDict(frozen=True)

    income: Decimal = ZERO
    expense: Decimal = ZERO
    profit: Decimal = Field(
        default=ZERO,
        description="income - expense, may be negative"
    )
    due: Decimal = Field(
        default=ZERO,
        description="Sum of outstanding dues (records with due > 0)"
    )


class DailyTotals(BaseModel):
    """Totals for the records of a single calendar day."""
    model_config = ConfigDict(frozen=True)

    day: date
    income: Decimal = ZERO
    expense: Decimal = ZERO
    due: Decimal = ZERO


class DailyMaxima(BaseModel):
    """Largest single values recorded on one calendar day."""
    model_config = ConfigDict(frozen=True)

    day: date
    max_income: Decimal = ZERO
    max_expense: Decimal = ZERO
    max_due: Decimal = ZERO


class MonthlyBucket(BaseModel):
    """Income, expense and profit for one calendar month."""
    model_config = ConfigDict(frozen=True)

    year: int = Field(..., ge=1)
    month: int = Field(..., ge=1, le=12)
    label: str
    income: Decimal = ZERO
    expense: Decimal = ZERO
    profit: Decimal = ZERO

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)
