"""
Core Transaction Model for Billbook

A transaction record is the atomic unit of the ledger: one income or
expense entry, possibly carrying an outstanding due amount.

DESIGN DECISION: Records are immutable pydantic models.
The ledger snapshot is a tuple of these, so nothing downstream of the
store (filters, aggregation, reports) can write back into it.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


UNTITLED = "Untitled"


class TransactionKind(str, Enum):
    """
    Direction of a transaction.

    Exhaustive: there are no other variants.
    """
    INCOME = "income"
    EXPENSE = "expense"


class Transaction(BaseModel):
    """
    A single income or expense record owned by one principal.

    `occurred_at` is the date the transaction is attributed to,
    which is not necessarily when it was entered.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    # Identity
    id: str = Field(
        ...,
        min_length=1,
        description="Opaque identifier, stable across sync cycles"
    )
    user_id: str = Field(
        ...,
        min_length=1,
        description="Principal that owns this record"
    )

    title: str = Field(
        default="",
        description="Display label (may be empty)"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Transaction amount, always positive"
    )
    kind: TransactionKind
    note: str = Field(
        default="",
        description="Optional free text"
    )
    occurred_at: datetime = Field(
        ...,
        description="When the transaction is attributed to"
    )
    attachment_ref: Optional[str] = Field(
        default=None,
        description="URL of an attached bill or receipt"
    )
    due: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        decimal_places=2,
        description="Outstanding amount still owed (0 = settled)"
    )

    @property
    def display_title(self) -> str:
        return self.title or UNTITLED

    @property
    def occurred_on(self) -> date:
        """Calendar day of the transaction."""
        return self.occurred_at.date()

    @property
    def is_income(self) -> bool:
        return self.kind == TransactionKind.INCOME

    @property
    def has_outstanding_due(self) -> bool:
        return self.due > 0
