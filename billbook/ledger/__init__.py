"""
Ledger Package

The ledger store plus the pure filter and aggregation functions that
operate on its snapshots.
"""

from billbook.ledger.errors import (
    AuthenticationRequiredError,
    LedgerError,
    LedgerValidationError,
    SyncFailureError,
    TransactionNotFoundError,
)
from billbook.ledger.validation import validate_due_amount, validate_principal_id
from billbook.ledger.filters import (
    apply_scope,
    apply_time_window,
    filter_transactions,
    month_bounds,
    select_report_period,
    selectable_months,
    sort_transactions,
    week_bounds,
)
from billbook.ledger.aggregation import (
    daily_maxima,
    daily_totals,
    monthly_buckets,
    monthly_history,
    totals,
    trailing_months,
)
from billbook.ledger.store import ChangeHandle, LedgerStore

__all__ = [
    # Errors
    "AuthenticationRequiredError",
    "LedgerError",
    "LedgerValidationError",
    "SyncFailureError",
    "TransactionNotFoundError",
    # Validation
    "validate_due_amount",
    "validate_principal_id",
    # Filters
    "apply_scope",
    "apply_time_window",
    "filter_transactions",
    "month_bounds",
    "select_report_period",
    "selectable_months",
    "sort_transactions",
    "week_bounds",
    # Aggregation
    "daily_maxima",
    "daily_totals",
    "monthly_buckets",
    "monthly_history",
    "totals",
    "trailing_months",
    # Store
    "ChangeHandle",
    "LedgerStore",
]
