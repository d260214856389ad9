"""
Ledger Error Taxonomy

Errors raised by the ledger store. Storage-level exceptions are
translated into these at the store boundary so callers only ever
handle one family.
"""


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class AuthenticationRequiredError(LedgerError):
    """No principal is bound (or resolvable) for the operation."""
    pass


class SyncFailureError(LedgerError):
    """Transport or remote error while fetching or writing records."""
    pass


class LedgerValidationError(LedgerError):
    """Input violates a ledger invariant (e.g. negative due)."""

    def __init__(self, message: str, field: str):
        super().__init__(message)
        self.field = field


class TransactionNotFoundError(LedgerError):
    """Targeted mutation on an id the remote collection doesn't have."""

    def __init__(self, transaction_id: str):
        super().__init__(f"Transaction not found: {transaction_id}")
        self.transaction_id = transaction_id
