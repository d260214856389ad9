"""
Input Validation

IMPORTANT: Validation NEVER silently fixes issues.
Bad input is rejected before any remote call is attempted, so a
failed validation can never leave the remote collection half-written.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

from billbook.ledger.errors import AuthenticationRequiredError, LedgerValidationError


CENT = Decimal("0.01")


def validate_principal_id(principal_id: Optional[str]) -> str:
    """
    Check that a principal was resolved.

    Returns the stripped principal id.
    """
    if principal_id is None or not str(principal_id).strip():
        raise AuthenticationRequiredError("No authenticated principal")
    return str(principal_id).strip()


def validate_due_amount(value: Union[Decimal, int, float, str]) -> Decimal:
    """
    Validate a new due amount.

    Accepts anything Decimal can parse. Floats go through str() so
    0.1 stays 0.1. The result is quantized to cents.

    Raises:
        LedgerValidationError: value is not a finite number, is negative,
            or has more than two fractional digits
    """
    if isinstance(value, bool):
        raise LedgerValidationError("Due amount must be a number", field="due")
    try:
        amount = Decimal(str(value).strip()) if not isinstance(value, Decimal) else value
    except InvalidOperation:
        raise LedgerValidationError(
            f"Due amount is not a number: {value!r}", field="due"
        )

    if not amount.is_finite():
        raise LedgerValidationError("Due amount must be finite", field="due")
    if amount < 0:
        raise LedgerValidationError(
            f"Due amount cannot be negative: {amount}", field="due"
        )
    try:
        quantized = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # More significant digits than the decimal context can hold in cents
        raise LedgerValidationError(
            f"Due amount is too large: {amount}", field="due"
        )
    if amount != quantized:
        raise LedgerValidationError(
            f"Due amount has more than two decimal places: {amount}", field="due"
        )

    return quantized
