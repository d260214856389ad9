"""
Tests for input validation.
"""

import pytest
from decimal import Decimal

from billbook.ledger.errors import AuthenticationRequiredError, LedgerValidationError
from billbook.ledger.validation import validate_due_amount, validate_principal_id


class TestPrincipalValidation:

    def test_strips_whitespace(self):
        assert validate_principal_id("  user-1 ") == "user-1"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing_principal(self, value):
        with pytest.raises(AuthenticationRequiredError):
            validate_principal_id(value)


class TestDueValidation:
    """Tests for due amount validation."""

    @pytest.mark.parametrize("value,expected", [
        ("150", Decimal("150.00")),
        ("0", Decimal("0.00")),
        (12.5, Decimal("12.50")),
        (0.1, Decimal("0.10")),
        (7, Decimal("7.00")),
        (Decimal("99.99"), Decimal("99.99")),
        (" 3.5 ", Decimal("3.50")),
    ])
    def test_valid_amounts(self, value, expected):
        assert validate_due_amount(value) == expected

    @pytest.mark.parametrize("value", [
        "-0.01", "ten", "", "1.001", "Infinity", "NaN", False, "1e30", Decimal("1e30"),
    ])
    def test_invalid_amounts(self, value):
        with pytest.raises(LedgerValidationError) as exc_info:
            validate_due_amount(value)
        assert exc_info.value.field == "due"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
