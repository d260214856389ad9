"""
Tests for Billbook data models.

No network calls: models are validated in isolation.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from billbook.models.transaction import Transaction, TransactionKind
from billbook.models.filters import (
    ScopeKind,
    TimeWindow,
    TimeWindowKind,
    TransactionScope,
)
from billbook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


def _transaction(**overrides) -> Transaction:
    fields = dict(
        id="txn-1",
        user_id="user-1",
        title="Electricity",
        amount=Decimal("1500.00"),
        kind=TransactionKind.EXPENSE,
        occurred_at=datetime(2026, 10, 1, 9, 30),
    )
    fields.update(overrides)
    return Transaction(**fields)


class TestTransactionModel:
    """Tests for the Transaction record."""

    def test_transaction_creation(self):
        """Test Transaction defaults."""
        txn = _transaction()
        assert txn.due == Decimal("0")
        assert txn.note == ""
        assert txn.attachment_ref is None
        assert txn.occurred_on == date(2026, 10, 1)

    def test_kind_accepts_string_values(self):
        txn = _transaction(kind="income")
        assert txn.kind is TransactionKind.INCOME
        assert txn.is_income is True

    def test_kind_rejects_unknown_values(self):
        with pytest.raises(ValueError):
            _transaction(kind="transfer")

    def test_amount_must_be_positive(self):
        """Test that zero and negative amounts are rejected."""
        with pytest.raises(ValueError):
            _transaction(amount=Decimal("0"))
        with pytest.raises(ValueError):
            _transaction(amount=Decimal("-10"))

    def test_amount_limited_to_two_decimal_places(self):
        with pytest.raises(ValueError):
            _transaction(amount=Decimal("10.005"))

    def test_due_cannot_be_negative(self):
        with pytest.raises(ValueError):
            _transaction(due=Decimal("-1"))

    def test_due_may_exceed_amount(self):
        """Due is deliberately not capped at the transaction amount."""
        txn = _transaction(amount=Decimal("100"), due=Decimal("250"))
        assert txn.has_outstanding_due is True

    def test_empty_title_displays_as_untitled(self):
        assert _transaction(title="").display_title == "Untitled"
        assert _transaction(title="  ").display_title == "Untitled"
        assert _transaction(title="Rent").display_title == "Rent"

    def test_transaction_is_immutable(self):
        txn = _transaction()
        with pytest.raises(ValueError):
            txn.due = Decimal("5")


class TestFilterSpecs:
    """Tests for the filter option models."""

    def test_custom_window_with_both_bounds(self):
        window = TimeWindow.custom(date(2026, 1, 1), date(2026, 3, 31))
        assert window.kind == TimeWindowKind.CUSTOM
        assert window.has_range is True

    def test_custom_window_missing_bound_has_no_range(self):
        window = TimeWindow.custom(date(2026, 1, 1), None)
        assert window.has_range is False

    def test_inverted_range_rejected(self):
        with pytest.raises(ValueError, match="Range end cannot be before range start"):
            TransactionScope.custom(date(2026, 3, 1), date(2026, 2, 1))

    def test_by_month_scope(self):
        scope = TransactionScope.by_month(date(2026, 5, 17))
        assert scope.kind == ScopeKind.BY_MONTH
        assert scope.month == date(2026, 5, 17)


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.SNAPSHOT_REFRESHED,
            description="Snapshot refreshed",
        )
        assert event.severity == AuditSeverity.INFO
        assert event.principal_id is None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.due_updated(
            principal_id="user-1",
            transaction_id="txn-9",
            new_due="150.00",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "due_updated"
        assert log_dict["entity_id"] == "txn-9"
        assert log_dict["details"]["due"] == "150.00"
        assert log_dict["is_user_action"] is True

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEventBuilder.refresh_failed("user-1", "timeout")
        row = event.to_sheets_row()
        assert len(row) == 12  # Expected number of columns
        assert row[2] == "refresh_failed"
        assert row[3] == "warning"
        assert row[4] == "user-1"
        assert row[10] == "timeout"
        assert row[11] == "False"

    def test_audit_event_builder_report_generated(self):
        event = AuditEventBuilder.report_generated(
            principal_id="user-1",
            period_label="October 2026",
            sections=["summary"],
            record_count=3,
        )
        assert event.event_type == AuditEventType.REPORT_GENERATED
        assert event.details["record_count"] == 3
        assert "October 2026" in event.description


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
