"""
Shared fixtures for Billbook tests.

Test strategy:
1. Unit tests for pure components (filters, aggregation, reports)
2. Store tests against the in-memory source
3. Google Sheets tests against fake worksheet objects (no network)
"""

import locale
from datetime import datetime
from decimal import Decimal
from itertools import count

import pytest

from billbook.config import get_settings
from billbook.models.transaction import Transaction, TransactionKind


# Monday 19 October 2026, midday
NOW = datetime(2026, 10, 19, 12, 0, 0)

USER_ID = "user-1"


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch: pytest.MonkeyPatch):
    """Keep cached settings from leaking between tests."""
    monkeypatch.delenv("LEDGER_CURRENCY_SYMBOL", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_txn():
    """Factory for transactions with sensible defaults."""
    ids = count(1)

    def _make(
        amount="100.00",
        kind=TransactionKind.EXPENSE,
        occurred_at=NOW,
        due="0",
        title="",
        user_id=USER_ID,
        id=None,
        note="",
    ) -> Transaction:
        return Transaction(
            id=id or f"txn-{next(ids)}",
            user_id=user_id,
            title=title,
            amount=Decimal(str(amount)),
            kind=kind,
            note=note,
            occurred_at=occurred_at,
            due=Decimal(str(due)),
        )

    return _make


@pytest.fixture
def foreign_time_locale():
    """Switch LC_TIME to a non-English locale; skip when none is installed."""
    previous = locale.setlocale(locale.LC_TIME)
    for name in ("de_DE.UTF-8", "fr_FR.UTF-8", "es_ES.UTF-8"):
        try:
            locale.setlocale(locale.LC_TIME, name)
            break
        except locale.Error:
            continue
    else:
        pytest.skip("no non-English locale installed")
    yield
    locale.setlocale(locale.LC_TIME, previous)
