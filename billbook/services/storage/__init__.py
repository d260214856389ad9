"""
Storage Services Package

Provides abstract interfaces and concrete implementations for the remote
transaction collection. Google Sheets is the production backend; the
in-memory source backs tests and local runs.
"""

from billbook.services.storage.interface import (
    AuditStorageInterface,
    ChangeCallback,
    ChangeEventType,
    ChangeNotification,
    ChangeSubscription,
    ConnectionError,
    NotFoundError,
    StorageError,
    TransactionSourceInterface,
)
from billbook.services.storage.memory import (
    InMemorySubscription,
    InMemoryTransactionSource,
)
from billbook.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionSource,
    SheetsPollingSubscription,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ChangeCallback",
    "ChangeEventType",
    "ChangeNotification",
    "ChangeSubscription",
    "TransactionSourceInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemorySubscription",
    "InMemoryTransactionSource",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionSource",
    "SheetsPollingSubscription",
]
