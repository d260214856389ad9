"""Services package."""

from billbook.services.storage import (
    AuditStorageInterface,
    ChangeNotification,
    ChangeSubscription,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionSource,
    InMemoryTransactionSource,
    NotFoundError,
    StorageError,
    TransactionSourceInterface,
)

__all__ = [
    "AuditStorageInterface",
    "ChangeNotification",
    "ChangeSubscription",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionSource",
    "InMemoryTransactionSource",
    "NotFoundError",
    "StorageError",
    "TransactionSourceInterface",
]
