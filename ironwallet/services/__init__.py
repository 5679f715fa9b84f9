"""Services package."""

from ironwallet.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsWalletStorage,
    InMemoryAuditStorage,
    InMemoryWalletStorage,
    NotFoundError,
    SQLiteAuditStorage,
    SQLiteDatabase,
    SQLiteWalletStorage,
    StorageError,
    WalletStorageInterface,
    create_storage,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsWalletStorage",
    "InMemoryAuditStorage",
    "InMemoryWalletStorage",
    "NotFoundError",
    "SQLiteAuditStorage",
    "SQLiteDatabase",
    "SQLiteWalletStorage",
    "StorageError",
    "WalletStorageInterface",
    "create_storage",
]
