"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
SQLite, Google Sheets and in-memory backends share one interface.
"""

from ironwallet.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
    WalletStorageInterface,
)
from ironwallet.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsWalletStorage,
)
from ironwallet.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryWalletStorage,
)
from ironwallet.services.storage.sqlite import (
    SQLiteAuditStorage,
    SQLiteDatabase,
    SQLiteWalletStorage,
)
from ironwallet.services.storage.factory import create_storage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "WalletStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsWalletStorage",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryWalletStorage",
    # SQLite implementation
    "SQLiteAuditStorage",
    "SQLiteDatabase",
    "SQLiteWalletStorage",
    # Backend selection
    "create_storage",
]
