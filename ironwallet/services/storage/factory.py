"""
Storage backend selection.

The backend is chosen by IRONWALLET_STORAGE_BACKEND; wallet data and
the audit log always live in the same backend.
"""

from typing import Optional

import structlog

from ironwallet.config import StorageSettings, get_settings
from ironwallet.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsWalletStorage,
)
from ironwallet.services.storage.interface import (
    AuditStorageInterface,
    WalletStorageInterface,
)
from ironwallet.services.storage.memory import InMemoryAuditStorage, InMemoryWalletStorage
from ironwallet.services.storage.sqlite import (
    SQLiteAuditStorage,
    SQLiteDatabase,
    SQLiteWalletStorage,
)

logger = structlog.get_logger(__name__)


def create_storage(
    settings: Optional[StorageSettings] = None,
) -> tuple[WalletStorageInterface, AuditStorageInterface]:
    """
    Build the wallet and audit storage for the configured backend.

    Returns:
        (wallet_storage, audit_storage)
    """
    settings = settings or get_settings().storage
    logger.info("storage_selected", backend=settings.backend)

    if settings.backend == "sqlite":
        database = SQLiteDatabase(settings.sqlite_path)
        return SQLiteWalletStorage(database), SQLiteAuditStorage(database)

    if settings.backend == "google_sheets":
        client = GoogleSheetsClient()
        return GoogleSheetsWalletStorage(client), GoogleSheetsAuditStorage(client)

    return InMemoryWalletStorage(), InMemoryAuditStorage()
