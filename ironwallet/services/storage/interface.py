"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run against SQLite locally and Google Sheets for users who want
   to see their data in a spreadsheet
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
One group of methods per table, and only the queries the flows need.

Every implementation must enforce the same uniqueness rules and raise
DuplicateError when they are violated:
- one profile per user
- one category per (user, category_type)
- one income split per (user, category)
- one treat wallet per user
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from ironwallet.models.finance import (
    BudgetCategory,
    CategoryType,
    IncomeSplit,
    LockedSaving,
    LockStatus,
    MonthlyReport,
    Profile,
    Transaction,
    TransactionType,
    TreatWallet,
)
from ironwallet.models.audit import AuditEvent


class WalletStorageInterface(ABC):
    """
    Abstract interface for wallet storage operations.

    Any storage implementation (SQLite, Google Sheets, in-memory)
    must implement these methods.
    """

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_profile(self, user_id: UUID) -> Optional[Profile]:
        """Return the user's profile, or None."""
        pass

    @abstractmethod
    async def save_profile(self, profile: Profile) -> Profile:
        """
        Insert a new profile.

        Raises:
            DuplicateError: If the user already has a profile
        """
        pass

    @abstractmethod
    async def update_profile(self, profile: Profile) -> Profile:
        """
        Update an existing profile.

        Raises:
            NotFoundError: If the profile doesn't exist
        """
        pass

    # -------------------------------------------------------------------------
    # Budget categories
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_categories(self, user_id: UUID) -> list[BudgetCategory]:
        """All of the user's categories, in CategoryType order."""
        pass

    @abstractmethod
    async def get_category(
        self,
        user_id: UUID,
        category_type: CategoryType,
    ) -> Optional[BudgetCategory]:
        """The user's category of the given type, or None."""
        pass

    @abstractmethod
    async def get_category_by_id(self, category_id: UUID) -> Optional[BudgetCategory]:
        """A category by primary key, or None."""
        pass

    @abstractmethod
    async def save_category(self, category: BudgetCategory) -> BudgetCategory:
        """
        Insert a new category.

        Raises:
            DuplicateError: If the user already has a category of this type
        """
        pass

    @abstractmethod
    async def update_category(self, category: BudgetCategory) -> BudgetCategory:
        """
        Update an existing category.

        Raises:
            NotFoundError: If the category doesn't exist
        """
        pass

    # -------------------------------------------------------------------------
    # Income splits
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_income_splits(
        self,
        user_id: UUID,
        active_only: bool = True,
    ) -> list[IncomeSplit]:
        """The user's income split rows."""
        pass

    @abstractmethod
    async def save_income_split(self, split: IncomeSplit) -> IncomeSplit:
        """
        Insert a new income split.

        Raises:
            DuplicateError: If the category already has a split
        """
        pass

    @abstractmethod
    async def update_income_split(self, split: IncomeSplit) -> IncomeSplit:
        """
        Update an existing income split.

        Raises:
            NotFoundError: If the split doesn't exist
        """
        pass

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    @abstractmethod
    async def save_transaction(self, transaction: Transaction) -> Transaction:
        """Insert a transaction."""
        pass

    @abstractmethod
    async def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        """A transaction by ID, or None."""
        pass

    @abstractmethod
    async def list_transactions(
        self,
        user_id: UUID,
        transaction_type: Optional[TransactionType] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: Optional[int] = 50,
        offset: int = 0,
    ) -> list[Transaction]:
        """
        List transactions with optional filters.

        Args:
            user_id: Owner of the transactions
            transaction_type: Only this type
            date_from: transaction_date on or after this instant
            date_to: transaction_date on or before this instant
            limit: Maximum number of results (None for all)
            offset: Number of results to skip

        Returns:
            Matching transactions, newest transaction_date first
        """
        pass

    # -------------------------------------------------------------------------
    # Locked savings
    # -------------------------------------------------------------------------

    @abstractmethod
    async def save_locked_saving(self, saving: LockedSaving) -> LockedSaving:
        """Insert a locked saving."""
        pass

    @abstractmethod
    async def get_locked_saving(self, saving_id: UUID) -> Optional[LockedSaving]:
        """A locked saving by ID, or None."""
        pass

    @abstractmethod
    async def update_locked_saving(self, saving: LockedSaving) -> LockedSaving:
        """
        Update an existing locked saving.

        Raises:
            NotFoundError: If the saving doesn't exist
        """
        pass

    @abstractmethod
    async def list_locked_savings(
        self,
        user_id: UUID,
        statuses: Optional[Iterable[LockStatus]] = None,
    ) -> list[LockedSaving]:
        """The user's locked savings, earliest unlock_date first."""
        pass

    # -------------------------------------------------------------------------
    # Treat wallet
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_treat_wallet(self, user_id: UUID) -> Optional[TreatWallet]:
        """The user's treat wallet, or None."""
        pass

    @abstractmethod
    async def save_treat_wallet(self, wallet: TreatWallet) -> TreatWallet:
        """
        Insert a treat wallet.

        Raises:
            DuplicateError: If the user already has one
        """
        pass

    @abstractmethod
    async def update_treat_wallet(self, wallet: TreatWallet) -> TreatWallet:
        """
        Update an existing treat wallet.

        Raises:
            NotFoundError: If the wallet doesn't exist
        """
        pass

    # -------------------------------------------------------------------------
    # Monthly reports
    # -------------------------------------------------------------------------

    @abstractmethod
    async def save_monthly_report(self, report: MonthlyReport) -> MonthlyReport:
        """
        Insert or replace the report for (user, month, year).

        A replaced report keeps the ID of the one already stored;
        the returned model carries that ID.
        """
        pass

    @abstractmethod
    async def get_monthly_report(
        self,
        user_id: UUID,
        year: int,
        month: int,
    ) -> Optional[MonthlyReport]:
        """The report for a month, or None."""
        pass

    @abstractmethod
    async def list_monthly_reports(self, user_id: UUID) -> list[MonthlyReport]:
        """All reports, newest month first."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """All events for a correlation ID, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """All events for a specific entity, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """The most recent audit events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
