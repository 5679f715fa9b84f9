"""
In-Memory Storage Implementation

Used for tests and for running the flows without any backend configured.
Models are copied on the way in and on the way out, so a caller mutating
a returned object never changes what is stored until it calls update_*.
"""

from datetime import datetime
from typing import Iterable, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel

from ironwallet.models.audit import AuditEvent
from ironwallet.models.finance import (
    CATEGORY_ORDER,
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
from ironwallet.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    WalletStorageInterface,
)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _copy(model: ModelT) -> ModelT:
    return model.model_copy(deep=True)


class InMemoryWalletStorage(WalletStorageInterface):
    """Dict-backed wallet storage keyed by primary key."""

    def __init__(self):
        self._profiles: dict[UUID, Profile] = {}
        self._categories: dict[UUID, BudgetCategory] = {}
        self._splits: dict[UUID, IncomeSplit] = {}
        self._transactions: dict[UUID, Transaction] = {}
        self._savings: dict[UUID, LockedSaving] = {}
        self._wallets: dict[UUID, TreatWallet] = {}
        self._reports: dict[UUID, MonthlyReport] = {}

    def _insert(self, table: dict, model: ModelT, label: str) -> ModelT:
        if model.id in table:
            raise DuplicateError(f"{label} already exists: {model.id}")
        table[model.id] = _copy(model)
        return _copy(model)

    def _replace(self, table: dict, model: ModelT, label: str) -> ModelT:
        if model.id not in table:
            raise NotFoundError(f"{label} not found: {model.id}")
        table[model.id] = _copy(model)
        return _copy(model)

    # Profiles

    async def get_profile(self, user_id: UUID) -> Optional[Profile]:
        for profile in self._profiles.values():
            if profile.user_id == user_id:
                return _copy(profile)
        return None

    async def save_profile(self, profile: Profile) -> Profile:
        if await self.get_profile(profile.user_id):
            raise DuplicateError(f"Profile already exists for user {profile.user_id}")
        return self._insert(self._profiles, profile, "Profile")

    async def update_profile(self, profile: Profile) -> Profile:
        return self._replace(self._profiles, profile, "Profile")

    # Budget categories

    async def list_categories(self, user_id: UUID) -> list[BudgetCategory]:
        categories = [c for c in self._categories.values() if c.user_id == user_id]
        categories.sort(key=lambda c: CATEGORY_ORDER.index(c.category_type))
        return [_copy(c) for c in categories]

    async def get_category(
        self,
        user_id: UUID,
        category_type: CategoryType,
    ) -> Optional[BudgetCategory]:
        for category in self._categories.values():
            if category.user_id == user_id and category.category_type == category_type:
                return _copy(category)
        return None

    async def get_category_by_id(self, category_id: UUID) -> Optional[BudgetCategory]:
        category = self._categories.get(category_id)
        return _copy(category) if category else None

    async def save_category(self, category: BudgetCategory) -> BudgetCategory:
        if await self.get_category(category.user_id, category.category_type):
            raise DuplicateError(
                f"Category {category.category_type.value} already exists for user {category.user_id}"
            )
        return self._insert(self._categories, category, "Category")

    async def update_category(self, category: BudgetCategory) -> BudgetCategory:
        return self._replace(self._categories, category, "Category")

    # Income splits

    async def list_income_splits(
        self,
        user_id: UUID,
        active_only: bool = True,
    ) -> list[IncomeSplit]:
        return [
            _copy(s) for s in self._splits.values()
            if s.user_id == user_id and (s.is_active or not active_only)
        ]

    async def save_income_split(self, split: IncomeSplit) -> IncomeSplit:
        for existing in self._splits.values():
            if existing.user_id == split.user_id and existing.category_id == split.category_id:
                raise DuplicateError(f"Income split already exists for category {split.category_id}")
        if split.category_id not in self._categories:
            raise NotFoundError(f"Category not found: {split.category_id}")
        return self._insert(self._splits, split, "Income split")

    async def update_income_split(self, split: IncomeSplit) -> IncomeSplit:
        return self._replace(self._splits, split, "Income split")

    # Transactions

    async def save_transaction(self, transaction: Transaction) -> Transaction:
        return self._insert(self._transactions, transaction, "Transaction")

    async def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        transaction = self._transactions.get(transaction_id)
        return _copy(transaction) if transaction else None

    async def list_transactions(
        self,
        user_id: UUID,
        transaction_type: Optional[TransactionType] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: Optional[int] = 50,
        offset: int = 0,
    ) -> list[Transaction]:
        transactions = []
        for t in self._transactions.values():
            if t.user_id != user_id:
                continue
            if transaction_type and t.transaction_type != transaction_type:
                continue
            if date_from and t.transaction_date < date_from:
                continue
            if date_to and t.transaction_date > date_to:
                continue
            transactions.append(t)

        transactions.sort(key=lambda t: t.transaction_date, reverse=True)
        end = None if limit is None else offset + limit
        return [_copy(t) for t in transactions[offset:end]]

    # Locked savings

    async def save_locked_saving(self, saving: LockedSaving) -> LockedSaving:
        return self._insert(self._savings, saving, "Locked saving")

    async def get_locked_saving(self, saving_id: UUID) -> Optional[LockedSaving]:
        saving = self._savings.get(saving_id)
        return _copy(saving) if saving else None

    async def update_locked_saving(self, saving: LockedSaving) -> LockedSaving:
        return self._replace(self._savings, saving, "Locked saving")

    async def list_locked_savings(
        self,
        user_id: UUID,
        statuses: Optional[Iterable[LockStatus]] = None,
    ) -> list[LockedSaving]:
        wanted = set(statuses) if statuses is not None else None
        savings = [
            s for s in self._savings.values()
            if s.user_id == user_id and (wanted is None or s.status in wanted)
        ]
        savings.sort(key=lambda s: s.unlock_date)
        return [_copy(s) for s in savings]

    # Treat wallet

    async def get_treat_wallet(self, user_id: UUID) -> Optional[TreatWallet]:
        for wallet in self._wallets.values():
            if wallet.user_id == user_id:
                return _copy(wallet)
        return None

    async def save_treat_wallet(self, wallet: TreatWallet) -> TreatWallet:
        if await self.get_treat_wallet(wallet.user_id):
            raise DuplicateError(f"Treat wallet already exists for user {wallet.user_id}")
        return self._insert(self._wallets, wallet, "Treat wallet")

    async def update_treat_wallet(self, wallet: TreatWallet) -> TreatWallet:
        return self._replace(self._wallets, wallet, "Treat wallet")

    # Monthly reports

    async def save_monthly_report(self, report: MonthlyReport) -> MonthlyReport:
        existing = await self.get_monthly_report(
            report.user_id, report.report_year, report.report_month
        )
        if existing:
            report = report.model_copy(update={"id": existing.id})
        self._reports[report.id] = _copy(report)
        return _copy(report)

    async def get_monthly_report(
        self,
        user_id: UUID,
        year: int,
        month: int,
    ) -> Optional[MonthlyReport]:
        for report in self._reports.values():
            if (
                report.user_id == user_id
                and report.report_year == year
                and report.report_month == month
            ):
                return _copy(report)
        return None

    async def list_monthly_reports(self, user_id: UUID) -> list[MonthlyReport]:
        reports = [r for r in self._reports.values() if r.user_id == user_id]
        reports.sort(key=lambda r: (r.report_year, r.report_month), reverse=True)
        return [_copy(r) for r in reports]


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(_copy(event))
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
