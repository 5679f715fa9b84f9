"""
SQLite Storage Implementation

The relational backend. Tables mirror the IronWallet schema: integer
cents, CHECK constraints on enums and percentages, UNIQUE constraints
for the one-per-user rows, foreign keys from splits and transactions
to categories.

DESIGN DECISION: One short-lived connection per operation.
Each call opens the database, runs its statement(s), commits and closes.
The schema is created idempotently the first time a storage object
connects, so there is no separate migration step. The exception is
":memory:", which keeps a single connection for the storage's lifetime.

Timestamps are stored as ISO-8601 UTC strings with fixed microsecond
precision, which keeps lexicographic order equal to time order.
"""

import contextlib
import json
import sqlite3
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional, Type, TypeVar, Union
from uuid import UUID

import structlog
from pydantic import BaseModel

from ironwallet.models.audit import AuditEvent
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
from ironwallet.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
    WalletStorageInterface,
)

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

SCHEMA = """
CREATE TABLE IF NOT EXISTS profiles (
  id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL UNIQUE,
  full_name TEXT DEFAULT '',
  email TEXT NOT NULL,
  monthly_income INTEGER DEFAULT 0,
  currency TEXT DEFAULT 'USD',
  onboarding_completed INTEGER DEFAULT 0,
  impulse_blocker_enabled INTEGER DEFAULT 0,
  show_total_balance INTEGER DEFAULT 1,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS budget_categories (
  id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL,
  category_name TEXT NOT NULL,
  category_type TEXT NOT NULL CHECK (category_type IN ('bills', 'goals', 'daily', 'freedom', 'emergency')),
  allocation_percentage INTEGER DEFAULT 0 CHECK (allocation_percentage >= 0 AND allocation_percentage <= 100),
  current_balance INTEGER DEFAULT 0,
  is_locked INTEGER DEFAULT 0,
  color_code TEXT DEFAULT '#FFD700',
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL,
  UNIQUE(user_id, category_type)
);

CREATE TABLE IF NOT EXISTS transactions (
  id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL,
  category_id TEXT REFERENCES budget_categories(id) ON DELETE SET NULL,
  transaction_type TEXT NOT NULL CHECK (transaction_type IN ('income', 'expense', 'transfer', 'treat')),
  amount INTEGER NOT NULL,
  merchant TEXT DEFAULT '',
  description TEXT DEFAULT '',
  transaction_date TEXT NOT NULL,
  is_impulse INTEGER DEFAULT 0,
  pain_reminder_sent INTEGER DEFAULT 0,
  created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS locked_savings (
  id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL,
  amount INTEGER NOT NULL,
  lock_reason TEXT NOT NULL,
  locked_at TEXT NOT NULL,
  unlock_date TEXT NOT NULL,
  status TEXT DEFAULT 'active' CHECK (status IN ('active', 'unlocked', 'cancelled')),
  goal_amount INTEGER DEFAULT 0,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS treat_wallet (
  id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL UNIQUE,
  current_balance INTEGER DEFAULT 0,
  monthly_budget INTEGER DEFAULT 0,
  total_spent_this_month INTEGER DEFAULT 0,
  last_reset_date TEXT NOT NULL,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS income_splits (
  id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL,
  category_id TEXT NOT NULL REFERENCES budget_categories(id) ON DELETE CASCADE,
  split_percentage INTEGER NOT NULL CHECK (split_percentage >= 0 AND split_percentage <= 100),
  is_active INTEGER DEFAULT 1,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL,
  UNIQUE(user_id, category_id)
);

CREATE TABLE IF NOT EXISTS monthly_reports (
  id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL,
  report_month INTEGER NOT NULL CHECK (report_month >= 1 AND report_month <= 12),
  report_year INTEGER NOT NULL,
  total_income INTEGER DEFAULT 0,
  total_expenses INTEGER DEFAULT 0,
  savings_rate INTEGER DEFAULT 0,
  impulse_spending INTEGER DEFAULT 0,
  top_spending_category TEXT DEFAULT '',
  brutal_summary TEXT DEFAULT '',
  goals_met INTEGER DEFAULT 0,
  created_at TEXT NOT NULL,
  UNIQUE(user_id, report_month, report_year)
);

CREATE TABLE IF NOT EXISTS audit_log (
  event_id TEXT PRIMARY KEY,
  timestamp TEXT NOT NULL,
  event_type TEXT NOT NULL,
  severity TEXT NOT NULL,
  user_id TEXT,
  entity_type TEXT,
  entity_id TEXT,
  correlation_id TEXT,
  description TEXT NOT NULL,
  details_json TEXT DEFAULT '{}',
  error_message TEXT,
  is_user_action INTEGER DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_profiles_user_id ON profiles(user_id);
CREATE INDEX IF NOT EXISTS idx_budget_categories_user_id ON budget_categories(user_id);
CREATE INDEX IF NOT EXISTS idx_transactions_user_id ON transactions(user_id);
CREATE INDEX IF NOT EXISTS idx_transactions_date ON transactions(transaction_date DESC);
CREATE INDEX IF NOT EXISTS idx_locked_savings_user_id ON locked_savings(user_id);
CREATE INDEX IF NOT EXISTS idx_treat_wallet_user_id ON treat_wallet(user_id);
CREATE INDEX IF NOT EXISTS idx_income_splits_user_id ON income_splits(user_id);
CREATE INDEX IF NOT EXISTS idx_monthly_reports_user_id ON monthly_reports(user_id);
CREATE INDEX IF NOT EXISTS idx_audit_log_correlation_id ON audit_log(correlation_id);
"""

CATEGORY_ORDER_SQL = (
    "CASE category_type "
    "WHEN 'bills' THEN 0 WHEN 'goals' THEN 1 WHEN 'daily' THEN 2 "
    "WHEN 'freedom' THEN 3 WHEN 'emergency' THEN 4 END"
)


def _to_db(value: Any) -> Any:
    """Convert a model value to something sqlite3 can bind."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return _timestamp(value)
    return value


def _timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


MEMORY_PATH = ":memory:"


class SQLiteDatabase:
    """
    Connection factory for one SQLite file.

    Creates the schema on first connect. A ":memory:" database only lives
    as long as its connection, so that one connection is kept open and
    reused.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = str(path)
        self._initialized = False
        self._shared: Optional[sqlite3.Connection] = None

    @property
    def in_memory(self) -> bool:
        return self._path == MEMORY_PATH

    def _open(self) -> sqlite3.Connection:
        if self._shared is not None:
            return self._shared
        try:
            conn = sqlite3.connect(self._path, timeout=10)
        except sqlite3.Error as e:
            raise ConnectionError(f"Could not open SQLite database {self._path}: {e}")

        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        if not self._initialized:
            conn.executescript(SCHEMA)
            self._initialized = True
        if self.in_memory:
            self._shared = conn
        return conn

    @contextlib.contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = self._open()
        try:
            yield conn
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            if "UNIQUE" in str(e):
                raise DuplicateError(str(e))
            raise StorageError(f"Constraint violated: {e}")
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(f"SQLite error: {e}")
        except Exception:
            conn.rollback()
            raise
        finally:
            if conn is not self._shared:
                conn.close()


class _Table:
    """Column list and row conversion for one model/table pair."""

    def __init__(self, name: str, model: Type[ModelT]):
        self.name = name
        self.model = model
        self.columns = list(model.model_fields)

    def insert_sql(self, replace: bool = False) -> str:
        verb = "INSERT OR REPLACE" if replace else "INSERT"
        placeholders = ", ".join("?" for _ in self.columns)
        return f"{verb} INTO {self.name} ({', '.join(self.columns)}) VALUES ({placeholders})"

    def update_sql(self) -> str:
        assignments = ", ".join(f"{c} = ?" for c in self.columns if c != "id")
        return f"UPDATE {self.name} SET {assignments} WHERE id = ?"

    def insert_params(self, model: BaseModel) -> tuple:
        return tuple(_to_db(getattr(model, c)) for c in self.columns)

    def update_params(self, model: BaseModel) -> tuple:
        values = [_to_db(getattr(model, c)) for c in self.columns if c != "id"]
        return (*values, str(model.id))

    def from_row(self, row: sqlite3.Row):
        return self.model.model_validate(dict(row))


PROFILES = _Table("profiles", Profile)
CATEGORIES = _Table("budget_categories", BudgetCategory)
SPLITS = _Table("income_splits", IncomeSplit)
TRANSACTIONS = _Table("transactions", Transaction)
SAVINGS = _Table("locked_savings", LockedSaving)
WALLETS = _Table("treat_wallet", TreatWallet)
REPORTS = _Table("monthly_reports", MonthlyReport)


class SQLiteWalletStorage(WalletStorageInterface):
    """SQLite implementation of wallet storage."""

    def __init__(self, database: Union[SQLiteDatabase, str, Path]):
        if not isinstance(database, SQLiteDatabase):
            database = SQLiteDatabase(database)
        self._db = database

    def _insert(self, table: _Table, model: ModelT) -> ModelT:
        with self._db.connect() as conn:
            conn.execute(table.insert_sql(), table.insert_params(model))
        return model

    def _update(self, table: _Table, model: ModelT) -> ModelT:
        with self._db.connect() as conn:
            cursor = conn.execute(table.update_sql(), table.update_params(model))
            if cursor.rowcount == 0:
                raise NotFoundError(f"{table.name} row not found: {model.id}")
        return model

    def _fetch_one(self, table: _Table, where: str, params: tuple):
        with self._db.connect() as conn:
            row = conn.execute(
                f"SELECT * FROM {table.name} WHERE {where}", params
            ).fetchone()
        return table.from_row(row) if row else None

    def _fetch_all(self, table: _Table, sql: str, params: tuple) -> list:
        with self._db.connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [table.from_row(row) for row in rows]

    # Profiles

    async def get_profile(self, user_id: UUID) -> Optional[Profile]:
        return self._fetch_one(PROFILES, "user_id = ?", (str(user_id),))

    async def save_profile(self, profile: Profile) -> Profile:
        return self._insert(PROFILES, profile)

    async def update_profile(self, profile: Profile) -> Profile:
        return self._update(PROFILES, profile)

    # Budget categories

    async def list_categories(self, user_id: UUID) -> list[BudgetCategory]:
        return self._fetch_all(
            CATEGORIES,
            f"SELECT * FROM budget_categories WHERE user_id = ? ORDER BY {CATEGORY_ORDER_SQL}",
            (str(user_id),),
        )

    async def get_category(
        self,
        user_id: UUID,
        category_type: CategoryType,
    ) -> Optional[BudgetCategory]:
        return self._fetch_one(
            CATEGORIES,
            "user_id = ? AND category_type = ?",
            (str(user_id), category_type.value),
        )

    async def get_category_by_id(self, category_id: UUID) -> Optional[BudgetCategory]:
        return self._fetch_one(CATEGORIES, "id = ?", (str(category_id),))

    async def save_category(self, category: BudgetCategory) -> BudgetCategory:
        return self._insert(CATEGORIES, category)

    async def update_category(self, category: BudgetCategory) -> BudgetCategory:
        return self._update(CATEGORIES, category)

    # Income splits

    async def list_income_splits(
        self,
        user_id: UUID,
        active_only: bool = True,
    ) -> list[IncomeSplit]:
        sql = "SELECT * FROM income_splits WHERE user_id = ?"
        if active_only:
            sql += " AND is_active = 1"
        return self._fetch_all(SPLITS, sql, (str(user_id),))

    async def save_income_split(self, split: IncomeSplit) -> IncomeSplit:
        if await self.get_category_by_id(split.category_id) is None:
            raise NotFoundError(f"Category not found: {split.category_id}")
        return self._insert(SPLITS, split)

    async def update_income_split(self, split: IncomeSplit) -> IncomeSplit:
        return self._update(SPLITS, split)

    # Transactions

    async def save_transaction(self, transaction: Transaction) -> Transaction:
        return self._insert(TRANSACTIONS, transaction)

    async def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        return self._fetch_one(TRANSACTIONS, "id = ?", (str(transaction_id),))

    async def list_transactions(
        self,
        user_id: UUID,
        transaction_type: Optional[TransactionType] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: Optional[int] = 50,
        offset: int = 0,
    ) -> list[Transaction]:
        clauses = ["user_id = ?"]
        params: list[Any] = [str(user_id)]
        if transaction_type:
            clauses.append("transaction_type = ?")
            params.append(transaction_type.value)
        if date_from:
            clauses.append("transaction_date >= ?")
            params.append(_timestamp(date_from))
        if date_to:
            clauses.append("transaction_date <= ?")
            params.append(_timestamp(date_to))

        sql = (
            f"SELECT * FROM transactions WHERE {' AND '.join(clauses)} "
            "ORDER BY transaction_date DESC LIMIT ? OFFSET ?"
        )
        params.extend([-1 if limit is None else limit, offset])
        return self._fetch_all(TRANSACTIONS, sql, tuple(params))

    # Locked savings

    async def save_locked_saving(self, saving: LockedSaving) -> LockedSaving:
        return self._insert(SAVINGS, saving)

    async def get_locked_saving(self, saving_id: UUID) -> Optional[LockedSaving]:
        return self._fetch_one(SAVINGS, "id = ?", (str(saving_id),))

    async def update_locked_saving(self, saving: LockedSaving) -> LockedSaving:
        return self._update(SAVINGS, saving)

    async def list_locked_savings(
        self,
        user_id: UUID,
        statuses: Optional[Iterable[LockStatus]] = None,
    ) -> list[LockedSaving]:
        sql = "SELECT * FROM locked_savings WHERE user_id = ?"
        params: list[Any] = [str(user_id)]
        if statuses is not None:
            wanted = [LockStatus(s).value for s in statuses]
            if not wanted:
                return []
            sql += f" AND status IN ({', '.join('?' for _ in wanted)})"
            params.extend(wanted)
        sql += " ORDER BY unlock_date ASC"
        return self._fetch_all(SAVINGS, sql, tuple(params))

    # Treat wallet

    async def get_treat_wallet(self, user_id: UUID) -> Optional[TreatWallet]:
        return self._fetch_one(WALLETS, "user_id = ?", (str(user_id),))

    async def save_treat_wallet(self, wallet: TreatWallet) -> TreatWallet:
        return self._insert(WALLETS, wallet)

    async def update_treat_wallet(self, wallet: TreatWallet) -> TreatWallet:
        return self._update(WALLETS, wallet)

    # Monthly reports

    async def save_monthly_report(self, report: MonthlyReport) -> MonthlyReport:
        existing = await self.get_monthly_report(
            report.user_id, report.report_year, report.report_month
        )
        if existing:
            report = report.model_copy(update={"id": existing.id})
            return self._update(REPORTS, report)
        return self._insert(REPORTS, report)

    async def get_monthly_report(
        self,
        user_id: UUID,
        year: int,
        month: int,
    ) -> Optional[MonthlyReport]:
        return self._fetch_one(
            REPORTS,
            "user_id = ? AND report_year = ? AND report_month = ?",
            (str(user_id), year, month),
        )

    async def list_monthly_reports(self, user_id: UUID) -> list[MonthlyReport]:
        return self._fetch_all(
            REPORTS,
            "SELECT * FROM monthly_reports WHERE user_id = ? "
            "ORDER BY report_year DESC, report_month DESC",
            (str(user_id),),
        )


AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class SQLiteAuditStorage(AuditStorageInterface):
    """
    SQLite implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, database: Union[SQLiteDatabase, str, Path]):
        if not isinstance(database, SQLiteDatabase):
            database = SQLiteDatabase(database)
        self._db = database

    def _row_to_event(self, row: sqlite3.Row) -> AuditEvent:
        data = dict(row)
        data["details"] = json.loads(data.pop("details_json") or "{}")
        return AuditEvent.model_validate(data)

    def _query(self, where: str, params: tuple, order: str, limit: Optional[int] = None) -> list[AuditEvent]:
        sql = f"SELECT * FROM audit_log WHERE {where} ORDER BY timestamp {order}"
        if limit is not None:
            sql += f" LIMIT {int(limit)}"
        with self._db.connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_event(row) for row in rows]

    async def append_event(self, event: AuditEvent) -> bool:
        values = (
            str(event.event_id),
            _timestamp(event.timestamp),
            event.event_type.value,
            event.severity.value,
            str(event.user_id) if event.user_id else None,
            event.entity_type,
            str(event.entity_id) if event.entity_id else None,
            str(event.correlation_id) if event.correlation_id else None,
            event.description,
            json.dumps(event.details),
            event.error_message,
            int(event.is_user_action),
        )
        try:
            with self._db.connect() as conn:
                conn.execute(
                    f"INSERT INTO audit_log ({', '.join(AUDIT_COLUMNS)}) "
                    f"VALUES ({', '.join('?' for _ in AUDIT_COLUMNS)})",
                    values,
                )
            return True
        except StorageError as e:
            # Audit logging must not break the main flow
            logger.warning("audit_append_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return self._query("correlation_id = ?", (str(correlation_id),), "ASC")

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        return self._query(
            "entity_type = ? AND entity_id = ?",
            (entity_type, str(entity_id)),
            "ASC",
        )

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return self._query("1 = 1", (), "DESC", limit=limit)
