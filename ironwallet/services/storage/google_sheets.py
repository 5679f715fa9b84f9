"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a storage backend because:
1. Users can look at their own money in a spreadsheet
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (we handle this with careful ordering)
- Limited query capabilities (we filter in Python)

Every table is one worksheet. Row 1 holds the column names, which are
the model's field names in declaration order. Values are written RAW:
UUIDs and datetimes as strings, booleans as "true"/"false", None as "".
"""

import json
from datetime import datetime
from typing import Any, Callable, Iterable, Optional, Type, TypeVar
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import BaseModel
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ironwallet.config import GoogleSheetsSettings, get_settings
from ironwallet.models.audit import AuditEvent, AuditEventType, AuditSeverity
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
    as_utc,
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

# Column order for the audit sheet, matching AuditEvent.to_sheets_row
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

sheets_retry = retry(
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: dict[str, gspread.Worksheet] = {}
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet, writing the header row on creation."""
        if title in self._worksheets:
            return self._worksheets[title]

        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        self._worksheets[title] = sheet
        return sheet


def _to_cell(value: Any) -> str:
    """Convert a model value to the string written into a cell."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


class _SheetTable:
    """One worksheet holding one model type."""

    def __init__(
        self,
        client: GoogleSheetsClient,
        model: Type[ModelT],
        title_getter: Callable[[GoogleSheetsSettings], str],
    ):
        self._client = client
        self.model = model
        self.columns = list(model.model_fields)
        self._title_getter = title_getter

    @property
    def label(self) -> str:
        return self.model.__name__

    def sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._title_getter(self._client.settings), self.columns
        )

    def to_row(self, model: BaseModel) -> list[str]:
        return [_to_cell(getattr(model, c)) for c in self.columns]

    def from_row(self, row: list[str]):
        # Empty cells fall back to the model defaults
        data = {
            column: value
            for column, value in zip(self.columns, row)
            if value != ""
        }
        return self.model.model_validate(data)

    def rows(self) -> list[tuple[int, Any]]:
        """All parseable rows as (sheet_row_number, model) pairs."""
        try:
            values = self.sheet().get_all_values()
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {self.label} rows: {e}")

        result = []
        for idx, row in enumerate(values[1:], start=2):  # row 1 is the header
            if not row or not row[0]:
                continue
            try:
                result.append((idx, self.from_row(row)))
            except ValueError as e:
                logger.warning("sheets_row_skipped", table=self.label, row=idx, error=str(e))
        return result

    def all(self) -> list:
        return [model for _, model in self.rows()]

    def find(self, predicate: Callable[[Any], bool]):
        for model in self.all():
            if predicate(model):
                return model
        return None

    @sheets_retry
    def _append(self, row: list[str]) -> None:
        self.sheet().append_row(row, value_input_option="RAW")

    @sheets_retry
    def _write(self, row_number: int, row: list[str]) -> None:
        sheet = self.sheet()
        for col_idx, value in enumerate(row, start=1):
            sheet.update_cell(row_number, col_idx, value)

    def insert(self, model: ModelT) -> ModelT:
        try:
            self._append(self.to_row(model))
        except Exception as e:
            raise StorageError(f"Failed to save {self.label}: {e}")
        return model

    def replace(self, model: ModelT) -> ModelT:
        for row_number, existing in self.rows():
            if existing.id == model.id:
                try:
                    self._write(row_number, self.to_row(model))
                except Exception as e:
                    raise StorageError(f"Failed to update {self.label}: {e}")
                return model
        raise NotFoundError(f"{self.label} not found: {model.id}")


class GoogleSheetsWalletStorage(WalletStorageInterface):
    """
    Google Sheets implementation of wallet storage.

    Each table is a worksheet with one model per row. Filtering and
    uniqueness checks happen in Python over the whole sheet.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._profiles = _SheetTable(self._client, Profile, lambda s: s.profiles_sheet_name)
        self._categories = _SheetTable(self._client, BudgetCategory, lambda s: s.categories_sheet_name)
        self._splits = _SheetTable(self._client, IncomeSplit, lambda s: s.splits_sheet_name)
        self._transactions = _SheetTable(self._client, Transaction, lambda s: s.transactions_sheet_name)
        self._savings = _SheetTable(self._client, LockedSaving, lambda s: s.locked_savings_sheet_name)
        self._wallets = _SheetTable(self._client, TreatWallet, lambda s: s.treat_wallet_sheet_name)
        self._reports = _SheetTable(self._client, MonthlyReport, lambda s: s.reports_sheet_name)

    # Profiles

    async def get_profile(self, user_id: UUID) -> Optional[Profile]:
        return self._profiles.find(lambda p: p.user_id == user_id)

    async def save_profile(self, profile: Profile) -> Profile:
        if await self.get_profile(profile.user_id):
            raise DuplicateError(f"Profile already exists for user {profile.user_id}")
        return self._profiles.insert(profile)

    async def update_profile(self, profile: Profile) -> Profile:
        return self._profiles.replace(profile)

    # Budget categories

    async def list_categories(self, user_id: UUID) -> list[BudgetCategory]:
        categories = [c for c in self._categories.all() if c.user_id == user_id]
        categories.sort(key=lambda c: CATEGORY_ORDER.index(c.category_type))
        return categories

    async def get_category(
        self,
        user_id: UUID,
        category_type: CategoryType,
    ) -> Optional[BudgetCategory]:
        return self._categories.find(
            lambda c: c.user_id == user_id and c.category_type == category_type
        )

    async def get_category_by_id(self, category_id: UUID) -> Optional[BudgetCategory]:
        return self._categories.find(lambda c: c.id == category_id)

    async def save_category(self, category: BudgetCategory) -> BudgetCategory:
        if await self.get_category(category.user_id, category.category_type):
            raise DuplicateError(
                f"Category {category.category_type.value} already exists for user {category.user_id}"
            )
        return self._categories.insert(category)

    async def update_category(self, category: BudgetCategory) -> BudgetCategory:
        return self._categories.replace(category)

    # Income splits

    async def list_income_splits(
        self,
        user_id: UUID,
        active_only: bool = True,
    ) -> list[IncomeSplit]:
        return [
            s for s in self._splits.all()
            if s.user_id == user_id and (s.is_active or not active_only)
        ]

    async def save_income_split(self, split: IncomeSplit) -> IncomeSplit:
        duplicate = self._splits.find(
            lambda s: s.user_id == split.user_id and s.category_id == split.category_id
        )
        if duplicate:
            raise DuplicateError(f"Income split already exists for category {split.category_id}")
        if await self.get_category_by_id(split.category_id) is None:
            raise NotFoundError(f"Category not found: {split.category_id}")
        return self._splits.insert(split)

    async def update_income_split(self, split: IncomeSplit) -> IncomeSplit:
        return self._splits.replace(split)

    # Transactions

    async def save_transaction(self, transaction: Transaction) -> Transaction:
        return self._transactions.insert(transaction)

    async def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        return self._transactions.find(lambda t: t.id == transaction_id)

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
        for t in self._transactions.all():
            if t.user_id != user_id:
                continue
            if transaction_type and t.transaction_type != transaction_type:
                continue
            if date_from and t.transaction_date < as_utc(date_from):
                continue
            if date_to and t.transaction_date > as_utc(date_to):
                continue
            transactions.append(t)

        # Sort by date descending (newest first)
        transactions.sort(key=lambda t: t.transaction_date, reverse=True)
        end = None if limit is None else offset + limit
        return transactions[offset:end]

    # Locked savings

    async def save_locked_saving(self, saving: LockedSaving) -> LockedSaving:
        return self._savings.insert(saving)

    async def get_locked_saving(self, saving_id: UUID) -> Optional[LockedSaving]:
        return self._savings.find(lambda s: s.id == saving_id)

    async def update_locked_saving(self, saving: LockedSaving) -> LockedSaving:
        return self._savings.replace(saving)

    async def list_locked_savings(
        self,
        user_id: UUID,
        statuses: Optional[Iterable[LockStatus]] = None,
    ) -> list[LockedSaving]:
        wanted = set(statuses) if statuses is not None else None
        savings = [
            s for s in self._savings.all()
            if s.user_id == user_id and (wanted is None or s.status in wanted)
        ]
        savings.sort(key=lambda s: s.unlock_date)
        return savings

    # Treat wallet

    async def get_treat_wallet(self, user_id: UUID) -> Optional[TreatWallet]:
        return self._wallets.find(lambda w: w.user_id == user_id)

    async def save_treat_wallet(self, wallet: TreatWallet) -> TreatWallet:
        if await self.get_treat_wallet(wallet.user_id):
            raise DuplicateError(f"Treat wallet already exists for user {wallet.user_id}")
        return self._wallets.insert(wallet)

    async def update_treat_wallet(self, wallet: TreatWallet) -> TreatWallet:
        return self._wallets.replace(wallet)

    # Monthly reports

    async def save_monthly_report(self, report: MonthlyReport) -> MonthlyReport:
        existing = await self.get_monthly_report(
            report.user_id, report.report_year, report.report_month
        )
        if existing:
            return self._reports.replace(report.model_copy(update={"id": existing.id}))
        return self._reports.insert(report)

    async def get_monthly_report(
        self,
        user_id: UUID,
        year: int,
        month: int,
    ) -> Optional[MonthlyReport]:
        return self._reports.find(
            lambda r: r.user_id == user_id and r.report_year == year and r.report_month == month
        )

    async def list_monthly_reports(self, user_id: UUID) -> list[MonthlyReport]:
        reports = [r for r in self._reports.all() if r.user_id == user_id]
        reports.sort(key=lambda r: (r.report_year, r.report_month), reverse=True)
        return reports


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._client.settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            user_id=UUID(safe_get(4)) if safe_get(4) else None,
            entity_type=safe_get(5) or None,
            entity_id=UUID(safe_get(6)) if safe_get(6) else None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    def _events(self, predicate: Callable[[list], bool]) -> list[AuditEvent]:
        try:
            all_rows = self._sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0] or not predicate(row):
                continue
            try:
                events.append(self._row_to_event(row))
            except ValueError:
                continue
        return events

    @sheets_retry
    def _append(self, row: list) -> None:
        self._sheet().append_row(row, value_input_option="RAW")

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._append(event.to_sheets_row())
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning("audit_append_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        events = self._events(lambda row: len(row) > 7 and row[7] == str(correlation_id))
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        events = self._events(
            lambda row: len(row) > 6 and row[5] == entity_type and row[6] == str(entity_id)
        )
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        events = self._events(lambda row: True)
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
