"""
Core Data Models for IronWallet

These models define the strict schemas for all data flowing through the system.
They mirror the relational tables one-to-one so every storage backend can
persist them without translation logic of its own.

DESIGN DECISION: All money is stored as integer cents.
Floats never touch a balance; conversion from user input happens once,
in ironwallet.budget.allocation.to_cents.

DESIGN DECISION: All timestamps are timezone-aware UTC.
Naive datetimes coming in from callers or storage are assumed to be UTC.
"""

import calendar
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Optional
from uuid import UUID, uuid4

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class CategoryType(str, Enum):
    """
    The five fixed budget buckets.

    Definition order is significant: it is the display order and the
    tie-break order when leftover cents are handed out during a split.
    """
    BILLS = "bills"
    GOALS = "goals"
    DAILY = "daily"
    FREEDOM = "freedom"
    EMERGENCY = "emergency"


class TransactionType(str, Enum):
    """Kind of money movement."""
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"
    TREAT = "treat"


class LockStatus(str, Enum):
    """
    Locked savings lifecycle.

    ACTIVE -> UNLOCKED once the unlock date has passed.
    CANCELLED exists in the schema but no operation produces it.
    """
    ACTIVE = "active"
    UNLOCKED = "unlocked"
    CANCELLED = "cancelled"


class TransactionFilter(str, Enum):
    """Filters offered by the transaction listing."""
    ALL = "all"
    INCOME = "income"
    EXPENSE = "expense"


CATEGORY_ORDER: tuple[CategoryType, ...] = tuple(CategoryType)


class CategoryTemplate(BaseModel):
    """Default name, split and colour for a category created at onboarding."""

    model_config = ConfigDict(frozen=True)

    category_type: CategoryType
    name: str
    percentage: int = Field(ge=0, le=100)
    color: str


DEFAULT_CATEGORIES: tuple[CategoryTemplate, ...] = (
    CategoryTemplate(category_type=CategoryType.BILLS, name="Bills", percentage=30, color="#FF6B6B"),
    CategoryTemplate(category_type=CategoryType.GOALS, name="Goals", percentage=20, color="#4ECDC4"),
    CategoryTemplate(category_type=CategoryType.DAILY, name="Daily", percentage=25, color="#FFD700"),
    CategoryTemplate(category_type=CategoryType.FREEDOM, name="Freedom", percentage=20, color="#95E1D3"),
    CategoryTemplate(category_type=CategoryType.EMERGENCY, name="Emergency", percentage=5, color="#F38181"),
)


def default_percentages() -> dict[CategoryType, int]:
    """Default split as a {category_type: percentage} mapping."""
    return {t.category_type: t.percentage for t in DEFAULT_CATEGORIES}


# =============================================================================
# PERSISTED MODELS - one per table
# =============================================================================

class Profile(BaseModel):
    """
    User profile and preferences.

    One per user. Created on first sign-in, filled in by onboarding.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    full_name: str = Field(default="", max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    monthly_income: int = Field(
        default=0,
        ge=0,
        description="Monthly income after taxes, in cents"
    )
    currency: str = Field(default="USD", min_length=3, max_length=3)
    onboarding_completed: bool = False
    impulse_blocker_enabled: bool = Field(
        default=False,
        description="Hide total balance, show only daily allowance"
    )
    show_total_balance: bool = True
    created_at: UTCDateTime = Field(default_factory=utcnow)
    updated_at: UTCDateTime = Field(default_factory=utcnow)


class BudgetCategory(BaseModel):
    """
    One of the five budget buckets for a user.

    current_balance may be negative only if a backend was edited by hand;
    the flows refuse to overdraw it.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    category_name: str = Field(..., min_length=1, max_length=100)
    category_type: CategoryType
    allocation_percentage: int = Field(default=0, ge=0, le=100)
    current_balance: int = Field(default=0, description="Balance in cents")
    is_locked: bool = False
    color_code: str = Field(default="#FFD700", pattern=r"^#[0-9A-Fa-f]{6}$")
    created_at: UTCDateTime = Field(default_factory=utcnow)
    updated_at: UTCDateTime = Field(default_factory=utcnow)


class Transaction(BaseModel):
    """
    A single money movement.

    Income carries no category: it is split across categories separately.
    Treat transactions carry no category either; they draw on the treat wallet.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    category_id: Optional[UUID] = None
    transaction_type: TransactionType
    amount: int = Field(..., gt=0, description="Amount in cents, always positive")
    merchant: str = Field(default="", max_length=200)
    description: str = Field(default="", max_length=1000)
    transaction_date: UTCDateTime = Field(default_factory=utcnow)
    is_impulse: bool = False
    pain_reminder_sent: bool = False
    created_at: UTCDateTime = Field(default_factory=utcnow)


class LockedSaving(BaseModel):
    """
    Money set aside until unlock_date.

    The lock is enforced by SavingsFlow.unlock; nothing holds the funds.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    amount: int = Field(..., gt=0)
    lock_reason: str = Field(..., min_length=1, max_length=200)
    locked_at: UTCDateTime = Field(default_factory=utcnow)
    unlock_date: UTCDateTime
    status: LockStatus = LockStatus.ACTIVE
    goal_amount: int = Field(default=0, ge=0)
    created_at: UTCDateTime = Field(default_factory=utcnow)
    updated_at: UTCDateTime = Field(default_factory=utcnow)

    def is_unlockable(self, now: Optional[datetime] = None) -> bool:
        """True once the unlock date has been reached."""
        now = as_utc(now) if now else utcnow()
        return self.unlock_date <= now

    def days_remaining(self, now: Optional[datetime] = None) -> int:
        """Whole days until unlock; 0 when already unlockable."""
        now = as_utc(now) if now else utcnow()
        if self.unlock_date <= now:
            return 0
        return (self.unlock_date - now).days


class TreatWallet(BaseModel):
    """Secondary balance for generosity spending, capped per month."""

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    current_balance: int = Field(default=0, ge=0)
    monthly_budget: int = Field(default=0, ge=0)
    total_spent_this_month: int = Field(default=0, ge=0)
    last_reset_date: UTCDateTime = Field(default_factory=utcnow)
    created_at: UTCDateTime = Field(default_factory=utcnow)
    updated_at: UTCDateTime = Field(default_factory=utcnow)

    @property
    def remaining_budget(self) -> int:
        return self.monthly_budget - self.total_spent_this_month

    @property
    def is_empty(self) -> bool:
        return self.current_balance <= 0


class IncomeSplit(BaseModel):
    """Split template row: which share of income goes to a category."""

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    category_id: UUID
    split_percentage: int = Field(..., ge=0, le=100)
    is_active: bool = True
    created_at: UTCDateTime = Field(default_factory=utcnow)
    updated_at: UTCDateTime = Field(default_factory=utcnow)


class MonthlyReport(BaseModel):
    """End-of-month summary. One per user per month."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    report_month: int = Field(..., ge=1, le=12)
    report_year: int = Field(..., ge=1970, le=9999)
    total_income: int = Field(default=0, ge=0)
    total_expenses: int = Field(default=0, ge=0)
    savings_rate: int = Field(
        default=0,
        description="Percent of income kept; negative when overspent"
    )
    impulse_spending: int = Field(default=0, ge=0)
    top_spending_category: str = ""
    brutal_summary: str = ""
    goals_met: bool = False
    created_at: UTCDateTime = Field(default_factory=utcnow)

    @property
    def month_name(self) -> str:
        return calendar.month_name[self.report_month]


# =============================================================================
# RESULT MODELS - returned by the flows, never persisted
# =============================================================================

class CategoryAllocation(BaseModel):
    """Share of one income deposit credited to one category."""

    category_type: CategoryType
    category_id: Optional[UUID] = None
    percentage: int = Field(ge=0, le=100)
    amount: int = Field(ge=0)


class IncomeAllocation(BaseModel):
    """
    Result of splitting income.

    For a real split, sum(allocations.amount) == total_amount and
    unallocated == 0. Previews may leave cents unallocated.
    """

    transaction_id: Optional[UUID] = None
    total_amount: int = Field(ge=0)
    allocations: list[CategoryAllocation] = Field(default_factory=list)
    unallocated: int = Field(default=0, ge=0)

    @property
    def allocated_total(self) -> int:
        return sum(a.amount for a in self.allocations)

    def amount_for(self, category_type: CategoryType) -> int:
        for allocation in self.allocations:
            if allocation.category_type == category_type:
                return allocation.amount
        return 0


class DashboardSummary(BaseModel):
    """What the home screen needs."""

    daily_allowance: int
    total_balance: Optional[int] = Field(
        default=None,
        description="None when hidden by the impulse blocker or user preference"
    )
    categories: list[BudgetCategory] = Field(default_factory=list)
    needs_onboarding: bool = False
    currency: str = "USD"


class TransactionPage(BaseModel):
    """A listing of transactions with totals over the listed rows."""

    filter: TransactionFilter = TransactionFilter.ALL
    transactions: list[Transaction] = Field(default_factory=list)
    total_income: int = 0
    total_expenses: int = 0


class SavingsOverview(BaseModel):
    """Locked savings listing."""

    savings: list[LockedSaving] = Field(default_factory=list)
    total_locked: int = Field(default=0, description="Sum of ACTIVE savings only")

    @property
    def active_savings(self) -> list[LockedSaving]:
        return [s for s in self.savings if s.status == LockStatus.ACTIVE]


class TreatWalletOverview(BaseModel):
    """Treat wallet with its most recent treats (newest first)."""

    wallet: TreatWallet
    recent_treats: list[Transaction] = Field(default_factory=list)


class ReportInsight(BaseModel):
    """One line of feedback on a monthly report."""

    kind: Literal["success", "warning", "alert"]
    message: str


class MonthlyReportView(BaseModel):
    """A monthly report plus the feedback shown with it."""

    report: MonthlyReport
    insights: list[ReportInsight] = Field(default_factory=list)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'out_of_range', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (required values, ranges)
    Stage 2: Semantic validation (dates, sanity bounds, consistency)
    """

    subject: str = Field(
        ...,
        description="What was validated (split, transaction, lock, treat)"
    )
    validated_at: UTCDateTime = Field(default_factory=utcnow)

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @model_validator(mode='after')
    def validate_consistency(self) -> 'ValidationResult':
        """is_valid can never be claimed alongside an error-level issue."""
        if self.is_valid and self.has_errors:
            raise ValueError("A result with error-level issues cannot be valid")
        return self

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def error_messages(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "error"]
