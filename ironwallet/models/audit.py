"""
Audit Models for IronWallet

Every money movement and every refusal is logged for audit purposes.
This provides:
1. Complete traceability of balances
2. Debugging information when a balance looks wrong
3. A record of what the user tried and was refused

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from ironwallet.models.finance import UTCDateTime, utcnow


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Profile and onboarding
    PROFILE_CREATED = "profile_created"
    ONBOARDING_COMPLETED = "onboarding_completed"
    SETTINGS_UPDATED = "settings_updated"

    # Categories and splits
    CATEGORY_CREATED = "category_created"
    CATEGORY_LOCK_CHANGED = "category_lock_changed"
    SPLIT_UPDATED = "split_updated"

    # Transactions
    INCOME_RECORDED = "income_recorded"
    INCOME_SPLIT_APPLIED = "income_split_applied"
    EXPENSE_RECORDED = "expense_recorded"
    TRANSFER_RECORDED = "transfer_recorded"
    EXPENSE_REFUSED = "expense_refused"

    # Locked savings
    SAVINGS_LOCKED = "savings_locked"
    SAVINGS_UNLOCKED = "savings_unlocked"
    UNLOCK_REFUSED = "unlock_refused"

    # Treat wallet
    TREAT_WALLET_FUNDED = "treat_wallet_funded"
    TREAT_BUDGET_SET = "treat_budget_set"
    TREAT_SPENT = "treat_spent"
    TREAT_REFUSED = "treat_refused"
    TREAT_MONTH_RESET = "treat_month_reset"

    # Reports
    REPORT_GENERATED = "report_generated"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: UTCDateTime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Whose data this is about
    user_id: Optional[UUID] = None

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'locked_saving', 'treat_wallet')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., an income deposit and its split)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    # Additional data (event-specific)
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": str(self.user_id) if self.user_id else None,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, correlation_id, description, details_json,
         error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            str(self.user_id) if self.user_id else "",
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.income_recorded(user_id, transaction_id, 250000, cid)
        event = AuditEventBuilder.treat_refused(user_id, 5000, "insufficient_funds", cid)
    """

    @staticmethod
    def profile_created(
        user_id: UUID,
        profile_id: UUID,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_CREATED,
            user_id=user_id,
            entity_type="profile",
            entity_id=profile_id,
            correlation_id=correlation_id,
            description="Profile and treat wallet created",
        )

    @staticmethod
    def onboarding_completed(
        user_id: UUID,
        monthly_income: int,
        percentages: dict[str, int],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ONBOARDING_COMPLETED,
            user_id=user_id,
            entity_type="profile",
            correlation_id=correlation_id,
            description="Onboarding completed",
            details={
                "monthly_income": monthly_income,
                "percentages": percentages,
            },
            is_user_action=True,
        )

    @staticmethod
    def settings_updated(
        user_id: UUID,
        changes: dict[str, Any],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTINGS_UPDATED,
            user_id=user_id,
            entity_type="profile",
            correlation_id=correlation_id,
            description=f"Settings updated: {', '.join(sorted(changes)) or 'nothing'}",
            details={"changes": changes},
            is_user_action=True,
        )

    @staticmethod
    def category_created(
        user_id: UUID,
        category_id: UUID,
        category_type: str,
        percentage: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_CREATED,
            user_id=user_id,
            entity_type="budget_category",
            entity_id=category_id,
            correlation_id=correlation_id,
            description=f"Category created: {category_type} at {percentage}%",
            details={
                "category_type": category_type,
                "allocation_percentage": percentage,
            },
        )

    @staticmethod
    def category_lock_changed(
        user_id: UUID,
        category_id: UUID,
        category_type: str,
        locked: bool,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_LOCK_CHANGED,
            user_id=user_id,
            entity_type="budget_category",
            entity_id=category_id,
            correlation_id=correlation_id,
            description=f"Category {category_type} {'locked' if locked else 'unlocked'}",
            details={"category_type": category_type, "is_locked": locked},
            is_user_action=True,
        )

    @staticmethod
    def split_updated(
        user_id: UUID,
        percentages: dict[str, int],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SPLIT_UPDATED,
            user_id=user_id,
            entity_type="income_split",
            correlation_id=correlation_id,
            description="Income split percentages updated",
            details={"percentages": percentages},
            is_user_action=True,
        )

    @staticmethod
    def income_recorded(
        user_id: UUID,
        transaction_id: UUID,
        amount: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_RECORDED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Income recorded: {amount} cents",
            details={"amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def income_split_applied(
        user_id: UUID,
        transaction_id: Optional[UUID],
        allocations: dict[str, int],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_SPLIT_APPLIED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Income split across {len(allocations)} categories",
            details={"allocations": allocations},
        )

    @staticmethod
    def expense_recorded(
        user_id: UUID,
        transaction_id: UUID,
        category_type: str,
        amount: int,
        is_impulse: bool,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_RECORDED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Expense recorded from {category_type}: {amount} cents",
            details={
                "category_type": category_type,
                "amount": amount,
                "is_impulse": is_impulse,
            },
            is_user_action=True,
        )

    @staticmethod
    def transfer_recorded(
        user_id: UUID,
        transaction_id: UUID,
        from_type: str,
        to_type: str,
        amount: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_RECORDED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transfer {from_type} -> {to_type}: {amount} cents",
            details={"from": from_type, "to": to_type, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def expense_refused(
        user_id: UUID,
        category_type: str,
        amount: int,
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_REFUSED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="budget_category",
            correlation_id=correlation_id,
            description=f"Spending from {category_type} refused: {reason}",
            details={
                "category_type": category_type,
                "amount": amount,
                "reason": reason,
            },
            is_user_action=True,
        )

    @staticmethod
    def savings_locked(
        user_id: UUID,
        saving_id: UUID,
        amount: int,
        unlock_date: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVINGS_LOCKED,
            user_id=user_id,
            entity_type="locked_saving",
            entity_id=saving_id,
            correlation_id=correlation_id,
            description=f"Locked {amount} cents until {unlock_date}",
            details={"amount": amount, "unlock_date": unlock_date},
            is_user_action=True,
        )

    @staticmethod
    def savings_unlocked(
        user_id: UUID,
        saving_id: UUID,
        amount: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVINGS_UNLOCKED,
            user_id=user_id,
            entity_type="locked_saving",
            entity_id=saving_id,
            correlation_id=correlation_id,
            description=f"Unlocked {amount} cents",
            details={"amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def unlock_refused(
        user_id: UUID,
        saving_id: UUID,
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.UNLOCK_REFUSED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="locked_saving",
            entity_id=saving_id,
            correlation_id=correlation_id,
            description=f"Unlock refused: {reason}",
            details={"reason": reason},
            is_user_action=True,
        )

    @staticmethod
    def treat_wallet_funded(
        user_id: UUID,
        wallet_id: UUID,
        amount: int,
        new_balance: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TREAT_WALLET_FUNDED,
            user_id=user_id,
            entity_type="treat_wallet",
            entity_id=wallet_id,
            correlation_id=correlation_id,
            description=f"Treat wallet funded with {amount} cents",
            details={"amount": amount, "new_balance": new_balance},
            is_user_action=True,
        )

    @staticmethod
    def treat_budget_set(
        user_id: UUID,
        wallet_id: UUID,
        monthly_budget: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TREAT_BUDGET_SET,
            user_id=user_id,
            entity_type="treat_wallet",
            entity_id=wallet_id,
            correlation_id=correlation_id,
            description=f"Treat budget set to {monthly_budget} cents per month",
            details={"monthly_budget": monthly_budget},
            is_user_action=True,
        )

    @staticmethod
    def treat_spent(
        user_id: UUID,
        transaction_id: UUID,
        amount: int,
        recipient: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TREAT_SPENT,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Treated {recipient}: {amount} cents",
            details={"amount": amount, "recipient": recipient},
            is_user_action=True,
        )

    @staticmethod
    def treat_refused(
        user_id: UUID,
        amount: int,
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TREAT_REFUSED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="treat_wallet",
            correlation_id=correlation_id,
            description=f"Treat refused: {reason}",
            details={"amount": amount, "reason": reason},
            is_user_action=True,
        )

    @staticmethod
    def treat_month_reset(
        user_id: UUID,
        wallet_id: UUID,
        previous_spent: int,
        new_balance: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TREAT_MONTH_RESET,
            user_id=user_id,
            entity_type="treat_wallet",
            entity_id=wallet_id,
            correlation_id=correlation_id,
            description="Treat wallet rolled over to a new month",
            details={
                "previous_spent": previous_spent,
                "new_balance": new_balance,
            },
        )

    @staticmethod
    def report_generated(
        user_id: UUID,
        report_id: UUID,
        year: int,
        month: int,
        savings_rate: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_GENERATED,
            user_id=user_id,
            entity_type="monthly_report",
            entity_id=report_id,
            correlation_id=correlation_id,
            description=f"Report generated for {year}-{month:02d}: savings rate {savings_rate}%",
            details={
                "year": year,
                "month": month,
                "savings_rate": savings_rate,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        user_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
