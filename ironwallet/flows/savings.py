"""
Savings Flow

Locked savings are a promise the app keeps for the user: money is
recorded as set aside until a date, and no operation releases it
earlier. There is no cancel and no early withdrawal.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from ironwallet.audit import create_correlation_id
from ironwallet.budget import AmountInput, to_cents
from ironwallet.errors import SavingsNotActiveError, SavingsStillLockedError
from ironwallet.flows.base import BaseFlow
from ironwallet.models.audit import AuditEventBuilder
from ironwallet.models.finance import (
    LockedSaving,
    LockStatus,
    SavingsOverview,
    as_utc,
    utcnow,
)
from ironwallet.services.storage import NotFoundError


class SavingsFlow(BaseFlow):
    """Lock, list and unlock savings."""

    async def lock_savings(
        self,
        user_id: UUID,
        amount: AmountInput,
        reason: str,
        unlock_date: datetime,
        goal_amount: AmountInput = 0,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> LockedSaving:
        """
        Lock an amount until unlock_date.

        Raises:
            ValidationFailedError: non-positive amount, missing reason,
                or an unlock date that is not in the future
        """
        correlation_id = correlation_id or create_correlation_id()
        now = as_utc(now) if now else utcnow()
        cents = to_cents(amount)
        goal_cents = to_cents(goal_amount) if goal_amount else 0

        self._require_valid(self._validator.validate_lock(
            cents, reason, unlock_date, goal_amount=goal_cents, now=now
        ))

        saving = await self._storage.save_locked_saving(LockedSaving(
            user_id=user_id,
            amount=cents,
            lock_reason=reason,
            locked_at=now,
            unlock_date=unlock_date,
            goal_amount=goal_cents,
        ))

        await self._audit(AuditEventBuilder.savings_locked(
            user_id=user_id,
            saving_id=saving.id,
            amount=cents,
            unlock_date=saving.unlock_date.isoformat(),
            correlation_id=correlation_id,
        ))
        return saving

    async def list_savings(self, user_id: UUID) -> SavingsOverview:
        """Active and unlocked savings, earliest unlock first."""
        savings = await self._storage.list_locked_savings(
            user_id,
            statuses=[LockStatus.ACTIVE, LockStatus.UNLOCKED],
        )
        return SavingsOverview(
            savings=savings,
            total_locked=sum(s.amount for s in savings if s.status == LockStatus.ACTIVE),
        )

    async def unlock(
        self,
        user_id: UUID,
        saving_id: UUID,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> LockedSaving:
        """
        Release a saving whose unlock date has passed.

        Raises:
            NotFoundError: no such saving for this user
            SavingsNotActiveError: already unlocked or cancelled
            SavingsStillLockedError: the unlock date is still ahead
        """
        correlation_id = correlation_id or create_correlation_id()
        now = as_utc(now) if now else utcnow()

        saving = await self._storage.get_locked_saving(saving_id)
        if saving is None or saving.user_id != user_id:
            raise NotFoundError(f"Locked saving not found: {saving_id}")

        error = None
        if saving.status != LockStatus.ACTIVE:
            error = SavingsNotActiveError(f"Saving is already {saving.status.value}")
        elif not saving.is_unlockable(now):
            error = SavingsStillLockedError(
                f"Locked until {saving.unlock_date.date()} "
                f"({saving.days_remaining(now)} days left). No early withdrawals."
            )
        if error:
            await self._refuse(
                AuditEventBuilder.unlock_refused(
                    user_id=user_id,
                    saving_id=saving.id,
                    reason=type(error).__name__,
                    correlation_id=correlation_id,
                ),
                error,
            )
            raise error

        saving.status = LockStatus.UNLOCKED
        saving.updated_at = now
        saving = await self._storage.update_locked_saving(saving)

        await self._audit(AuditEventBuilder.savings_unlocked(
            user_id=user_id,
            saving_id=saving.id,
            amount=saving.amount,
            correlation_id=correlation_id,
        ))
        return saving
