"""
Treat Wallet Flow

A separate pot for spending on other people. It has a balance (what
was put in) and an optional monthly budget (how much may go out per
calendar month). A budget of 0 means no monthly cap.

Monthly reset: the first time the wallet is touched in a new UTC month,
total_spent_this_month goes back to 0 and the balance is topped up to
the monthly budget. A balance already above the budget is kept.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from ironwallet.audit import create_correlation_id
from ironwallet.budget import AmountInput, format_cents, to_cents
from ironwallet.errors import InsufficientFundsError, InvalidAmountError, TreatBudgetExceededError
from ironwallet.flows.base import BaseFlow
from ironwallet.models.audit import AuditEventBuilder
from ironwallet.models.finance import (
    Transaction,
    TransactionType,
    TreatWallet,
    TreatWalletOverview,
    as_utc,
    utcnow,
)
from ironwallet.services.storage import DuplicateError


class TreatWalletFlow(BaseFlow):
    """Fund, cap and spend the treat wallet."""

    async def _get_wallet(self, user_id: UUID, now: datetime) -> TreatWallet:
        wallet = await self._storage.get_treat_wallet(user_id)
        if wallet is None:
            try:
                wallet = await self._storage.save_treat_wallet(
                    TreatWallet(user_id=user_id, last_reset_date=now)
                )
            except DuplicateError:
                wallet = await self._storage.get_treat_wallet(user_id)
        return wallet

    async def _apply_monthly_reset(
        self,
        wallet: TreatWallet,
        now: datetime,
        correlation_id: UUID,
    ) -> TreatWallet:
        last = wallet.last_reset_date
        if (last.year, last.month) >= (now.year, now.month):
            return wallet

        previous_spent = wallet.total_spent_this_month
        wallet.total_spent_this_month = 0
        wallet.current_balance = max(wallet.current_balance, wallet.monthly_budget)
        wallet.last_reset_date = now
        wallet.updated_at = now
        wallet = await self._storage.update_treat_wallet(wallet)

        await self._audit(AuditEventBuilder.treat_month_reset(
            user_id=wallet.user_id,
            wallet_id=wallet.id,
            previous_spent=previous_spent,
            new_balance=wallet.current_balance,
            correlation_id=correlation_id,
        ))
        return wallet

    async def _current_wallet(
        self,
        user_id: UUID,
        now: datetime,
        correlation_id: UUID,
    ) -> TreatWallet:
        wallet = await self._get_wallet(user_id, now)
        return await self._apply_monthly_reset(wallet, now, correlation_id)

    async def get_overview(
        self,
        user_id: UUID,
        now: Optional[datetime] = None,
    ) -> TreatWalletOverview:
        """The wallet plus the most recent treats, newest first."""
        now = as_utc(now) if now else utcnow()
        wallet = await self._current_wallet(user_id, now, create_correlation_id())
        treats = await self._storage.list_transactions(
            user_id,
            transaction_type=TransactionType.TREAT,
            limit=self._settings.treat_history_size,
        )
        return TreatWalletOverview(wallet=wallet, recent_treats=treats)

    async def set_monthly_budget(
        self,
        user_id: UUID,
        amount: AmountInput,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> TreatWallet:
        """Set the monthly treat cap. 0 removes the cap."""
        correlation_id = correlation_id or create_correlation_id()
        now = as_utc(now) if now else utcnow()
        cents = to_cents(amount)
        if cents < 0:
            raise InvalidAmountError("Monthly budget cannot be negative")

        wallet = await self._current_wallet(user_id, now, correlation_id)
        wallet.monthly_budget = cents
        wallet.updated_at = now
        wallet = await self._storage.update_treat_wallet(wallet)

        await self._audit(AuditEventBuilder.treat_budget_set(
            user_id=user_id,
            wallet_id=wallet.id,
            monthly_budget=cents,
            correlation_id=correlation_id,
        ))
        return wallet

    async def fund(
        self,
        user_id: UUID,
        amount: AmountInput,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> TreatWallet:
        """Add money to the wallet balance."""
        correlation_id = correlation_id or create_correlation_id()
        now = as_utc(now) if now else utcnow()
        cents = to_cents(amount)
        if cents <= 0:
            raise InvalidAmountError("Amount must be greater than zero")

        wallet = await self._current_wallet(user_id, now, correlation_id)
        wallet.current_balance += cents
        wallet.updated_at = now
        wallet = await self._storage.update_treat_wallet(wallet)

        await self._audit(AuditEventBuilder.treat_wallet_funded(
            user_id=user_id,
            wallet_id=wallet.id,
            amount=cents,
            new_balance=wallet.current_balance,
            correlation_id=correlation_id,
        ))
        return wallet

    async def spend(
        self,
        user_id: UUID,
        amount: AmountInput,
        recipient: str,
        description: str = "",
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Treat someone.

        Raises:
            ValidationFailedError: non-positive amount or missing recipient
            InsufficientFundsError: the wallet balance is too low
            TreatBudgetExceededError: the monthly cap would be exceeded
        """
        correlation_id = correlation_id or create_correlation_id()
        now = as_utc(now) if now else utcnow()
        cents = to_cents(amount)
        self._require_valid(self._validator.validate_treat(cents, recipient))

        wallet = await self._current_wallet(user_id, now, correlation_id)

        error = None
        if cents > wallet.current_balance:
            error = InsufficientFundsError(
                f"Insufficient funds in treat wallet: {format_cents(wallet.current_balance)} available",
                available=wallet.current_balance,
                requested=cents,
            )
        elif wallet.monthly_budget > 0 and cents > wallet.remaining_budget:
            error = TreatBudgetExceededError(
                f"Only {format_cents(max(0, wallet.remaining_budget))} of this month's "
                f"treat budget is left",
                remaining=max(0, wallet.remaining_budget),
                requested=cents,
            )
        if error:
            await self._refuse(
                AuditEventBuilder.treat_refused(
                    user_id=user_id,
                    amount=cents,
                    reason=type(error).__name__,
                    correlation_id=correlation_id,
                ),
                error,
            )
            raise error

        transaction = await self._storage.save_transaction(Transaction(
            user_id=user_id,
            transaction_type=TransactionType.TREAT,
            amount=cents,
            merchant=recipient,
            description=description,
            transaction_date=now,
        ))

        wallet.current_balance -= cents
        wallet.total_spent_this_month += cents
        wallet.updated_at = now
        await self._storage.update_treat_wallet(wallet)

        await self._audit(AuditEventBuilder.treat_spent(
            user_id=user_id,
            transaction_id=transaction.id,
            amount=cents,
            recipient=transaction.merchant,
            correlation_id=correlation_id,
        ))
        return transaction
