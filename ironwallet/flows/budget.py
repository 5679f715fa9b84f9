"""
Budget Flow

The day-to-day money movements: income in, expenses out, transfers
between categories, plus the dashboard and transaction listing.

Flow for income:
1. Validate → amount and date
2. Split → active income splits, largest remainder (allocations sum to the income)
3. Save → one income transaction
4. Credit → each category balance gets its share

Expenses and transfers never overdraw a category and never touch a
locked one.
"""

from datetime import datetime
from typing import Optional, Union
from uuid import UUID

from ironwallet.audit import create_correlation_id
from ironwallet.budget import AmountInput, PercentageMap, format_cents, split_income, to_cents
from ironwallet.errors import (
    CategoryLockedError,
    CategoryNotFoundError,
    InsufficientFundsError,
    OnboardingRequiredError,
    WalletError,
)
from ironwallet.flows.base import BaseFlow
from ironwallet.models.audit import AuditEventBuilder
from ironwallet.models.finance import (
    BudgetCategory,
    CategoryType,
    DashboardSummary,
    IncomeAllocation,
    IncomeSplit,
    Transaction,
    TransactionFilter,
    TransactionPage,
    TransactionType,
    as_utc,
    utcnow,
)
from ironwallet.validation import require_valid_split

CategoryRef = Union[CategoryType, str]


class BudgetFlow(BaseFlow):
    """Category balances and the transactions that move them."""

    async def _get_category(self, user_id: UUID, category_type: CategoryRef) -> BudgetCategory:
        try:
            category_type = CategoryType(category_type)
        except ValueError:
            raise CategoryNotFoundError(f"Unknown budget category: {category_type!r}")

        category = await self._storage.get_category(user_id, category_type)
        if category is None:
            raise CategoryNotFoundError(
                f"No {category_type.value} category for this user; complete onboarding first"
            )
        return category

    async def _check_spendable(
        self,
        category: BudgetCategory,
        cents: int,
        correlation_id: UUID,
    ) -> None:
        """Raise if the category is locked or cannot cover the amount."""
        if category.is_locked:
            error = CategoryLockedError(f"{category.category_name} is locked")
        elif cents > category.current_balance:
            error = InsufficientFundsError(
                f"{category.category_name} only has "
                f"{format_cents(category.current_balance)}, "
                f"cannot spend {format_cents(cents)}",
                available=category.current_balance,
                requested=cents,
            )
        else:
            return

        await self._refuse(
            AuditEventBuilder.expense_refused(
                user_id=category.user_id,
                category_type=category.category_type.value,
                amount=cents,
                reason=type(error).__name__,
                correlation_id=correlation_id,
            ),
            error,
        )
        raise error

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_dashboard(self, user_id: UUID) -> DashboardSummary:
        """
        Home screen numbers.

        The daily allowance is always shown; the total balance is hidden
        when the impulse blocker is on or the user turned it off.
        """
        profile = await self._storage.get_profile(user_id)
        categories = await self._storage.list_categories(user_id)

        daily = next(
            (c for c in categories if c.category_type == CategoryType.DAILY),
            None,
        )
        hide_total = profile is not None and (
            profile.impulse_blocker_enabled or not profile.show_total_balance
        )

        return DashboardSummary(
            daily_allowance=daily.current_balance if daily else 0,
            total_balance=None if hide_total else sum(c.current_balance for c in categories),
            categories=categories,
            needs_onboarding=profile is None or not profile.onboarding_completed,
            currency=profile.currency if profile else self._settings.default_currency,
        )

    async def list_transactions(
        self,
        user_id: UUID,
        filter: Union[TransactionFilter, str] = TransactionFilter.ALL,
        limit: Optional[int] = None,
    ) -> TransactionPage:
        """Newest transactions first, with income/expense totals over the page."""
        filter = TransactionFilter(filter)
        transaction_type = None
        if filter == TransactionFilter.INCOME:
            transaction_type = TransactionType.INCOME
        elif filter == TransactionFilter.EXPENSE:
            transaction_type = TransactionType.EXPENSE

        transactions = await self._storage.list_transactions(
            user_id,
            transaction_type=transaction_type,
            limit=limit or self._settings.transaction_page_size,
        )

        return TransactionPage(
            filter=filter,
            transactions=transactions,
            total_income=sum(
                t.amount for t in transactions if t.transaction_type == TransactionType.INCOME
            ),
            total_expenses=sum(
                t.amount for t in transactions if t.transaction_type == TransactionType.EXPENSE
            ),
        )

    # -------------------------------------------------------------------------
    # Categories and splits
    # -------------------------------------------------------------------------

    async def update_split(
        self,
        user_id: UUID,
        percentages: PercentageMap,
        correlation_id: Optional[UUID] = None,
    ) -> list[BudgetCategory]:
        """
        Change how future income is split.

        Raises:
            InvalidSplitError: percentages do not form a valid split
            OnboardingRequiredError: the user has no categories
        """
        correlation_id = correlation_id or create_correlation_id()
        require_valid_split(self._validator, percentages)
        normalized = {CategoryType(k): v for k, v in percentages.items()}

        categories = await self._storage.list_categories(user_id)
        if not categories:
            raise OnboardingRequiredError("Complete onboarding before changing the split")

        splits = {
            s.category_id: s
            for s in await self._storage.list_income_splits(user_id, active_only=False)
        }
        now = utcnow()

        for category in categories:
            pct = normalized[category.category_type]
            category.allocation_percentage = pct
            category.updated_at = now
            await self._storage.update_category(category)

            split = splits.get(category.id)
            if split is None:
                await self._storage.save_income_split(IncomeSplit(
                    user_id=user_id,
                    category_id=category.id,
                    split_percentage=pct,
                ))
            else:
                split.split_percentage = pct
                split.is_active = True
                split.updated_at = now
                await self._storage.update_income_split(split)

        await self._audit(AuditEventBuilder.split_updated(
            user_id=user_id,
            percentages={t.value: pct for t, pct in normalized.items()},
            correlation_id=correlation_id,
        ))
        return await self._storage.list_categories(user_id)

    async def set_category_lock(
        self,
        user_id: UUID,
        category_type: CategoryRef,
        locked: bool,
        correlation_id: Optional[UUID] = None,
    ) -> BudgetCategory:
        """Lock or unlock a category for spending."""
        correlation_id = correlation_id or create_correlation_id()
        category = await self._get_category(user_id, category_type)
        if category.is_locked == locked:
            return category

        category.is_locked = locked
        category.updated_at = utcnow()
        category = await self._storage.update_category(category)

        await self._audit(AuditEventBuilder.category_lock_changed(
            user_id=user_id,
            category_id=category.id,
            category_type=category.category_type.value,
            locked=locked,
            correlation_id=correlation_id,
        ))
        return category

    # -------------------------------------------------------------------------
    # Money movements
    # -------------------------------------------------------------------------

    async def record_income(
        self,
        user_id: UUID,
        amount: AmountInput,
        merchant: str = "",
        description: str = "",
        transaction_date: Optional[datetime] = None,
        auto_split: bool = True,
        correlation_id: Optional[UUID] = None,
    ) -> IncomeAllocation:
        """
        Record income and, by default, split it across the categories.

        Raises:
            ValidationFailedError: amount is not positive
            OnboardingRequiredError: the user has no categories
            InvalidSplitError: the active income splits do not total 100%
        """
        correlation_id = correlation_id or create_correlation_id()
        cents = to_cents(amount)
        self._require_valid(self._validator.validate_transaction(
            cents, TransactionType.INCOME, transaction_date
        ))

        categories = await self._storage.list_categories(user_id)
        if not categories:
            raise OnboardingRequiredError("Complete onboarding before recording income")

        allocation = None
        if auto_split:
            by_id = {c.id: c for c in categories}
            percentages = {c.category_type: 0 for c in categories}
            for split in await self._storage.list_income_splits(user_id):
                category = by_id.get(split.category_id)
                if category is not None:
                    percentages[category.category_type] = split.split_percentage
            allocation = split_income(cents, percentages)

        transaction = await self._storage.save_transaction(Transaction(
            user_id=user_id,
            transaction_type=TransactionType.INCOME,
            amount=cents,
            merchant=merchant,
            description=description,
            transaction_date=as_utc(transaction_date) if transaction_date else utcnow(),
        ))
        await self._audit(AuditEventBuilder.income_recorded(
            user_id=user_id,
            transaction_id=transaction.id,
            amount=cents,
            correlation_id=correlation_id,
        ))

        if allocation is None:
            return IncomeAllocation(
                transaction_id=transaction.id,
                total_amount=cents,
                unallocated=cents,
            )

        by_type = {c.category_type: c for c in categories}
        now = utcnow()
        for share in allocation.allocations:
            category = by_type[share.category_type]
            share.category_id = category.id
            if share.amount:
                category.current_balance += share.amount
                category.updated_at = now
                await self._storage.update_category(category)

        allocation.transaction_id = transaction.id
        await self._audit(AuditEventBuilder.income_split_applied(
            user_id=user_id,
            transaction_id=transaction.id,
            allocations={a.category_type.value: a.amount for a in allocation.allocations},
            correlation_id=correlation_id,
        ))
        return allocation

    async def record_expense(
        self,
        user_id: UUID,
        category_type: CategoryRef,
        amount: AmountInput,
        merchant: str = "",
        description: str = "",
        is_impulse: bool = False,
        transaction_date: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Spend from a category.

        Raises:
            ValidationFailedError: amount is not positive
            CategoryNotFoundError: no such category for this user
            CategoryLockedError: the category is locked
            InsufficientFundsError: the category balance is too low
        """
        correlation_id = correlation_id or create_correlation_id()
        cents = to_cents(amount)
        self._require_valid(self._validator.validate_transaction(
            cents, TransactionType.EXPENSE, transaction_date
        ))

        category = await self._get_category(user_id, category_type)
        await self._check_spendable(category, cents, correlation_id)

        category.current_balance -= cents
        category.updated_at = utcnow()
        await self._storage.update_category(category)

        transaction = await self._storage.save_transaction(Transaction(
            user_id=user_id,
            category_id=category.id,
            transaction_type=TransactionType.EXPENSE,
            amount=cents,
            merchant=merchant,
            description=description,
            transaction_date=as_utc(transaction_date) if transaction_date else utcnow(),
            is_impulse=is_impulse,
        ))

        await self._audit(AuditEventBuilder.expense_recorded(
            user_id=user_id,
            transaction_id=transaction.id,
            category_type=category.category_type.value,
            amount=cents,
            is_impulse=is_impulse,
            correlation_id=correlation_id,
        ))
        return transaction

    async def record_transfer(
        self,
        user_id: UUID,
        from_type: CategoryRef,
        to_type: CategoryRef,
        amount: AmountInput,
        description: str = "",
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Move balance from one category to another.

        The source follows the same lock and funds rules as an expense.
        """
        correlation_id = correlation_id or create_correlation_id()
        cents = to_cents(amount)
        self._require_valid(self._validator.validate_transaction(
            cents, TransactionType.TRANSFER
        ))

        source = await self._get_category(user_id, from_type)
        target = await self._get_category(user_id, to_type)
        if source.id == target.id:
            raise WalletError("Cannot transfer a category to itself")

        await self._check_spendable(source, cents, correlation_id)

        now = utcnow()
        source.current_balance -= cents
        source.updated_at = now
        target.current_balance += cents
        target.updated_at = now
        await self._storage.update_category(source)
        await self._storage.update_category(target)

        transaction = await self._storage.save_transaction(Transaction(
            user_id=user_id,
            category_id=source.id,
            transaction_type=TransactionType.TRANSFER,
            amount=cents,
            description=description or f"Transfer to {target.category_name}",
            transaction_date=now,
        ))

        await self._audit(AuditEventBuilder.transfer_recorded(
            user_id=user_id,
            transaction_id=transaction.id,
            from_type=source.category_type.value,
            to_type=target.category_type.value,
            amount=cents,
            correlation_id=correlation_id,
        ))
        return transaction
