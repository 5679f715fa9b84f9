"""
Onboarding Flow

Flow:
1. Preview → Show what each category would get from the monthly income
2. Validate → Split must cover all five categories and total 100%
3. Complete → Store income, create categories and their income splits

Completing onboarding twice is harmless: categories that already exist
are left as they are, so balances are never reset.
"""

from typing import Optional
from uuid import UUID

from ironwallet.audit import create_correlation_id
from ironwallet.budget import (
    AmountInput,
    PercentageMap,
    normalize_percentages,
    preview_split,
    to_cents,
)
from ironwallet.errors import InvalidAmountError
from ironwallet.flows.base import BaseFlow
from ironwallet.models.audit import AuditEventBuilder
from ironwallet.models.finance import (
    DEFAULT_CATEGORIES,
    BudgetCategory,
    IncomeAllocation,
    IncomeSplit,
    default_percentages,
    utcnow,
)
from ironwallet.services.storage import NotFoundError
from ironwallet.validation import require_valid_split


class OnboardingFlow(BaseFlow):
    """First-run setup of income and budget categories."""

    def preview(
        self,
        monthly_income: AmountInput,
        percentages: Optional[PercentageMap] = None,
    ) -> IncomeAllocation:
        """Per-category amounts for a split that may not total 100% yet."""
        cents = to_cents(monthly_income)
        if cents < 0:
            raise InvalidAmountError("Monthly income cannot be negative")
        return preview_split(cents, percentages or default_percentages())

    async def complete_onboarding(
        self,
        user_id: UUID,
        monthly_income: AmountInput,
        percentages: Optional[PercentageMap] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[BudgetCategory]:
        """
        Finish onboarding and return the user's categories.

        Raises:
            InvalidAmountError: income is not greater than zero
            InvalidSplitError: percentages do not form a valid split
            NotFoundError: the user has no profile yet
        """
        correlation_id = correlation_id or create_correlation_id()

        cents = to_cents(monthly_income)
        if cents <= 0:
            raise InvalidAmountError("Monthly income must be greater than zero")

        percentages = percentages or default_percentages()
        require_valid_split(self._validator, percentages)
        normalized = normalize_percentages(percentages)

        profile = await self._storage.get_profile(user_id)
        if profile is None:
            raise NotFoundError(f"Profile not found for user {user_id}")

        existing = {c.category_type: c for c in await self._storage.list_categories(user_id)}
        linked = {
            s.category_id
            for s in await self._storage.list_income_splits(user_id, active_only=False)
        }

        for template in DEFAULT_CATEGORIES:
            category = existing.get(template.category_type)
            if category is None:
                category = await self._storage.save_category(BudgetCategory(
                    user_id=user_id,
                    category_name=template.name,
                    category_type=template.category_type,
                    allocation_percentage=normalized[template.category_type],
                    color_code=template.color,
                ))
                await self._audit(AuditEventBuilder.category_created(
                    user_id=user_id,
                    category_id=category.id,
                    category_type=category.category_type.value,
                    percentage=category.allocation_percentage,
                    correlation_id=correlation_id,
                ))

            if category.id not in linked:
                await self._storage.save_income_split(IncomeSplit(
                    user_id=user_id,
                    category_id=category.id,
                    split_percentage=category.allocation_percentage,
                ))

        profile.monthly_income = cents
        profile.onboarding_completed = True
        profile.updated_at = utcnow()
        await self._storage.update_profile(profile)

        await self._audit(AuditEventBuilder.onboarding_completed(
            user_id=user_id,
            monthly_income=cents,
            percentages={t.value: pct for t, pct in normalized.items()},
            correlation_id=correlation_id,
        ))

        return await self._storage.list_categories(user_id)
