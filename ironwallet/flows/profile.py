"""
Profile Flow

Creates the profile and treat wallet a user needs before onboarding,
and applies changes from the settings screen.
"""

from typing import Any, Optional
from uuid import UUID

from ironwallet.audit import create_correlation_id
from ironwallet.budget import AmountInput, to_cents
from ironwallet.errors import InvalidAmountError
from ironwallet.flows.base import BaseFlow
from ironwallet.models.audit import AuditEventBuilder
from ironwallet.models.finance import Profile, TreatWallet, utcnow
from ironwallet.services.storage import DuplicateError, NotFoundError


class ProfileFlow(BaseFlow):
    """Profile lifecycle for an authenticated user."""

    async def ensure_profile(
        self,
        user_id: UUID,
        email: str,
        full_name: str = "",
        correlation_id: Optional[UUID] = None,
    ) -> Profile:
        """
        Return the user's profile, creating it (and the treat wallet) if missing.

        Safe to call on every sign-in.
        """
        correlation_id = correlation_id or create_correlation_id()

        profile = await self._storage.get_profile(user_id)
        if profile is None:
            profile = Profile(
                user_id=user_id,
                email=email,
                full_name=full_name,
                currency=self._settings.default_currency,
            )
            try:
                profile = await self._storage.save_profile(profile)
            except DuplicateError:
                # Created concurrently by another session
                profile = await self._storage.get_profile(user_id)
            else:
                await self._audit(AuditEventBuilder.profile_created(
                    user_id=user_id,
                    profile_id=profile.id,
                    correlation_id=correlation_id,
                ))

        if await self._storage.get_treat_wallet(user_id) is None:
            try:
                await self._storage.save_treat_wallet(TreatWallet(user_id=user_id))
            except DuplicateError:
                pass

        return profile

    async def get_profile(self, user_id: UUID) -> Optional[Profile]:
        return await self._storage.get_profile(user_id)

    async def update_settings(
        self,
        user_id: UUID,
        monthly_income: Optional[AmountInput] = None,
        impulse_blocker_enabled: Optional[bool] = None,
        show_total_balance: Optional[bool] = None,
        full_name: Optional[str] = None,
        currency: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Profile:
        """
        Apply the given changes to the profile. Arguments left as None are untouched.

        Raises:
            NotFoundError: the user has no profile
            InvalidAmountError: monthly_income is negative or unparseable
        """
        correlation_id = correlation_id or create_correlation_id()

        profile = await self._storage.get_profile(user_id)
        if profile is None:
            raise NotFoundError(f"Profile not found for user {user_id}")

        changes: dict[str, Any] = {}
        if monthly_income is not None:
            cents = to_cents(monthly_income)
            if cents < 0:
                raise InvalidAmountError("Monthly income cannot be negative")
            changes["monthly_income"] = cents
        if impulse_blocker_enabled is not None:
            changes["impulse_blocker_enabled"] = impulse_blocker_enabled
        if show_total_balance is not None:
            changes["show_total_balance"] = show_total_balance
        if full_name is not None:
            changes["full_name"] = full_name
        if currency is not None:
            changes["currency"] = currency.strip().upper()

        if not changes:
            return profile

        # Re-validate so constraints like the currency length still apply
        updated = Profile.model_validate({
            **profile.model_dump(),
            **changes,
            "updated_at": utcnow(),
        })
        updated = await self._storage.update_profile(updated)

        await self._audit(AuditEventBuilder.settings_updated(
            user_id=user_id,
            changes=changes,
            correlation_id=correlation_id,
        ))
        return updated
