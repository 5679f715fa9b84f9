"""Tests for profile creation, settings and onboarding."""

import pytest

from ironwallet.errors import InvalidAmountError, InvalidSplitError
from ironwallet.models.audit import AuditEventType
from ironwallet.models.finance import CategoryType
from ironwallet.services.storage import NotFoundError


def event_types(run, audit_storage):
    return [e.event_type for e in run(audit_storage.get_recent_events())]


class TestEnsureProfile:
    """Tests for ProfileFlow.ensure_profile."""

    def test_creates_profile_and_treat_wallet(self, run, profiles, storage, audit_storage, user_id):
        """Test the first sign-in creates a profile and an empty treat wallet."""
        profile = run(profiles.ensure_profile(user_id, "sam@example.com", "Sam"))

        assert profile.user_id == user_id
        assert profile.onboarding_completed is False
        assert profile.currency == "USD"
        wallet = run(storage.get_treat_wallet(user_id))
        assert wallet.current_balance == 0
        assert event_types(run, audit_storage) == [AuditEventType.PROFILE_CREATED]

    def test_idempotent(self, run, profiles, audit_storage, user_id):
        """Test repeated sign-ins return the same profile without new events."""
        first = run(profiles.ensure_profile(user_id, "sam@example.com"))
        second = run(profiles.ensure_profile(user_id, "other@example.com"))

        assert second.id == first.id
        assert second.email == "sam@example.com"
        assert len(run(audit_storage.get_recent_events())) == 1

    def test_recreates_missing_treat_wallet(self, run, profiles, storage, user_id):
        """Test a profile without a treat wallet gets one on the next sign-in."""
        run(profiles.ensure_profile(user_id, "sam@example.com"))
        storage._wallets.clear()

        run(profiles.ensure_profile(user_id, "sam@example.com"))
        assert run(storage.get_treat_wallet(user_id)) is not None


class TestUpdateSettings:
    """Tests for ProfileFlow.update_settings."""

    def test_updates_given_fields_only(self, run, profiles, user_id):
        """Test only the arguments that were passed change."""
        run(profiles.ensure_profile(user_id, "sam@example.com", "Sam"))

        profile = run(profiles.update_settings(
            user_id,
            monthly_income="4,500.50",
            impulse_blocker_enabled=True,
            currency=" eur ",
        ))

        assert profile.monthly_income == 450050
        assert profile.impulse_blocker_enabled is True
        assert profile.currency == "EUR"
        assert profile.full_name == "Sam"
        assert profile.show_total_balance is True
        assert run(profiles.get_profile(user_id)) == profile

    def test_audits_changes(self, run, profiles, audit_storage, user_id):
        """Test a settings change is audited with the changed values."""
        run(profiles.ensure_profile(user_id, "sam@example.com"))
        run(profiles.update_settings(user_id, show_total_balance=False))

        events = [
            e for e in run(audit_storage.get_recent_events())
            if e.event_type == AuditEventType.SETTINGS_UPDATED
        ]
        assert len(events) == 1
        assert events[0].details["changes"] == {"show_total_balance": False}

    def test_no_changes_is_a_no_op(self, run, profiles, audit_storage, user_id):
        """Test calling with nothing to change writes nothing."""
        created = run(profiles.ensure_profile(user_id, "sam@example.com"))
        assert run(profiles.update_settings(user_id)) == created
        assert len(run(audit_storage.get_recent_events())) == 1

    def test_negative_income(self, run, profiles, user_id):
        """Test negative income is rejected."""
        run(profiles.ensure_profile(user_id, "sam@example.com"))
        with pytest.raises(InvalidAmountError):
            run(profiles.update_settings(user_id, monthly_income="-10"))

    def test_bad_currency(self, run, profiles, user_id):
        """Test the currency must be a three-letter code."""
        run(profiles.ensure_profile(user_id, "sam@example.com"))
        with pytest.raises(ValueError):
            run(profiles.update_settings(user_id, currency="EURO"))

    def test_unknown_user(self, run, profiles, user_id):
        """Test settings cannot be changed before the profile exists."""
        with pytest.raises(NotFoundError):
            run(profiles.update_settings(user_id, show_total_balance=False))


class TestOnboarding:
    """Tests for OnboardingFlow."""

    def test_preview(self, onboarding):
        """Test the preview splits the income without saving anything."""
        preview = onboarding.preview("3000")
        assert preview.amount_for(CategoryType.BILLS) == 90000
        assert preview.amount_for(CategoryType.EMERGENCY) == 15000
        assert preview.unallocated == 0

    def test_preview_partial_split(self, onboarding):
        """Test a split that is still being typed in shows the unallocated rest."""
        preview = onboarding.preview("100", {"bills": "50%"})
        assert preview.amount_for(CategoryType.BILLS) == 5000
        assert preview.unallocated == 5000

    def test_complete_creates_categories_and_splits(self, run, storage, onboarded_user):
        """Test onboarding creates five categories, each linked to its income split."""
        categories = run(storage.list_categories(onboarded_user))
        assert [c.category_type for c in categories] == list(CategoryType)
        assert [c.allocation_percentage for c in categories] == [30, 20, 25, 20, 5]
        assert all(c.current_balance == 0 for c in categories)

        splits = run(storage.list_income_splits(onboarded_user))
        by_category = {s.category_id: s.split_percentage for s in splits}
        assert by_category == {c.id: c.allocation_percentage for c in categories}

        profile = run(storage.get_profile(onboarded_user))
        assert profile.onboarding_completed is True
        assert profile.monthly_income == 300000

    def test_complete_audits(self, run, audit_storage, onboarded_user):
        """Test onboarding records one event per category plus completion."""
        types = event_types(run, audit_storage)
        assert types.count(AuditEventType.CATEGORY_CREATED) == 5
        assert AuditEventType.ONBOARDING_COMPLETED in types

    def test_custom_split(self, run, profiles, onboarding, user_id):
        """Test a custom split is stored as given."""
        run(profiles.ensure_profile(user_id, "sam@example.com"))
        split = {"bills": 40, "goals": 10, "daily": 30, "freedom": 10, "emergency": 10}

        categories = run(onboarding.complete_onboarding(user_id, 2000, split))
        assert [c.allocation_percentage for c in categories] == [40, 10, 30, 10, 10]

    def test_repeat_keeps_balances(self, run, storage, onboarding, budget, onboarded_user):
        """Test onboarding again leaves existing categories and splits alone."""
        run(budget.record_income(onboarded_user, "100"))
        before = run(storage.list_categories(onboarded_user))

        after = run(onboarding.complete_onboarding(onboarded_user, "5000"))

        assert [c.id for c in after] == [c.id for c in before]
        assert [c.current_balance for c in after] == [c.current_balance for c in before]
        assert len(run(storage.list_income_splits(onboarded_user, active_only=False))) == 5
        assert run(storage.get_profile(onboarded_user)).monthly_income == 500000

    def test_invalid_split(self, run, profiles, onboarding, storage, user_id):
        """Test an invalid split is refused before anything is stored."""
        run(profiles.ensure_profile(user_id, "sam@example.com"))
        with pytest.raises(InvalidSplitError):
            run(onboarding.complete_onboarding(user_id, "3000", {"bills": 100}))
        assert run(storage.list_categories(user_id)) == []

    @pytest.mark.parametrize("income", ["0", "-100"])
    def test_income_must_be_positive(self, run, profiles, onboarding, user_id, income):
        """Test zero and negative income are refused."""
        run(profiles.ensure_profile(user_id, "sam@example.com"))
        with pytest.raises(InvalidAmountError):
            run(onboarding.complete_onboarding(user_id, income))

    def test_requires_profile(self, run, onboarding, user_id):
        """Test onboarding needs a profile."""
        with pytest.raises(NotFoundError):
            run(onboarding.complete_onboarding(user_id, "3000"))
