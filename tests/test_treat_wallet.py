"""Tests for the treat wallet."""

from datetime import datetime, timedelta, timezone

import pytest

from ironwallet.errors import (
    InsufficientFundsError,
    InvalidAmountError,
    TreatBudgetExceededError,
    ValidationFailedError,
)
from ironwallet.models.audit import AuditEventType
from ironwallet.models.finance import TransactionType, TreatWallet

MARCH = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
APRIL = datetime(2025, 4, 2, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def wallet_owner(run, storage, user_id):
    """A user whose treat wallet was last reset in March."""
    run(storage.save_treat_wallet(TreatWallet(user_id=user_id, last_reset_date=MARCH)))
    return user_id


class TestFunding:
    """Tests for fund and set_monthly_budget."""

    def test_fund(self, run, treats, wallet_owner):
        """Test funding raises the balance."""
        wallet = run(treats.fund(wallet_owner, "40", now=MARCH))
        wallet = run(treats.fund(wallet_owner, "2.50", now=MARCH))
        assert wallet.current_balance == 4250

    @pytest.mark.parametrize("amount", ["0", "-1"])
    def test_fund_must_be_positive(self, run, treats, wallet_owner, amount):
        """Test zero and negative funding is refused."""
        with pytest.raises(InvalidAmountError):
            run(treats.fund(wallet_owner, amount, now=MARCH))

    def test_set_budget(self, run, treats, wallet_owner):
        """Test the monthly budget can be set and cleared."""
        assert run(treats.set_monthly_budget(wallet_owner, "50", now=MARCH)).monthly_budget == 5000
        assert run(treats.set_monthly_budget(wallet_owner, 0, now=MARCH)).monthly_budget == 0

    def test_negative_budget(self, run, treats, wallet_owner):
        """Test a negative budget is refused."""
        with pytest.raises(InvalidAmountError):
            run(treats.set_monthly_budget(wallet_owner, "-5", now=MARCH))

    def test_wallet_created_on_demand(self, run, treats, storage, user_id):
        """Test a user without a wallet gets one the first time it is used."""
        run(treats.fund(user_id, "10", now=MARCH))
        assert run(storage.get_treat_wallet(user_id)).current_balance == 1000


class TestSpend:
    """Tests for TreatWalletFlow.spend."""

    def test_spend(self, run, treats, storage, wallet_owner):
        """Test a treat lowers the balance and records a treat transaction."""
        run(treats.fund(wallet_owner, "40", now=MARCH))
        transaction = run(treats.spend(wallet_owner, "15", "Mum", "Flowers", now=MARCH))

        assert transaction.transaction_type == TransactionType.TREAT
        assert transaction.merchant == "Mum"
        assert transaction.transaction_date == MARCH
        wallet = run(storage.get_treat_wallet(wallet_owner))
        assert wallet.current_balance == 2500
        assert wallet.total_spent_this_month == 1500

    def test_insufficient_funds(self, run, treats, storage, audit_storage, wallet_owner):
        """Test a treat above the balance is refused and audited."""
        run(treats.fund(wallet_owner, "10", now=MARCH))
        with pytest.raises(InsufficientFundsError) as excinfo:
            run(treats.spend(wallet_owner, "10.01", "Mum", now=MARCH))

        assert excinfo.value.available == 1000
        assert run(storage.get_treat_wallet(wallet_owner)).current_balance == 1000
        refused = [
            e for e in run(audit_storage.get_recent_events())
            if e.event_type == AuditEventType.TREAT_REFUSED
        ]
        assert refused[0].details["reason"] == "InsufficientFundsError"

    def test_budget_cap(self, run, treats, wallet_owner):
        """Test spending beyond the monthly budget is refused."""
        run(treats.fund(wallet_owner, "100", now=MARCH))
        run(treats.set_monthly_budget(wallet_owner, "20", now=MARCH))
        run(treats.spend(wallet_owner, "15", "Mum", now=MARCH))

        with pytest.raises(TreatBudgetExceededError) as excinfo:
            run(treats.spend(wallet_owner, "6", "Dad", now=MARCH))
        assert excinfo.value.remaining == 500

        run(treats.spend(wallet_owner, "5", "Dad", now=MARCH))

    def test_no_budget_means_no_cap(self, run, treats, wallet_owner):
        """Test a zero budget only limits by balance."""
        run(treats.fund(wallet_owner, "100", now=MARCH))
        run(treats.spend(wallet_owner, "100", "Friends", now=MARCH))

    def test_recipient_required(self, run, treats, wallet_owner):
        """Test the recipient may not be blank."""
        run(treats.fund(wallet_owner, "10", now=MARCH))
        with pytest.raises(ValidationFailedError):
            run(treats.spend(wallet_owner, "1", "  ", now=MARCH))


class TestMonthlyReset:
    """Tests for the calendar-month reset."""

    def test_new_month_resets_spending_and_tops_up(self, run, treats, audit_storage, wallet_owner):
        """Test a new month clears spending and refills the balance to the budget."""
        run(treats.fund(wallet_owner, "30", now=MARCH))
        run(treats.set_monthly_budget(wallet_owner, "20", now=MARCH))
        run(treats.spend(wallet_owner, "20", "Mum", now=MARCH))

        overview = run(treats.get_overview(wallet_owner, now=APRIL))

        assert overview.wallet.total_spent_this_month == 0
        assert overview.wallet.current_balance == 2000
        assert overview.wallet.last_reset_date == APRIL
        resets = [
            e for e in run(audit_storage.get_recent_events())
            if e.event_type == AuditEventType.TREAT_MONTH_RESET
        ]
        assert len(resets) == 1
        assert resets[0].details["previous_spent"] == 2000

    def test_balance_above_budget_is_kept(self, run, treats, wallet_owner):
        """Test the reset never lowers the balance."""
        run(treats.fund(wallet_owner, "80", now=MARCH))
        run(treats.set_monthly_budget(wallet_owner, "20", now=MARCH))

        wallet = run(treats.get_overview(wallet_owner, now=APRIL)).wallet
        assert wallet.current_balance == 8000

    def test_same_month_no_reset(self, run, treats, wallet_owner):
        """Test nothing resets within the month."""
        run(treats.fund(wallet_owner, "30", now=MARCH))
        run(treats.spend(wallet_owner, "10", "Mum", now=MARCH))

        wallet = run(treats.get_overview(wallet_owner, now=MARCH + timedelta(days=15))).wallet
        assert wallet.total_spent_this_month == 1000
        assert wallet.current_balance == 2000

    def test_reset_happens_once(self, run, treats, wallet_owner):
        """Test spending after the reset is kept for the rest of the month."""
        run(treats.set_monthly_budget(wallet_owner, "20", now=MARCH))
        run(treats.spend(wallet_owner, "5", "Mum", now=APRIL))

        wallet = run(treats.get_overview(wallet_owner, now=APRIL + timedelta(days=3))).wallet
        assert wallet.total_spent_this_month == 500
        assert wallet.current_balance == 1500


class TestOverview:
    """Tests for get_overview."""

    def test_recent_treats(self, run, treats, app_settings, wallet_owner):
        """Test recent treats are newest first and capped by the history size."""
        run(treats.fund(wallet_owner, "100", now=MARCH))
        for day in range(app_settings.treat_history_size + 2):
            run(treats.spend(wallet_owner, "1", f"Friend {day}", now=MARCH + timedelta(hours=day)))

        overview = run(treats.get_overview(wallet_owner, now=MARCH + timedelta(days=2)))
        treats_listed = overview.recent_treats
        assert len(treats_listed) == app_settings.treat_history_size
        last = app_settings.treat_history_size + 1
        assert treats_listed[0].merchant == f"Friend {last}"
