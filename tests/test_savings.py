"""Tests for locked savings."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from ironwallet.errors import SavingsNotActiveError, SavingsStillLockedError, ValidationFailedError
from ironwallet.models.audit import AuditEventType
from ironwallet.models.finance import LockedSaving, LockStatus
from ironwallet.services.storage import NotFoundError

NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)
NEXT_MONTH = NOW + timedelta(days=30)


class TestLockSavings:
    """Tests for SavingsFlow.lock_savings."""

    def test_lock(self, run, savings, user_id):
        """Test a lock is stored as active with amounts in cents."""
        saving = run(savings.lock_savings(
            user_id, "250", "Vacation", NEXT_MONTH, goal_amount="1000", now=NOW
        ))
        assert saving.status == LockStatus.ACTIVE
        assert saving.amount == 25000
        assert saving.goal_amount == 100000
        assert saving.locked_at == NOW
        assert saving.days_remaining(NOW) == 30

    def test_unlock_date_must_be_future(self, run, savings, storage, user_id):
        """Test a lock ending now or earlier is refused."""
        with pytest.raises(ValidationFailedError) as excinfo:
            run(savings.lock_savings(user_id, "250", "Vacation", NOW, now=NOW))
        assert "Unlock date must be in the future" in str(excinfo.value)
        assert run(storage.list_locked_savings(user_id)) == []

    def test_reason_required(self, run, savings, user_id):
        """Test the reason may not be blank."""
        with pytest.raises(ValidationFailedError):
            run(savings.lock_savings(user_id, "250", " ", NEXT_MONTH, now=NOW))

    def test_amount_must_be_positive(self, run, savings, user_id):
        """Test nothing can be locked for zero."""
        with pytest.raises(ValidationFailedError):
            run(savings.lock_savings(user_id, 0, "Vacation", NEXT_MONTH, now=NOW))


class TestListSavings:
    """Tests for SavingsFlow.list_savings."""

    def test_totals_only_active(self, run, savings, storage, user_id):
        """Test unlocked savings are listed but not counted as locked."""
        run(savings.lock_savings(user_id, "100", "Car", NEXT_MONTH, now=NOW))
        run(savings.lock_savings(user_id, "50", "Trip", NOW + timedelta(days=1), now=NOW))
        run(storage.save_locked_saving(LockedSaving(
            user_id=user_id, amount=999, lock_reason="Old", unlock_date=NOW,
            status=LockStatus.CANCELLED,
        )))
        trip = run(storage.list_locked_savings(user_id, statuses=[LockStatus.ACTIVE]))[0]
        run(savings.unlock(user_id, trip.id, now=NOW + timedelta(days=2)))

        overview = run(savings.list_savings(user_id))
        assert [s.lock_reason for s in overview.savings] == ["Trip", "Car"]
        assert overview.total_locked == 10000
        assert [s.lock_reason for s in overview.active_savings] == ["Car"]


class TestUnlock:
    """Tests for SavingsFlow.unlock."""

    def test_unlock_after_date(self, run, savings, audit_storage, user_id):
        """Test a saving unlocks on or after its unlock date."""
        saving = run(savings.lock_savings(user_id, "100", "Car", NEXT_MONTH, now=NOW))
        unlocked = run(savings.unlock(user_id, saving.id, now=NEXT_MONTH))

        assert unlocked.status == LockStatus.UNLOCKED
        types = [e.event_type for e in run(audit_storage.get_events_by_entity("locked_saving", saving.id))]
        assert types == [AuditEventType.SAVINGS_LOCKED, AuditEventType.SAVINGS_UNLOCKED]

    def test_no_early_withdrawal(self, run, savings, storage, audit_storage, user_id):
        """Test unlocking early is refused and audited."""
        saving = run(savings.lock_savings(user_id, "100", "Car", NEXT_MONTH, now=NOW))

        with pytest.raises(SavingsStillLockedError) as excinfo:
            run(savings.unlock(user_id, saving.id, now=NEXT_MONTH - timedelta(seconds=1)))
        assert "No early withdrawals" in str(excinfo.value)
        assert run(storage.get_locked_saving(saving.id)).status == LockStatus.ACTIVE

        refused = [
            e for e in run(audit_storage.get_recent_events())
            if e.event_type == AuditEventType.UNLOCK_REFUSED
        ]
        assert len(refused) == 1

    def test_unlock_twice(self, run, savings, user_id):
        """Test an unlocked saving cannot be unlocked again."""
        saving = run(savings.lock_savings(user_id, "100", "Car", NEXT_MONTH, now=NOW))
        run(savings.unlock(user_id, saving.id, now=NEXT_MONTH))
        with pytest.raises(SavingsNotActiveError):
            run(savings.unlock(user_id, saving.id, now=NEXT_MONTH))

    def test_unknown_saving(self, run, savings, user_id):
        """Test an unknown id is not found."""
        with pytest.raises(NotFoundError):
            run(savings.unlock(user_id, uuid4(), now=NOW))

    def test_other_users_saving(self, run, savings, user_id):
        """Test a user cannot unlock someone else's saving."""
        saving = run(savings.lock_savings(user_id, "100", "Car", NEXT_MONTH, now=NOW))
        with pytest.raises(NotFoundError):
            run(savings.unlock(uuid4(), saving.id, now=NEXT_MONTH))
