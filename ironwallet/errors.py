"""
Domain exceptions raised by the IronWallet flows.

Storage problems are reported separately through
ironwallet.services.storage.StorageError and its subclasses.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ironwallet.models.finance import ValidationResult, ValidationIssue


class WalletError(Exception):
    """Base exception for refused or invalid wallet operations."""
    pass


class InvalidAmountError(WalletError, ValueError):
    """An amount could not be parsed or is not positive."""
    pass


class InvalidSplitError(WalletError, ValueError):
    """Split percentages are incomplete, out of range, or do not total 100."""

    def __init__(self, message: str, issues: Optional[list["ValidationIssue"]] = None):
        super().__init__(message)
        self.issues = issues or []


class ValidationFailedError(WalletError, ValueError):
    """Input failed validation; the full result is attached."""

    def __init__(self, result: "ValidationResult"):
        self.result = result
        messages = result.error_messages or ["Validation failed"]
        super().__init__("; ".join(messages))


class OnboardingRequiredError(WalletError):
    """The user has no budget categories yet."""
    pass


class CategoryNotFoundError(WalletError, LookupError):
    """The requested budget category does not exist for this user."""
    pass


class CategoryLockedError(WalletError):
    """Spending from a locked category was attempted."""
    pass


class InsufficientFundsError(WalletError):
    """An amount exceeds the available balance."""

    def __init__(self, message: str, available: int, requested: int):
        super().__init__(message)
        self.available = available
        self.requested = requested


class SavingsStillLockedError(WalletError):
    """An unlock was attempted before the unlock date."""
    pass


class SavingsNotActiveError(WalletError):
    """The locked saving was already unlocked or cancelled."""
    pass


class TreatBudgetExceededError(WalletError):
    """A treat would push monthly treat spending past the budget."""

    def __init__(self, message: str, remaining: int, requested: int):
        super().__init__(message)
        self.remaining = remaining
        self.requested = requested
