"""Input validation package."""

from ironwallet.validation.validator import WalletValidator, require_valid_split

__all__ = ["WalletValidator", "require_valid_split"]
