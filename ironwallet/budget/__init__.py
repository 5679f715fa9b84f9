"""Budget arithmetic package."""

from ironwallet.budget.allocation import (
    AmountInput,
    PercentageMap,
    clamp_percentage,
    format_cents,
    normalize_percentages,
    preview_split,
    savings_rate,
    split_income,
    to_cents,
    validate_split_percentages,
)

__all__ = [
    "AmountInput",
    "PercentageMap",
    "clamp_percentage",
    "format_cents",
    "normalize_percentages",
    "preview_split",
    "savings_rate",
    "split_income",
    "to_cents",
    "validate_split_percentages",
]
