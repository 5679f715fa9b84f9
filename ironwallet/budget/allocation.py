"""
Budget Arithmetic

Everything that turns user-entered money and percentages into integer cents.

DESIGN DECISION: Splits use the largest-remainder method.
Each category first gets floor(amount * pct / 100). The handful of cents
lost to flooring (at most one per category) are then handed out one at a
time to the categories with the largest fractional remainder, ties going
to the earlier category in CATEGORY_ORDER. The allocations therefore
always add up to exactly the income, and the result is deterministic.
"""

import math
import re
from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from fractions import Fraction
from typing import Union

from ironwallet.errors import InvalidAmountError, InvalidSplitError
from ironwallet.models.finance import (
    CATEGORY_ORDER,
    CategoryAllocation,
    CategoryType,
    IncomeAllocation,
    ValidationIssue,
)

AmountInput = Union[str, int, float, Decimal]
PercentageMap = Mapping[Union[CategoryType, str], int]

_CENT = Decimal("0.01")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def to_cents(value: AmountInput) -> int:
    """
    Convert an amount in major units to integer cents.

    Rounds half-up at the cent: "12.345" -> 1235.
    Accepts thousands separators and a leading "$" in strings.

    Raises:
        InvalidAmountError: empty, non-numeric, or non-finite input
    """
    if isinstance(value, bool):
        raise InvalidAmountError(f"Not an amount: {value!r}")

    if isinstance(value, str):
        text = value.strip().replace(",", "").lstrip("$").strip()
        if not text:
            raise InvalidAmountError("Amount is required")
        try:
            amount = Decimal(text)
        except InvalidOperation:
            raise InvalidAmountError(f"Not a number: {value!r}")
    elif isinstance(value, float):
        amount = Decimal(repr(value))
    elif isinstance(value, (int, Decimal)):
        amount = Decimal(value)
    else:
        raise InvalidAmountError(f"Unsupported amount type: {type(value).__name__}")

    if not amount.is_finite():
        raise InvalidAmountError(f"Amount must be finite: {value!r}")

    return int(amount.quantize(_CENT, rounding=ROUND_HALF_UP) * 100)


def format_cents(cents: int, currency: str = "USD") -> str:
    """Render cents for display: $12.34, -$3.05, 12.34 EUR."""
    sign = "-" if cents < 0 else ""
    major, minor = divmod(abs(cents), 100)
    if currency.upper() == "USD":
        return f"{sign}${major}.{minor:02d}"
    return f"{sign}{major}.{minor:02d} {currency.upper()}"


def clamp_percentage(value: Union[str, int, float]) -> int:
    """
    Parse a percentage typed by a user and clamp it to 0..100.

    Only the leading integer of a string counts ("25%" -> 25);
    anything unparseable counts as 0.
    """
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        parsed = int(match.group(1)) if match else 0
    else:
        try:
            parsed = int(value)
        except (TypeError, ValueError, OverflowError):
            parsed = 0
    return min(100, max(0, parsed))


def normalize_percentages(percentages: PercentageMap) -> dict[CategoryType, int]:
    """
    Key a percentage mapping by CategoryType.

    Raises:
        InvalidSplitError: a key is not a known category type
    """
    normalized: dict[CategoryType, int] = {}
    for key, pct in percentages.items():
        try:
            category_type = CategoryType(key)
        except ValueError:
            raise InvalidSplitError(f"Unknown budget category: {key!r}")
        normalized[category_type] = pct
    return normalized


def validate_split_percentages(percentages: PercentageMap) -> list[ValidationIssue]:
    """
    Check a complete split. Returns an empty list when it is usable.

    Every category must be present, every value in 0..100, and the
    total exactly 100.
    """
    issues: list[ValidationIssue] = []

    try:
        normalized = normalize_percentages(percentages)
    except InvalidSplitError as e:
        return [ValidationIssue(
            field="percentages",
            issue_type="unknown_category",
            message=str(e),
            severity="error",
        )]

    for category_type in CATEGORY_ORDER:
        if category_type not in normalized:
            issues.append(ValidationIssue(
                field=category_type.value,
                issue_type="missing",
                message=f"No percentage given for {category_type.value}",
                severity="error",
                suggested_fix="Give every category a percentage, even if it is 0",
            ))
            continue

        pct = normalized[category_type]
        if isinstance(pct, bool) or not isinstance(pct, int):
            issues.append(ValidationIssue(
                field=category_type.value,
                issue_type="invalid_format",
                message=f"Percentage for {category_type.value} must be a whole number",
                severity="error",
            ))
        elif not 0 <= pct <= 100:
            issues.append(ValidationIssue(
                field=category_type.value,
                issue_type="out_of_range",
                message=f"Percentage for {category_type.value} must be between 0 and 100 (got {pct})",
                severity="error",
            ))

    if not issues:
        total = sum(normalized.values())
        if total != 100:
            issues.append(ValidationIssue(
                field="percentages",
                issue_type="bad_total",
                message=f"Total is {total}%, must be 100%",
                severity="error",
                suggested_fix="Adjust the categories until they add up to exactly 100%",
            ))

    return issues


def split_income(amount_cents: int, percentages: PercentageMap) -> IncomeAllocation:
    """
    Split income across the five categories.

    The allocations always sum to exactly amount_cents.

    Raises:
        InvalidAmountError: negative amount
        InvalidSplitError: percentages do not form a valid split
    """
    if amount_cents < 0:
        raise InvalidAmountError("Cannot split a negative amount")

    issues = validate_split_percentages(percentages)
    if issues:
        raise InvalidSplitError(
            "; ".join(issue.message for issue in issues),
            issues=issues,
        )
    normalized = normalize_percentages(percentages)

    shares: dict[CategoryType, int] = {}
    remainders: list[tuple[int, int, CategoryType]] = []
    for position, category_type in enumerate(CATEGORY_ORDER):
        base, remainder = divmod(amount_cents * normalized[category_type], 100)
        shares[category_type] = base
        remainders.append((remainder, -position, category_type))

    leftover = amount_cents - sum(shares.values())
    for _, _, category_type in sorted(remainders, reverse=True)[:leftover]:
        shares[category_type] += 1

    return IncomeAllocation(
        total_amount=amount_cents,
        allocations=[
            CategoryAllocation(
                category_type=category_type,
                percentage=normalized[category_type],
                amount=shares[category_type],
            )
            for category_type in CATEGORY_ORDER
        ],
    )


def preview_split(amount_cents: int, percentages: PercentageMap) -> IncomeAllocation:
    """
    Per-category amounts for a split that is still being edited.

    Unlike split_income the total need not be 100; each category simply
    gets floor(amount * pct / 100) and whatever is left is reported as
    unallocated. Missing categories count as 0%.
    """
    if amount_cents < 0:
        raise InvalidAmountError("Cannot split a negative amount")

    normalized = normalize_percentages(percentages)
    allocations = []
    for category_type in CATEGORY_ORDER:
        pct = clamp_percentage(normalized.get(category_type, 0))
        allocations.append(CategoryAllocation(
            category_type=category_type,
            percentage=pct,
            amount=amount_cents * pct // 100,
        ))

    allocated = sum(a.amount for a in allocations)
    return IncomeAllocation(
        total_amount=amount_cents,
        allocations=allocations,
        unallocated=max(0, amount_cents - allocated),
    )


def savings_rate(total_income: int, total_expenses: int) -> int:
    """
    Percent of income not spent, rounded half toward +infinity.

    0 when there was no income; negative when spending exceeded income.
    """
    if total_income <= 0:
        return 0
    rate = Fraction(total_income - total_expenses, total_income) * 100
    return math.floor(rate + Fraction(1, 2))
