"""Tests for budget arithmetic."""

from decimal import Decimal

import pytest

from ironwallet.budget import (
    clamp_percentage,
    format_cents,
    preview_split,
    savings_rate,
    split_income,
    to_cents,
    validate_split_percentages,
)
from ironwallet.errors import InvalidAmountError, InvalidSplitError
from ironwallet.models.finance import CategoryType, default_percentages


EVEN_SPLIT = {t: 20 for t in CategoryType}


def split_with(**overrides):
    """The default split keyed by string, with some categories changed."""
    split = {t.value: pct for t, pct in default_percentages().items()}
    split.update(overrides)
    return split


class TestToCents:
    """Tests for converting user input to integer cents."""

    @pytest.mark.parametrize("value,expected", [
        ("12.34", 1234),
        ("12.345", 1235),
        ("12.344", 1234),
        (12.345, 1235),
        (10, 1000),
        (Decimal("0.005"), 1),
        ("$1,234.50", 123450),
        ("  7 ", 700),
        ("-5", -500),
    ])
    def test_conversions(self, value, expected):
        """Test half-up rounding at the cent."""
        assert to_cents(value) == expected

    @pytest.mark.parametrize("value", ["", "   ", "abc", "1.2.3", True, float("nan"), "inf", None])
    def test_rejects_non_amounts(self, value):
        """Test that empty and non-numeric input is rejected."""
        with pytest.raises(InvalidAmountError):
            to_cents(value)


class TestFormatCents:
    """Tests for rendering cents."""

    def test_usd(self):
        """Test dollar formatting."""
        assert format_cents(1234) == "$12.34"
        assert format_cents(5) == "$0.05"
        assert format_cents(0) == "$0.00"

    def test_negative(self):
        """Test the sign goes before the currency symbol."""
        assert format_cents(-305) == "-$3.05"

    def test_other_currency(self):
        """Test non-USD amounts get a currency suffix."""
        assert format_cents(1234, "eur") == "12.34 EUR"


class TestClampPercentage:
    """Tests for parsing typed percentages."""

    @pytest.mark.parametrize("value,expected", [
        ("25", 25),
        ("25%", 25),
        (" 40 ", 40),
        ("abc", 0),
        ("", 0),
        (150, 100),
        (-5, 0),
        (33.7, 33),
        (None, 0),
    ])
    def test_clamp(self, value, expected):
        """Test unparseable input becomes 0 and the result is clamped to 0..100."""
        assert clamp_percentage(value) == expected


class TestValidateSplitPercentages:
    """Tests for split validation."""

    def test_default_split_is_valid(self):
        """Test the default split passes."""
        assert validate_split_percentages(default_percentages()) == []

    def test_string_keys_accepted(self):
        """Test category types can be given as strings."""
        split = {"bills": 50, "goals": 0, "daily": 50, "freedom": 0, "emergency": 0}
        assert validate_split_percentages(split) == []

    def test_bad_total(self):
        """Test a total other than 100 is reported with the total."""
        split = split_with(emergency=0)
        issues = validate_split_percentages(split)
        assert [i.issue_type for i in issues] == ["bad_total"]
        assert issues[0].message == "Total is 95%, must be 100%"

    def test_missing_categories(self):
        """Test every missing category is reported."""
        issues = validate_split_percentages({"bills": 100})
        assert {i.field for i in issues} == {"goals", "daily", "freedom", "emergency"}
        assert all(i.issue_type == "missing" for i in issues)

    def test_out_of_range(self):
        """Test values outside 0..100 are reported."""
        split = {"bills": 120, "goals": -20, "daily": 0, "freedom": 0, "emergency": 0}
        issues = validate_split_percentages(split)
        assert sorted(i.field for i in issues) == ["bills", "goals"]
        assert all(i.issue_type == "out_of_range" for i in issues)

    def test_non_integer(self):
        """Test fractional percentages are rejected."""
        split = split_with(bills=29.5)
        issues = validate_split_percentages(split)
        assert issues[0].issue_type == "invalid_format"

    def test_unknown_category(self):
        """Test an unknown category key is reported."""
        split = split_with(rent=10)
        issues = validate_split_percentages(split)
        assert issues[0].issue_type == "unknown_category"


class TestSplitIncome:
    """Tests for the largest-remainder income split."""

    def test_exact_split(self):
        """Test amounts that divide evenly."""
        allocation = split_income(1000, default_percentages())
        assert [a.amount for a in allocation.allocations] == [300, 200, 250, 200, 50]
        assert allocation.unallocated == 0

    @pytest.mark.parametrize("amount", [0, 1, 3, 7, 99, 12345, 300001, 99999999])
    def test_allocations_sum_to_amount(self, amount):
        """Test no cent is ever lost or created."""
        allocation = split_income(amount, default_percentages())
        assert allocation.allocated_total == amount
        assert allocation.total_amount == amount

    def test_leftover_goes_to_largest_remainder(self):
        """Test leftover cents follow the fractional remainders."""
        allocation = split_income(3, default_percentages())
        # remainders: bills .90, daily .75, goals .60, freedom .60, emergency .15
        assert allocation.amount_for(CategoryType.BILLS) == 1
        assert allocation.amount_for(CategoryType.DAILY) == 1
        assert allocation.amount_for(CategoryType.GOALS) == 1
        assert allocation.amount_for(CategoryType.FREEDOM) == 0
        assert allocation.amount_for(CategoryType.EMERGENCY) == 0

    def test_ties_follow_category_order(self):
        """Test equal remainders favour the earlier category."""
        allocation = split_income(2, EVEN_SPLIT)
        assert [a.amount for a in allocation.allocations] == [1, 1, 0, 0, 0]

    def test_allocations_in_category_order(self):
        """Test allocations are listed bills first, emergency last."""
        allocation = split_income(500, default_percentages())
        assert [a.category_type for a in allocation.allocations] == list(CategoryType)
        assert [a.percentage for a in allocation.allocations] == [30, 20, 25, 20, 5]

    def test_rejects_negative_amount(self):
        """Test a negative amount is rejected."""
        with pytest.raises(InvalidAmountError):
            split_income(-1, default_percentages())

    def test_rejects_invalid_split(self):
        """Test percentages must total 100."""
        with pytest.raises(InvalidSplitError) as excinfo:
            split_income(1000, split_with(bills=20))
        assert "Total is 90%, must be 100%" in str(excinfo.value)
        assert excinfo.value.issues


class TestPreviewSplit:
    """Tests for the onboarding preview."""

    def test_partial_split(self):
        """Test floor shares with the rest reported as unallocated."""
        preview = preview_split(1001, {"bills": 50, "daily": 40})
        assert preview.amount_for(CategoryType.BILLS) == 500
        assert preview.amount_for(CategoryType.DAILY) == 400
        assert preview.amount_for(CategoryType.GOALS) == 0
        assert preview.unallocated == 101

    def test_full_split_may_leave_cents(self):
        """Test the preview does not redistribute leftover cents."""
        preview = preview_split(3, default_percentages())
        assert preview.allocated_total == 0
        assert preview.unallocated == 3


class TestSavingsRate:
    """Tests for the savings rate."""

    @pytest.mark.parametrize("income,expenses,expected", [
        (0, 0, 0),
        (0, 500, 0),
        (1000, 800, 20),
        (1000, 0, 100),
        (1000, 1500, -50),
        (1000, 995, 1),
        (1000, 1005, 0),
        (3, 2, 33),
        (3, 1, 67),
    ])
    def test_rate(self, income, expenses, expected):
        """Test rounding half toward +infinity, 0 without income."""
        assert savings_rate(income, expenses) == expected
