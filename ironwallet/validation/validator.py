"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required values present
- Amounts positive
- Percentages complete and in range
- This catches malformed input

STAGE 2 - SEMANTIC VALIDATION:
- Unlock dates that are not in the future
- Transaction dates too far in the future
- Absurd amounts
- Goals smaller than what is already locked
- This catches logically impossible or suspicious input

Stage 2 only runs when stage 1 passes.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them; the flows refuse on errors and pass warnings back.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional

from ironwallet.budget.allocation import (
    PercentageMap,
    format_cents,
    normalize_percentages,
    validate_split_percentages,
)
from ironwallet.config import AppSettings, get_settings
from ironwallet.errors import InvalidSplitError
from ironwallet.models.finance import (
    CategoryType,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    as_utc,
    utcnow,
)


class WalletValidator:
    """
    Validates user input before any flow touches storage.

    Every validate_* method returns a ValidationResult; none of them raise.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _run(
        self,
        subject: str,
        schema_issues: list[ValidationIssue],
        semantic: Callable[[], list[ValidationIssue]],
    ) -> ValidationResult:
        """Run stage 2 only if stage 1 has no errors, then assemble the result."""
        all_issues = list(schema_issues)
        schema_valid = not any(i.severity == "error" for i in schema_issues)

        semantic_valid = False
        if schema_valid:
            semantic_issues = semantic()
            all_issues.extend(semantic_issues)
            semantic_valid = not any(i.severity == "error" for i in semantic_issues)

        return ValidationResult(
            subject=subject,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=[i.message for i in all_issues if i.severity == "warning"],
        )

    def _amount_issues(self, amount: int, field: str = "amount") -> list[ValidationIssue]:
        if amount <= 0:
            return [ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
            )]
        return []

    def _sanity_issues(self, amount: int) -> list[ValidationIssue]:
        if amount > self._settings.max_transaction_amount_cents:
            return [ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({format_cents(amount)}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            )]
        return []

    # -------------------------------------------------------------------------
    # Splits
    # -------------------------------------------------------------------------

    def validate_split(self, percentages: PercentageMap) -> ValidationResult:
        """Validate a complete five-category split."""

        def semantic() -> list[ValidationIssue]:
            normalized = normalize_percentages(percentages)
            issues = []
            if normalized[CategoryType.EMERGENCY] == 0:
                issues.append(ValidationIssue(
                    field=CategoryType.EMERGENCY.value,
                    issue_type="no_safety_net",
                    message="Nothing goes to Emergency. One bad month and you're done.",
                    severity="warning",
                ))
            if normalized[CategoryType.DAILY] == 0:
                issues.append(ValidationIssue(
                    field=CategoryType.DAILY.value,
                    issue_type="no_allowance",
                    message="Daily gets 0%, so your daily allowance will always be $0.00",
                    severity="warning",
                ))
            if normalized[CategoryType.FREEDOM] > 50:
                issues.append(ValidationIssue(
                    field=CategoryType.FREEDOM.value,
                    issue_type="suspicious_value",
                    message="More than half of your income goes to Freedom",
                    severity="info",
                ))
            return issues

        return self._run("split", validate_split_percentages(percentages), semantic)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def validate_transaction(
        self,
        amount: int,
        transaction_type: TransactionType,
        transaction_date: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> ValidationResult:
        """Validate an income, expense or transfer before it is recorded."""
        now = as_utc(now) if now else utcnow()
        if transaction_date is not None:
            transaction_date = as_utc(transaction_date)

        def semantic() -> list[ValidationIssue]:
            issues = self._sanity_issues(amount)
            tolerance = timedelta(days=self._settings.future_date_tolerance_days)
            if transaction_date and transaction_date > now + tolerance:
                issues.append(ValidationIssue(
                    field="transaction_date",
                    issue_type="future_date",
                    message=f"{transaction_type.value.capitalize()} is dated in the future ({transaction_date.date()})",
                    severity="warning",
                    suggested_fix="Please verify the date is correct",
                ))
            return issues

        return self._run("transaction", self._amount_issues(amount), semantic)

    # -------------------------------------------------------------------------
    # Locked savings
    # -------------------------------------------------------------------------

    def validate_lock(
        self,
        amount: int,
        reason: str,
        unlock_date: datetime,
        goal_amount: int = 0,
        now: Optional[datetime] = None,
    ) -> ValidationResult:
        """Validate a new locked saving."""
        now = as_utc(now) if now else utcnow()
        unlock_date = as_utc(unlock_date)

        schema_issues = self._amount_issues(amount)
        if not reason or not reason.strip():
            schema_issues.append(ValidationIssue(
                field="lock_reason",
                issue_type="missing",
                message="A reason is required to lock savings",
                severity="error",
                suggested_fix="Emergency fund, Vacation, etc.",
            ))
        if goal_amount < 0:
            schema_issues.append(ValidationIssue(
                field="goal_amount",
                issue_type="invalid_value",
                message="Goal amount cannot be negative",
                severity="error",
            ))

        def semantic() -> list[ValidationIssue]:
            issues = self._sanity_issues(amount)
            if unlock_date <= now:
                issues.append(ValidationIssue(
                    field="unlock_date",
                    issue_type="not_in_future",
                    message="Unlock date must be in the future",
                    severity="error",
                    suggested_fix="Pick a date after today",
                ))
            if goal_amount and goal_amount < amount:
                issues.append(ValidationIssue(
                    field="goal_amount",
                    issue_type="inconsistent",
                    message="Goal is smaller than the amount being locked",
                    severity="warning",
                ))
            return issues

        return self._run("lock", schema_issues, semantic)

    # -------------------------------------------------------------------------
    # Treats
    # -------------------------------------------------------------------------

    def validate_treat(self, amount: int, recipient: str) -> ValidationResult:
        """Validate a treat before the wallet is checked."""
        schema_issues = self._amount_issues(amount)
        if not recipient or not recipient.strip():
            schema_issues.append(ValidationIssue(
                field="recipient",
                issue_type="missing",
                message="Say who you are treating",
                severity="error",
                suggested_fix="Friend, Family, Charity, etc.",
            ))

        return self._run("treat", schema_issues, lambda: self._sanity_issues(amount))

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []

        if result.has_errors:
            lines.append("This can't be saved:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     Hint: {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Double-check the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)


def require_valid_split(
    validator: WalletValidator,
    percentages: PercentageMap,
) -> ValidationResult:
    """Validate a split and raise InvalidSplitError if it cannot be used."""
    result = validator.validate_split(percentages)
    if not result.is_valid:
        raise InvalidSplitError(
            "; ".join(result.error_messages),
            issues=result.issues,
        )
    return result
