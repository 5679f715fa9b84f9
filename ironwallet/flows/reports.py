"""
Report Flow

Monthly reports are computed from the month's transactions, narrated,
and stored once per user per month (regenerating replaces the old one).

All numbers are computed here. The narrator only adds the one-line
brutal summary on top of them.
"""

import calendar
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from ironwallet.agents import ReportNarrator
from ironwallet.audit import AuditLogger, create_correlation_id
from ironwallet.budget import format_cents, savings_rate
from ironwallet.config import AppSettings
from ironwallet.flows.base import BaseFlow
from ironwallet.models.audit import AuditEventBuilder
from ironwallet.models.finance import (
    CATEGORY_ORDER,
    MonthlyReport,
    MonthlyReportView,
    ReportInsight,
    Transaction,
    TransactionType,
    as_utc,
    utcnow,
)
from ironwallet.services.storage import WalletStorageInterface
from ironwallet.validation import WalletValidator


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """First and last instant of a calendar month, in UTC."""
    if year < 1:
        raise ValueError(f"Year must be positive (got {year})")
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12 (got {month})")
    last_day = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    end = datetime(year, month, last_day, 23, 59, 59, 999999, tzinfo=timezone.utc)
    return start, end


def build_insights(
    report: MonthlyReport,
    savings_goal_rate: int = 20,
    currency: str = "USD",
) -> list[ReportInsight]:
    """Feedback lines shown under a report."""
    insights = []

    if report.savings_rate < savings_goal_rate:
        insights.append(ReportInsight(
            kind="warning",
            message=f"Your savings rate is {report.savings_rate}%. "
                    f"Aim for at least {savings_goal_rate}%.",
        ))
    if report.impulse_spending > 0:
        insights.append(ReportInsight(
            kind="warning",
            message=f"You spent {format_cents(report.impulse_spending, currency)} on impulse "
                    "purchases. That's money you'll never see again.",
        ))
    if report.total_expenses > report.total_income:
        insights.append(ReportInsight(
            kind="alert",
            message="You spent more than you earned. This is not sustainable.",
        ))
    if report.savings_rate >= savings_goal_rate and report.impulse_spending == 0:
        insights.append(ReportInsight(
            kind="success",
            message="Actually doing well this month. Keep it up.",
        ))

    if report.goals_met:
        insights.append(ReportInsight(kind="success", message="Goals met this month. Surprisingly."))
    else:
        insights.append(ReportInsight(kind="warning", message="Goals not met. As expected."))

    return insights


class ReportFlow(BaseFlow):
    """Generate, store and list monthly reports."""

    def __init__(
        self,
        storage: WalletStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        narrator: Optional[ReportNarrator] = None,
        validator: Optional[WalletValidator] = None,
        settings: Optional[AppSettings] = None,
    ):
        super().__init__(storage, audit_logger, validator, settings)
        self._narrator = narrator or ReportNarrator()

    async def _top_spending_category(
        self,
        user_id: UUID,
        transactions: list[Transaction],
    ) -> str:
        totals: dict[UUID, int] = {}
        for t in transactions:
            if t.transaction_type == TransactionType.EXPENSE and t.category_id:
                totals[t.category_id] = totals.get(t.category_id, 0) + t.amount
        if not totals:
            return ""

        categories = {c.id: c for c in await self._storage.list_categories(user_id)}

        def rank(category_id: UUID) -> tuple[int, int]:
            category = categories.get(category_id)
            position = CATEGORY_ORDER.index(category.category_type) if category else len(CATEGORY_ORDER)
            return totals[category_id], -position

        top = max(totals, key=rank)
        return categories[top].category_name if top in categories else ""

    async def generate_monthly_report(
        self,
        user_id: UUID,
        year: Optional[int] = None,
        month: Optional[int] = None,
        now: Optional[datetime] = None,
        persist: bool = True,
        correlation_id: Optional[UUID] = None,
    ) -> MonthlyReportView:
        """
        Build the report for a month (default: the month containing now).

        Raises:
            ValueError: month outside 1..12
        """
        correlation_id = correlation_id or create_correlation_id()
        now = as_utc(now) if now else utcnow()
        year = now.year if year is None else year
        month = now.month if month is None else month
        start, end = month_bounds(year, month)

        transactions = await self._storage.list_transactions(
            user_id, date_from=start, date_to=end, limit=None
        )

        total_income = sum(
            t.amount for t in transactions if t.transaction_type == TransactionType.INCOME
        )
        total_expenses = sum(
            t.amount for t in transactions if t.transaction_type == TransactionType.EXPENSE
        )
        rate = savings_rate(total_income, total_expenses)

        report = MonthlyReport(
            user_id=user_id,
            report_month=month,
            report_year=year,
            total_income=total_income,
            total_expenses=total_expenses,
            savings_rate=rate,
            impulse_spending=sum(t.amount for t in transactions if t.is_impulse),
            top_spending_category=await self._top_spending_category(user_id, transactions),
            goals_met=rate >= self._settings.savings_goal_rate,
            created_at=now,
        )
        profile = await self._storage.get_profile(user_id)
        currency = profile.currency if profile else self._settings.default_currency
        report.brutal_summary = await self._narrator.summarize(report, currency)

        if persist:
            report = await self._storage.save_monthly_report(report)
            await self._audit(AuditEventBuilder.report_generated(
                user_id=user_id,
                report_id=report.id,
                year=year,
                month=month,
                savings_rate=rate,
                correlation_id=correlation_id,
            ))

        return MonthlyReportView(
            report=report,
            insights=build_insights(report, self._settings.savings_goal_rate, currency),
        )

    async def list_reports(self, user_id: UUID) -> list[MonthlyReport]:
        """Stored reports, newest month first."""
        return await self._storage.list_monthly_reports(user_id)
