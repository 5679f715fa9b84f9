"""Tests for monthly reports, insights and the narrator."""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from conftest import StubModel
from ironwallet.agents import BRUTAL_SUMMARIES, ReportNarrator
from ironwallet.flows import ReportFlow, build_insights, month_bounds
from ironwallet.models.audit import AuditEventType
from ironwallet.models.finance import MonthlyReport

MARCH_5 = datetime(2025, 3, 5, 9, 0, tzinfo=timezone.utc)
MARCH_20 = datetime(2025, 3, 20, 18, 30, tzinfo=timezone.utc)
APRIL_1 = datetime(2025, 4, 1, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def march_user(run, budget, onboarded_user):
    """$3,000 income in March, $1,400 of expenses ($500 of it impulse), April income."""
    run(budget.record_income(onboarded_user, "3000", transaction_date=MARCH_5))
    run(budget.record_expense(onboarded_user, "bills", "900", transaction_date=MARCH_5))
    run(budget.record_expense(
        onboarded_user, "daily", "500", is_impulse=True, transaction_date=MARCH_20
    ))
    run(budget.record_transfer(onboarded_user, "freedom", "goals", "100"))
    run(budget.record_income(onboarded_user, "1000", transaction_date=APRIL_1))
    return onboarded_user


def messages(view):
    return [i.message for i in view.insights]


class TestMonthBounds:
    """Tests for month_bounds."""

    def test_leap_february(self):
        """Test the end is the last instant of the last day."""
        start, end = month_bounds(2024, 2)
        assert start == datetime(2024, 2, 1, tzinfo=timezone.utc)
        assert end == datetime(2024, 2, 29, 23, 59, 59, 999999, tzinfo=timezone.utc)

    @pytest.mark.parametrize("month", [0, 13])
    def test_invalid_month(self, month):
        """Test months outside 1..12 are rejected."""
        with pytest.raises(ValueError):
            month_bounds(2025, month)


class TestGenerateMonthlyReport:
    """Tests for ReportFlow.generate_monthly_report."""

    def test_numbers(self, run, reports, march_user):
        """Test totals, savings rate and top category for the month."""
        view = run(reports.generate_monthly_report(march_user, 2025, 3))
        report = view.report

        assert report.total_income == 300000
        assert report.total_expenses == 140000
        assert report.savings_rate == 53
        assert report.impulse_spending == 50000
        assert report.top_spending_category == "Bills"
        assert report.goals_met is True
        assert report.brutal_summary in BRUTAL_SUMMARIES

    def test_insights(self, run, reports, march_user):
        """Test the feedback lines for a month with impulse spending."""
        view = run(reports.generate_monthly_report(march_user, 2025, 3))
        assert messages(view) == [
            "You spent $500.00 on impulse purchases. That's money you'll never see again.",
            "Goals met this month. Surprisingly.",
        ]

    def test_defaults_to_current_month(self, run, reports, march_user):
        """Test year and month default to the month containing now."""
        view = run(reports.generate_monthly_report(march_user, now=APRIL_1))
        assert (view.report.report_year, view.report.report_month) == (2025, 4)
        assert view.report.total_income == 100000
        assert view.report.total_expenses == 0
        assert view.report.savings_rate == 100
        assert view.report.created_at == APRIL_1

    def test_empty_month(self, run, reports, onboarded_user):
        """Test a month without transactions."""
        report = run(reports.generate_monthly_report(onboarded_user, 2025, 1)).report
        assert report.total_income == 0
        assert report.savings_rate == 0
        assert report.top_spending_category == ""
        assert report.goals_met is False

    def test_top_category_tie(self, run, budget, reports, onboarded_user):
        """Test equal spending goes to the category listed first."""
        run(budget.record_income(onboarded_user, "1000", transaction_date=MARCH_5))
        run(budget.record_expense(onboarded_user, "daily", "50", transaction_date=MARCH_5))
        run(budget.record_expense(onboarded_user, "bills", "50", transaction_date=MARCH_5))

        report = run(reports.generate_monthly_report(onboarded_user, 2025, 3)).report
        assert report.top_spending_category == "Bills"

    def test_regenerate_replaces(self, run, reports, storage, audit_storage, march_user):
        """Test generating the same month twice keeps one stored report."""
        first = run(reports.generate_monthly_report(march_user, 2025, 3)).report
        second = run(reports.generate_monthly_report(march_user, 2025, 3)).report

        assert second.id == first.id
        assert len(run(reports.list_reports(march_user))) == 1
        generated = [
            e for e in run(audit_storage.get_recent_events())
            if e.event_type == AuditEventType.REPORT_GENERATED
        ]
        assert len(generated) == 2

    def test_without_persist(self, run, reports, storage, march_user):
        """Test a preview report is not stored."""
        run(reports.generate_monthly_report(march_user, 2025, 3, persist=False))
        assert run(storage.get_monthly_report(march_user, 2025, 3)) is None

    def test_list_newest_first(self, run, reports, march_user):
        """Test stored reports are listed newest month first."""
        run(reports.generate_monthly_report(march_user, 2025, 3))
        run(reports.generate_monthly_report(march_user, 2025, 4))
        listed = run(reports.list_reports(march_user))
        assert [r.report_month for r in listed] == [4, 3]

    @pytest.mark.parametrize("year, month", [(2025, 0), (2025, 13), (0, 3)])
    def test_invalid_month(self, run, reports, march_user, year, month):
        """Test a zero or out-of-range month or year is rejected, not replaced by today's."""
        with pytest.raises(ValueError):
            run(reports.generate_monthly_report(march_user, year, month, now=APRIL_1))
        assert run(reports.list_reports(march_user)) == []

    def test_uses_model_summary(self, run, flow_kwargs, march_user):
        """Test the narrator's text ends up on the report and sees the real numbers."""
        model = StubModel(text='"Half your income survived. Barely."')
        flow = ReportFlow(narrator=ReportNarrator(model=model), **flow_kwargs)

        report = run(flow.generate_monthly_report(march_user, 2025, 3)).report

        assert report.brutal_summary == "Half your income survived. Barely."
        assert "Savings rate: 53%" in model.prompts[0]
        assert "Impulse spending: $500.00" in model.prompts[0]

    def test_model_summary_uses_profile_currency(self, run, flow_kwargs, profiles, march_user):
        """Test the narrator formats amounts in the user's own currency."""
        run(profiles.update_settings(march_user, currency="EUR"))
        model = StubModel(text="Euros gone.")
        flow = ReportFlow(narrator=ReportNarrator(model=model), **flow_kwargs)

        run(flow.generate_monthly_report(march_user, 2025, 3))

        assert "Impulse spending: 500.00 EUR" in model.prompts[0]
        assert "$" not in model.prompts[0]


class TestBuildInsights:
    """Tests for build_insights."""

    def _report(self, **fields):
        return MonthlyReport(user_id=uuid4(), report_month=3, report_year=2025, **fields)

    def test_overspent(self):
        """Test an overspent month gets a savings warning and an alert."""
        report = self._report(total_income=1000, total_expenses=1500, savings_rate=-50)
        assert [i.message for i in build_insights(report)] == [
            "Your savings rate is -50%. Aim for at least 20%.",
            "You spent more than you earned. This is not sustainable.",
            "Goals not met. As expected.",
        ]

    def test_doing_well(self):
        """Test a good month without impulse spending is praised."""
        report = self._report(total_income=1000, total_expenses=500, savings_rate=50, goals_met=True)
        insights = build_insights(report)
        assert [i.kind for i in insights] == ["success", "success"]
        assert insights[0].message == "Actually doing well this month. Keep it up."

    def test_custom_goal_and_currency(self):
        """Test the goal rate and currency come from the caller."""
        report = self._report(total_income=1000, savings_rate=30, impulse_spending=250)
        insights = build_insights(report, savings_goal_rate=40, currency="EUR")
        assert [i.message for i in insights][:2] == [
            "Your savings rate is 30%. Aim for at least 40%.",
            "You spent 2.50 EUR on impulse purchases. That's money you'll never see again.",
        ]


class TestReportNarrator:
    """Tests for ReportNarrator."""

    def _report(self):
        return MonthlyReport(user_id=uuid4(), report_month=3, report_year=2025, savings_rate=12)

    def test_canned_without_model(self, run):
        """Test summaries come from the canned list without a model."""
        narrator = ReportNarrator()
        assert not narrator.uses_model
        assert run(narrator.summarize(self._report())) in BRUTAL_SUMMARIES

    def test_model_failure_falls_back(self, run):
        """Test a failing model never blocks the report."""
        narrator = ReportNarrator(model=StubModel(error=RuntimeError("quota")))
        assert run(narrator.summarize(self._report())) in BRUTAL_SUMMARIES

    def test_empty_response_falls_back(self, run):
        """Test an empty model response falls back to canned text."""
        narrator = ReportNarrator(model=StubModel(text="   "))
        assert run(narrator.summarize(self._report())) in BRUTAL_SUMMARIES

    def test_long_response_truncated(self, run):
        """Test overly long model output is cut short."""
        narrator = ReportNarrator(model=StubModel(text="x" * 1000))
        assert len(run(narrator.summarize(self._report()))) == 280

    def test_currency_argument(self, run):
        """Test summarize formats prompt amounts in the currency it is given."""
        model = StubModel(text="Ouch.")
        report = MonthlyReport(
            user_id=uuid4(), report_month=3, report_year=2025, total_income=123456
        )
        run(ReportNarrator(model=model).summarize(report, "GBP"))
        assert "Income: 1234.56 GBP" in model.prompts[0]
