"""
Business flows.

Each flow wraps one area of the app and is the only place that
changes balances. Front ends call these; they never write to storage
directly.
"""

from ironwallet.flows.base import BaseFlow
from ironwallet.flows.budget import BudgetFlow
from ironwallet.flows.onboarding import OnboardingFlow
from ironwallet.flows.profile import ProfileFlow
from ironwallet.flows.reports import ReportFlow, build_insights, month_bounds
from ironwallet.flows.savings import SavingsFlow
from ironwallet.flows.treat import TreatWalletFlow

__all__ = [
    "BaseFlow",
    "BudgetFlow",
    "OnboardingFlow",
    "ProfileFlow",
    "ReportFlow",
    "SavingsFlow",
    "TreatWalletFlow",
    "build_insights",
    "month_bounds",
]
