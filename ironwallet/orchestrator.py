"""
Main Orchestrator for IronWallet

This module ties together all the components: settings, storage,
audit logging, the report narrator and the flows.

DESIGN DECISION: One factory builds everything.
Front ends call create_app_components() once and then only talk to
the flows it returns. Every flow shares the same storage and audit
logger, so one user action leaves one coherent audit trail.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from ironwallet.agents import ReportNarrator
from ironwallet.audit import AuditLogger, configure_logging
from ironwallet.config import StorageSettings, get_settings
from ironwallet.flows import (
    BudgetFlow,
    OnboardingFlow,
    ProfileFlow,
    ReportFlow,
    SavingsFlow,
    TreatWalletFlow,
)
from ironwallet.services.storage import (
    AuditStorageInterface,
    WalletStorageInterface,
    create_storage,
)
from ironwallet.validation import WalletValidator

logger = structlog.get_logger(__name__)


@dataclass
class AppComponents:
    """Everything a front end needs."""

    storage: WalletStorageInterface
    audit_storage: AuditStorageInterface
    audit_logger: AuditLogger
    profiles: ProfileFlow
    onboarding: OnboardingFlow
    budget: BudgetFlow
    savings: SavingsFlow
    treats: TreatWalletFlow
    reports: ReportFlow


def _create_narrator() -> ReportNarrator:
    """Gemini-backed narrator if configured, canned summaries otherwise."""
    try:
        return ReportNarrator.from_settings()
    except Exception as e:
        logger.warning("narrator_not_configured", error=str(e))
        return ReportNarrator()


def create_app_components(
    backend: Optional[str] = None,
    narrator: Optional[ReportNarrator] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        backend: Override IRONWALLET_STORAGE_BACKEND ("memory", "sqlite"
                 or "google_sheets")
        narrator: Use this narrator instead of building one from settings

    Returns:
        AppComponents with every flow wired to the same storage
    """
    settings = get_settings()
    app_settings = settings.app
    configure_logging(app_settings.log_level)

    storage_settings = settings.storage
    if backend is not None:
        storage_settings = StorageSettings(
            backend=backend,
            sqlite_path=storage_settings.sqlite_path,
        )
    storage, audit_storage = create_storage(storage_settings)

    audit_logger = AuditLogger(audit_storage)
    validator = WalletValidator(app_settings)
    narrator = narrator or _create_narrator()

    shared = dict(
        storage=storage,
        audit_logger=audit_logger,
        validator=validator,
        settings=app_settings,
    )

    return AppComponents(
        storage=storage,
        audit_storage=audit_storage,
        audit_logger=audit_logger,
        profiles=ProfileFlow(**shared),
        onboarding=OnboardingFlow(**shared),
        budget=BudgetFlow(**shared),
        savings=SavingsFlow(**shared),
        treats=TreatWalletFlow(**shared),
        reports=ReportFlow(narrator=narrator, **shared),
    )
