"""
Shared fixtures.

Async code runs through asyncio.run via the `run` fixture, so the
suite needs nothing beyond pytest itself. External services are never
called: storage is in-memory (or a temporary SQLite file), Google Sheets
is a fake worksheet client and Gemini is a stub model.
"""

import asyncio
import random
from types import SimpleNamespace
from uuid import uuid4

import pytest

from ironwallet.agents import ReportNarrator
from ironwallet.audit import AuditLogger
from ironwallet.config import AppSettings, GoogleSheetsSettings
from ironwallet.flows import (
    BudgetFlow,
    OnboardingFlow,
    ProfileFlow,
    ReportFlow,
    SavingsFlow,
    TreatWalletFlow,
)
from ironwallet.services.storage import (
    GoogleSheetsClient,
    InMemoryAuditStorage,
    InMemoryWalletStorage,
)


@pytest.fixture
def run():
    """Run a coroutine to completion."""
    return asyncio.run


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def app_settings():
    return AppSettings()


@pytest.fixture
def storage():
    return InMemoryWalletStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def flow_kwargs(storage, audit_logger, app_settings):
    return dict(storage=storage, audit_logger=audit_logger, settings=app_settings)


@pytest.fixture
def profiles(flow_kwargs):
    return ProfileFlow(**flow_kwargs)


@pytest.fixture
def onboarding(flow_kwargs):
    return OnboardingFlow(**flow_kwargs)


@pytest.fixture
def budget(flow_kwargs):
    return BudgetFlow(**flow_kwargs)


@pytest.fixture
def savings(flow_kwargs):
    return SavingsFlow(**flow_kwargs)


@pytest.fixture
def treats(flow_kwargs):
    return TreatWalletFlow(**flow_kwargs)


@pytest.fixture
def reports(flow_kwargs):
    return ReportFlow(narrator=ReportNarrator(rng=random.Random(7)), **flow_kwargs)


@pytest.fixture
def onboarded_user(run, profiles, onboarding, user_id):
    """A user with a profile, a treat wallet and the default categories ($3,000 income)."""
    run(profiles.ensure_profile(user_id, "user@example.com", "Test User"))
    run(onboarding.complete_onboarding(user_id, "3000"))
    return user_id


# =============================================================================
# Fakes for external services
# =============================================================================

class StubModel:
    """Stands in for genai.GenerativeModel."""

    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return SimpleNamespace(text=self.text)


class FakeWorksheet:
    """In-process worksheet: a list of string rows, 1-indexed like gspread."""

    def __init__(self, title):
        self.title = title
        self.rows = []

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(v) for v in values])

    def update_cell(self, row, col, value):
        target = self.rows[row - 1]
        while len(target) < col:
            target.append("")
        target[col - 1] = str(value)


class FakeSheetsClient(GoogleSheetsClient):
    """GoogleSheetsClient that never talks to Google."""

    def __init__(self):
        super().__init__(GoogleSheetsSettings(
            credentials_path=__file__,
            spreadsheet_id="test-spreadsheet",
        ))
        self.sheets = {}

    def get_worksheet(self, title, columns, rows=1000):
        if title not in self.sheets:
            sheet = FakeWorksheet(title)
            sheet.append_row(columns)
            self.sheets[title] = sheet
        return self.sheets[title]


@pytest.fixture
def sheets_client():
    return FakeSheetsClient()
