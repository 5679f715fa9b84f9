"""
Report Narrator

Writes the one-line "brutal summary" shown on a monthly report.

CRITICAL BOUNDARIES:
   - CAN: Phrase the report numbers sarcastically
   - CANNOT: Change, invent or round any number
   - CANNOT: Block report generation (any failure falls back to canned text)

The LLM is a COPYWRITER, not an ACCOUNTANT.
Every figure it sees was computed by ReportFlow beforehand.
"""

import random
from typing import Any, Optional

import google.generativeai as genai
import structlog

from ironwallet.budget import format_cents
from ironwallet.config import GeminiSettings, get_settings
from ironwallet.models.finance import MonthlyReport

logger = structlog.get_logger(__name__)

BRUTAL_SUMMARIES: tuple[str, ...] = (
    "You said you'd save. You didn't.",
    "Another month, another excuse.",
    "Your wallet is crying. Again.",
    "Maybe next month will be different? (Spoiler: It won't.)",
    "That impulse spending though... Impressive. Impressively bad.",
    "You know better. But here we are.",
    "Financial discipline? Never heard of her.",
    "Coffee addiction: 1, Your savings: 0.",
)

MAX_SUMMARY_LENGTH = 280


class ReportNarrator:
    """
    Picks or generates the brutal summary for a monthly report.

    Without a model it only draws from BRUTAL_SUMMARIES.
    """

    def __init__(
        self,
        model: Optional[Any] = None,
        rng: Optional[random.Random] = None,
        currency: str = "USD",
    ):
        """
        Args:
            model: Anything with an async generate_content_async(prompt)
                   returning an object with .text (a genai.GenerativeModel)
            rng: Random source for the canned summaries
            currency: Prompt currency when summarize is not given one
        """
        self._model = model
        self._rng = rng or random.Random()
        self._currency = currency

    @classmethod
    def from_settings(
        cls,
        settings: Optional[GeminiSettings] = None,
        rng: Optional[random.Random] = None,
    ) -> "ReportNarrator":
        """Build a narrator backed by the configured Gemini model."""
        settings = settings or get_settings().gemini
        genai.configure(api_key=settings.api_key)
        model = genai.GenerativeModel(
            model_name=settings.model_name,
            generation_config={
                "temperature": settings.temperature,
                "max_output_tokens": settings.max_tokens,
            }
        )
        return cls(model=model, rng=rng)

    @property
    def uses_model(self) -> bool:
        return self._model is not None

    def canned_summary(self) -> str:
        return self._rng.choice(BRUTAL_SUMMARIES)

    def _build_prompt(self, report: MonthlyReport, currency: str) -> str:
        def money(cents: int) -> str:
            return format_cents(cents, currency)

        return f"""You write one-sentence, brutally honest summaries of someone's month of spending.

Month: {report.month_name} {report.report_year}
Income: {money(report.total_income)}
Expenses: {money(report.total_expenses)}
Savings rate: {report.savings_rate}%
Impulse spending: {money(report.impulse_spending)}
Top spending category: {report.top_spending_category or "none"}
Savings goal met: {"yes" if report.goals_met else "no"}

Examples of the tone:
{chr(10).join(f"- {s}" for s in BRUTAL_SUMMARIES[:4])}

Write ONE sarcastic sentence, under 200 characters.
Use ONLY the numbers above. Do NOT invent any figures."""

    async def summarize(self, report: MonthlyReport, currency: Optional[str] = None) -> str:
        """Return the brutal summary for a report, amounts shown in currency."""
        if self._model is None:
            return self.canned_summary()

        try:
            prompt = self._build_prompt(report, currency or self._currency)
            response = await self._model.generate_content_async(prompt)
            text = (response.text or "").strip().strip('"')
        except Exception as e:
            logger.warning("narrator_model_failed", error=str(e))
            return self.canned_summary()

        if not text:
            return self.canned_summary()
        return text[:MAX_SUMMARY_LENGTH]
