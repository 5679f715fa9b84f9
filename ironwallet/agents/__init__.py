"""AI Agents package."""

from ironwallet.agents.narrator import BRUTAL_SUMMARIES, ReportNarrator

__all__ = [
    "BRUTAL_SUMMARIES",
    "ReportNarrator",
]
