"""Turn narrative analysis text and run records into categorised insights."""
from __future__ import annotations

from typing import Protocol, Sequence

from app.models.schemas import Insight, RunRecord


CONSISTENCY_MIN_RUNS = 3


class InsightDeriver(Protocol):
    """Strategy interface so richer rule sets can replace the baseline."""

    def derive(self, narrative: str | None, runs: Sequence[RunRecord]) -> list[Insight]:
        ...


class RuleBasedInsightDeriver:
    """Baseline rules: a volume insight, plus consistency for 3+ runs."""

    def derive(self, narrative: str | None, runs: Sequence[RunRecord]) -> list[Insight]:
        insights = [
            Insight(
                category="Volume",
                observation=f"Analyzed {len(runs)} running activities",
                recommendation="Consistent training is key to improvement",
            )
        ]

        if len(runs) >= CONSISTENCY_MIN_RUNS:
            insights.append(
                Insight(
                    category="Consistency",
                    observation="Good training frequency detected",
                    recommendation="Maintain this consistency while varying intensity",
                )
            )

        return insights
