"""Canonical text rendering of running activities.

The same text is sent to the LLM and used as the semantic cache key, so the
output must be byte-identical for identical input: field order is fixed and
optional fields appear only when present.
"""
from __future__ import annotations

from typing import Sequence

from app.models.schemas import RunRecord


HEADER = "=== Running Activities ==="


def format_run(index: int, run: RunRecord) -> list[str]:
    lines = [
        f"Run #{index}:",
        f"  - Date: {run.activity_date}",
        f"  - Name: {run.activity_name}",
        f"  - Distance: {run.distance} km",
        f"  - Duration: {run.elapsed_time}",
    ]
    if run.max_heart_rate is not None:
        lines.append(f"  - Max Heart Rate: {run.max_heart_rate} bpm")
    if run.calories is not None:
        lines.append(f"  - Calories: {run.calories}")
    if run.activity_description and run.activity_description.strip():
        lines.append(f"  - Notes: {run.activity_description}")
    return lines


def format_runs_for_prompt(runs: Sequence[RunRecord]) -> str:
    """Render runs (1-indexed) as the canonical query text."""

    parts = [HEADER, ""]
    for index, run in enumerate(runs, start=1):
        parts.extend(format_run(index, run))
        parts.append("")
    return "\n".join(parts) + "\n"
