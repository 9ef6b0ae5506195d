"""Aggregate performance metrics for a set of running activities.

All parsing here is lenient: a malformed distance, duration, heart rate or
calorie value contributes nothing to the aggregate instead of failing the
request. The functions are pure, so calling them twice on the same input
yields identical metrics.
"""
from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from app.models.schemas import PerformanceMetrics, RunRecord


_ELAPSED_TIME_RE = re.compile(r"[0-9]{2}:[0-9]{2}:[0-9]{2}")


def parse_distance(value: str | None) -> float:
    """Parse a kilometre string; missing, malformed or negative values yield 0."""

    if value is None:
        return 0.0
    try:
        distance = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(distance) or distance < 0:
        return 0.0
    return distance


def parse_int(value: str | None) -> int:
    if value is None:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def parse_time_to_seconds(value: str | None) -> int:
    """Convert ``HH:MM:SS`` to seconds; anything else counts as 0."""

    if value is None or not _ELAPSED_TIME_RE.fullmatch(value):
        return 0
    hours, minutes, seconds = (int(part) for part in value.split(":"))
    return hours * 3600 + minutes * 60 + seconds


def format_seconds(total_seconds: int) -> str:
    """Render seconds as ``HH:MM:SS``; hours may exceed 24."""

    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def round2(value: float) -> float:
    """Round half-up to two decimals."""
    return float(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def calculate_metrics(runs: Sequence[RunRecord]) -> PerformanceMetrics:
    """
    Compute PerformanceMetrics for a non-empty sequence of running records.

    Args:
        runs: Running activities (already filtered)

    Returns:
        PerformanceMetrics with total distance/duration, average pace and
        heart rate, and total calories. Optional fields are None when no
        record supplied usable data.
    """
    total_distance = sum(parse_distance(run.distance) for run in runs)
    total_seconds = sum(parse_time_to_seconds(run.elapsed_time) for run in runs)

    average_pace = None
    if total_distance > 0:
        average_pace = round2((total_seconds / 60.0) / total_distance)

    heart_rates = [parse_int(run.max_heart_rate) for run in runs if run.max_heart_rate is not None]
    average_hr = int(sum(heart_rates) / len(heart_rates)) if heart_rates else None

    total_calories = sum(parse_int(run.calories) for run in runs if run.calories is not None)

    return PerformanceMetrics(
        total_runs=len(runs),
        total_distance_km=round2(total_distance),
        total_duration=format_seconds(total_seconds),
        average_pace_min_per_km=average_pace,
        average_heart_rate=average_hr,
        total_calories=total_calories if total_calories > 0 else None,
    )


def generate_summary(metrics: PerformanceMetrics) -> str:
    """One-sentence human readable digest of the metrics."""

    pace = metrics.average_pace_min_per_km if metrics.average_pace_min_per_km is not None else 0.0
    return (
        f"Analysis of {metrics.total_runs} running activities covering "
        f"{metrics.total_distance_km:.2f} km in {metrics.total_duration}. "
        f"Average pace: {pace:.2f} min/km."
    )
