"""Classification of incoming workout records by activity type."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from app.models.schemas import RunRecord


RUNNING = "running"


@dataclass(frozen=True)
class RunFilterResult:
    """Outcome of scanning a batch for running activities."""

    contains_run_data: bool
    runs: list[RunRecord] = field(default_factory=list)
    total_records: int = 0


def is_running(record: RunRecord) -> bool:
    return (record.activity_type or "").lower() == RUNNING


def contains_run_data(records: Iterable[RunRecord]) -> bool:
    """Return True when at least one record is a running activity."""
    return any(is_running(record) for record in records)


def filter_running(records: Iterable[RunRecord]) -> list[RunRecord]:
    """Return the running records, preserving their original order."""
    return [record for record in records if is_running(record)]


def filter_runs(records: Sequence[RunRecord]) -> RunFilterResult:
    runs = filter_running(records)
    return RunFilterResult(
        contains_run_data=bool(runs),
        runs=runs,
        total_records=len(records),
    )


def count_by_activity_type(records: Iterable[RunRecord]) -> dict[str, int]:
    """Partition counts keyed by lower-cased activity type."""
    return dict(Counter((record.activity_type or "unknown").lower() for record in records))
