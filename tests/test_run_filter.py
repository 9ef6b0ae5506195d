"""Unit tests for running-activity classification."""
from types import SimpleNamespace

from app.services.run_filter import (
    contains_run_data,
    count_by_activity_type,
    filter_running,
    filter_runs,
)


def test_filter_keeps_runs_in_original_order(workout_records):
    runs = filter_running(workout_records)

    assert [r.activity_id for r in runs] == ["19234501", "19234503", "19234505"]


def test_activity_type_match_is_case_insensitive():
    records = [
        SimpleNamespace(activity_id="1", activity_type="RUNNING"),
        SimpleNamespace(activity_id="2", activity_type="Running"),
        SimpleNamespace(activity_id="3", activity_type="elliptical"),
    ]

    assert contains_run_data(records) is True
    assert [r.activity_id for r in filter_running(records)] == ["1", "2"]


def test_no_runs_detected():
    records = [
        SimpleNamespace(activity_id="1", activity_type="strength_training"),
        SimpleNamespace(activity_id="2", activity_type="elliptical"),
    ]

    result = filter_runs(records)

    assert result.contains_run_data is False
    assert result.runs == []
    assert result.total_records == 2


def test_empty_batch_has_no_runs():
    assert contains_run_data([]) is False
    assert filter_runs([]).contains_run_data is False


def test_count_by_activity_type(workout_records):
    counts = count_by_activity_type(workout_records)

    assert counts == {"running": 3, "strength_training": 1, "elliptical": 1}
