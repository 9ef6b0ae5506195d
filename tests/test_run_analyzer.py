"""Tests for the analysis orchestration around the semantic cache."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from conftest import NARRATIVE, BrokenEmbeddingIndex, FakeCompletionProvider
from app.exceptions import AIAnalysisError, NotARunError
from app.models.database_models import AnalysisEmbedding, RunAnalysisDocument
from app.models.schemas import Insight
from app.services.analysis_repository import AnalysisDocumentRepository
from app.services.run_analyzer import NO_RUN_DATA_SUMMARY, RunAnalyzer
from app.services.semantic_cache import SemanticCache


class NarrativeEchoDeriver:
    """Insight deriver that exposes what it was given."""

    def derive(self, narrative, runs):
        return [Insight(category="Echo", observation=narrative or "", recommendation=str(len(runs)))]


def test_non_running_batch_skips_cache_and_llm(run_analyzer, llm, embedder, workout_records):
    non_runs = [r for r in workout_records if r.activity_type != "running"]

    result = run_analyzer.analyze_runs(non_runs)

    assert result.contains_run_data is False
    assert result.summary == NO_RUN_DATA_SUMMARY
    assert result.insights == []
    assert result.metrics is None
    assert result.cached_result is False
    assert llm.calls == []
    assert embedder.calls == []


def test_fresh_then_cached(run_analyzer, llm, db_session, run_a, run_b):
    first = run_analyzer.analyze_runs([run_a, run_b])
    second = run_analyzer.analyze_runs([run_a, run_b])

    assert first.cached_result is False
    assert first.raw_analysis == NARRATIVE
    assert first.document_id is not None
    assert second.cached_result is True
    assert second.document_id == first.document_id
    assert second.raw_analysis == NARRATIVE
    assert second.metrics.total_runs == first.metrics.total_runs == 2
    assert second.metrics.total_distance_km == first.metrics.total_distance_km == 12.5
    assert second.metrics.average_pace_min_per_km == 6.0
    assert second.summary == first.summary
    assert len(llm.calls) == 1
    assert db_session.query(RunAnalysisDocument).count() == 1


def test_cached_result_uses_document_timestamp(run_analyzer, db_session, run_a):
    first = run_analyzer.analyze_runs([run_a])
    document = db_session.query(RunAnalysisDocument).one()

    second = run_analyzer.analyze_runs([run_a])

    assert second.analyzed_at == document.created_at_utc
    assert second.analyzed_at <= datetime.now(timezone.utc)
    assert first.document_id == document.document_id


def test_prompt_contains_canonical_run_text(run_analyzer, llm, run_a):
    run_analyzer.analyze_runs([run_a])

    system_prompt, user_prompt = llm.calls[0]
    assert "running coach" in system_prompt.lower()
    assert user_prompt.startswith("Please analyze the following Garmin running data:\n\n")
    assert "=== Running Activities ===" in user_prompt
    assert "  - Name: Run A" in user_prompt


def test_only_running_records_are_analyzed(run_analyzer, llm, workout_records):
    result = run_analyzer.analyze_runs(workout_records)

    assert result.metrics.total_runs == 3
    assert result.metrics.total_distance_km == 33.6
    assert "Gym Session" not in llm.calls[0][1]


def test_force_refresh_bypasses_cache_but_still_stores(run_analyzer, llm, db_session, run_a, run_b):
    first = run_analyzer.analyze_runs([run_a, run_b])
    second = run_analyzer.analyze_runs([run_a, run_b], force_refresh=True)

    assert second.cached_result is False
    assert second.document_id != first.document_id
    assert len(llm.calls) == 2
    assert db_session.query(RunAnalysisDocument).count() == 2
    assert db_session.query(AnalysisEmbedding).count() == 2


def test_stale_cache_entry_triggers_fresh_analysis(run_analyzer, llm, db_session, run_a):
    run_analyzer.analyze_runs([run_a])
    document = db_session.query(RunAnalysisDocument).one()
    document.created_at = datetime.now(timezone.utc) - timedelta(days=30)
    db_session.commit()

    result = run_analyzer.analyze_runs([run_a])

    assert result.cached_result is False
    assert len(llm.calls) == 2


def test_broken_index_behaves_like_cache_miss(db_session, cache_config, run_a):
    index = BrokenEmbeddingIndex()
    llm = FakeCompletionProvider()
    analyzer = RunAnalyzer(
        cache=SemanticCache(AnalysisDocumentRepository(db_session), index, cache_config),
        llm=llm,
    )

    first = analyzer.analyze_runs([run_a])
    second = analyzer.analyze_runs([run_a])

    assert first.cached_result is False
    assert second.cached_result is False
    assert first.document_id and second.document_id
    assert len(llm.calls) == 2
    assert index.search_calls == 2
    assert index.upsert_calls == 2
    assert db_session.query(RunAnalysisDocument).count() == 2


def test_llm_failure_raises_and_stores_nothing(semantic_cache, db_session, run_a):
    llm = FakeCompletionProvider(error=AIAnalysisError("AI analysis service is unavailable"))
    analyzer = RunAnalyzer(cache=semantic_cache, llm=llm)

    with pytest.raises(AIAnalysisError):
        analyzer.analyze_runs([run_a])

    assert db_session.query(RunAnalysisDocument).count() == 0
    assert db_session.query(AnalysisEmbedding).count() == 0


def test_unexpected_provider_error_is_wrapped(semantic_cache, run_a):
    analyzer = RunAnalyzer(cache=semantic_cache, llm=FakeCompletionProvider(error=TimeoutError("slow")))

    with pytest.raises(AIAnalysisError) as exc_info:
        analyzer.analyze_runs([run_a])

    assert exc_info.value.status_code == 503
    assert exc_info.value.details == {"reason": "TimeoutError"}
    assert isinstance(exc_info.value.__cause__, TimeoutError)


def test_structured_store_failure_propagates(semantic_cache, llm, run_a, monkeypatch):
    def _fail(document):
        raise RuntimeError("disk full")

    monkeypatch.setattr(semantic_cache.repository, "save", _fail)
    analyzer = RunAnalyzer(cache=semantic_cache, llm=llm)

    with pytest.raises(RuntimeError):
        analyzer.analyze_runs([run_a])


def test_single_run_rejects_non_running(run_analyzer, llm, workout_records):
    elliptical = next(r for r in workout_records if r.activity_type == "elliptical")

    with pytest.raises(NotARunError) as exc_info:
        run_analyzer.analyze_single_run(elliptical)

    assert exc_info.value.status_code == 400
    assert "elliptical" in exc_info.value.message
    assert llm.calls == []


def test_single_run_is_analyzed(run_analyzer, run_a):
    result = run_analyzer.analyze_single_run(run_a)

    assert result.contains_run_data is True
    assert result.metrics.total_runs == 1
    assert [i.category for i in result.insights] == ["Volume"]


def test_cached_insights_come_from_cached_narrative_and_current_runs(semantic_cache, run_a, run_b):
    analyzer = RunAnalyzer(
        cache=semantic_cache,
        llm=FakeCompletionProvider(),
        insight_deriver=NarrativeEchoDeriver(),
    )

    analyzer.analyze_runs([run_a, run_b])
    cached = analyzer.analyze_runs([run_a, run_b])

    assert cached.cached_result is True
    assert cached.insights == [Insight(category="Echo", observation=NARRATIVE, recommendation="2")]


def test_contains_run_data(run_analyzer, workout_records):
    assert run_analyzer.contains_run_data(workout_records) is True
    assert run_analyzer.contains_run_data(workout_records[1:2]) is False


def test_failed_index_query_does_not_break_structured_write(run_analyzer, llm, db_session, run_a, monkeypatch):
    rollbacks = []
    original_rollback = db_session.rollback

    def _rollback():
        rollbacks.append(True)
        original_rollback()

    monkeypatch.setattr(db_session, "rollback", _rollback)
    AnalysisEmbedding.__table__.drop(db_session.get_bind())

    result = run_analyzer.analyze_runs([run_a])

    assert result.cached_result is False
    assert result.document_id is not None
    assert len(llm.calls) == 1
    assert db_session.query(RunAnalysisDocument).count() == 1
    # One rollback after the failed lookup, one after the failed index write
    assert len(rollbacks) == 2
