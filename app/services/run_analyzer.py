"""Claude-powered run analysis with a semantic cache in front of the LLM."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Sequence

from app.config import get_settings, load_prompt_config
from app.exceptions import AIAnalysisError, NotARunError
from app.models.database_models import RunAnalysisDocument
from app.models.schemas import AnalysisResult, PerformanceMetrics, RunRecord
from app.services.insight_deriver import InsightDeriver, RuleBasedInsightDeriver
from app.services.llm_client import CompletionProvider
from app.services.metrics_calculator import calculate_metrics, generate_summary
from app.services.query_formatter import format_runs_for_prompt
from app.services.run_filter import contains_run_data, filter_runs, is_running
from app.services.semantic_cache import SemanticCache


logger = logging.getLogger(__name__)

NO_RUN_DATA_SUMMARY = "No running activity data found in the provided dataset."
DEFAULT_SYSTEM_PROMPT = "You are an expert running coach. Analyze the provided running data."
DEFAULT_USER_PROMPT_PREFIX = "Please analyze the following Garmin running data:\n\n"


class RunAnalyzer:
    """Analyzes batches of workout records, reusing cached analyses when possible."""

    def __init__(
        self,
        cache: SemanticCache,
        llm: CompletionProvider,
        insight_deriver: InsightDeriver | None = None,
    ) -> None:
        self.cache = cache
        self.llm = llm
        self.insight_deriver = insight_deriver or RuleBasedInsightDeriver()

        prompt_config = load_prompt_config(get_settings().prompt_config_path)
        self.system_prompt = prompt_config.get("system_prompt") or DEFAULT_SYSTEM_PROMPT
        self.user_prompt_prefix = prompt_config.get("user_prompt_prefix") or DEFAULT_USER_PROMPT_PREFIX

    def contains_run_data(self, runs: Sequence[RunRecord]) -> bool:
        return contains_run_data(runs)

    def analyze_runs(self, runs: Sequence[RunRecord], force_refresh: bool = False) -> AnalysisResult:
        """
        Analyze workout records, serving a cached analysis when one matches.

        Flow: filter running records, render the canonical query text,
        consult the semantic cache unless ``force_refresh`` is set, and on a
        miss compute metrics, call the LLM, derive insights and store the
        result for future lookups.

        Args:
            runs: Workout records in submission order
            force_refresh: Skip the cache lookup (the result is still stored)

        Returns:
            AnalysisResult; ``cached_result`` tells whether it came from cache

        Raises:
            AIAnalysisError: If the LLM call fails
        """
        logger.debug("Analyzing %d record(s) | force_refresh=%s", len(runs), force_refresh)

        filtered = filter_runs(runs)
        if not filtered.contains_run_data:
            logger.info("No running activities among %d record(s), skipping analysis", filtered.total_records)
            return AnalysisResult(
                contains_run_data=False,
                summary=NO_RUN_DATA_SUMMARY,
                insights=[],
                analyzed_at=datetime.now(timezone.utc),
            )

        running = filtered.runs
        query_text = format_runs_for_prompt(running)

        if force_refresh:
            logger.info("Force refresh requested, bypassing cache for %d run(s)", len(running))
        else:
            lookup = self.cache.find_cached_analysis(query_text)
            if lookup.is_hit and lookup.document is not None:
                logger.info("Cache HIT for %d run(s) - document %s", len(running), lookup.document.document_id)
                return self._from_cached_document(lookup.document, running)
            logger.info("Cache %s for %d run(s) (%s)", lookup.status.value.upper(), len(running), lookup.reason)

        result = self._compute_fresh(running, query_text)

        try:
            document = self.cache.store_analysis(running, result, query_text)
        except Exception:
            logger.exception("Failed to store analysis in structured store")
            raise

        return result.model_copy(update={"document_id": document.document_id})

    def analyze_single_run(self, run: RunRecord, force_refresh: bool = False) -> AnalysisResult:
        """Analyze one activity; non-running activities are rejected."""

        if not is_running(run):
            raise NotARunError(run.activity_type)
        return self.analyze_runs([run], force_refresh=force_refresh)

    def _compute_fresh(self, runs: Sequence[RunRecord], query_text: str) -> AnalysisResult:
        metrics = calculate_metrics(runs)
        try:
            narrative = self.llm.complete(self.system_prompt, self.user_prompt_prefix + query_text)
        except AIAnalysisError:
            raise
        except Exception as exc:
            logger.exception("LLM completion failed for %d run(s)", len(runs))
            raise AIAnalysisError("AI analysis failed", details={"reason": type(exc).__name__}) from exc
        insights = self.insight_deriver.derive(narrative, runs)

        logger.info(
            "Fresh analysis for %d run(s) | distance=%.2f km pace=%s",
            metrics.total_runs,
            metrics.total_distance_km,
            metrics.average_pace_min_per_km,
        )
        return AnalysisResult(
            contains_run_data=True,
            summary=generate_summary(metrics),
            insights=insights,
            metrics=metrics,
            raw_analysis=narrative,
            analyzed_at=datetime.now(timezone.utc),
            cached_result=False,
        )

    def _from_cached_document(self, document: RunAnalysisDocument, runs: Sequence[RunRecord]) -> AnalysisResult:
        """Rebuild a response from a stored document; its totals are authoritative."""

        metadata = document.analysis_metadata
        metrics = PerformanceMetrics(
            total_runs=document.total_runs if document.total_runs is not None else len(runs),
            total_distance_km=document.total_distance_km if document.total_distance_km is not None else 0.0,
            total_duration=metadata.total_duration or "00:00:00",
            average_pace_min_per_km=metadata.average_pace_min_per_km,
            average_heart_rate=metadata.average_heart_rate,
            total_calories=metadata.total_calories,
        )
        return AnalysisResult(
            contains_run_data=True,
            summary=document.summary or generate_summary(metrics),
            insights=self.insight_deriver.derive(document.analysis_content, runs),
            metrics=metrics,
            raw_analysis=document.analysis_content,
            analyzed_at=document.created_at_utc,
            cached_result=True,
            document_id=document.document_id,
        )
