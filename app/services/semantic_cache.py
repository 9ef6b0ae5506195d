"""Semantic cache in front of the LLM.

Past analyses are stored twice: as a structured row (the source of truth) and
as an embedding of the query text that produced them. A lookup embeds the new
query text, takes the nearest stored query above the similarity threshold and
resolves it back to the structured row, rejecting entries older than the TTL.

A broken embedding index never fails a request: lookups degrade to a miss and
embedding writes are logged and dropped. A failed structured write does
propagate, because an index entry without its row is useless.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Sequence

from app.config import RagCacheConfig
from app.models.database_models import RunAnalysisDocument
from app.models.schemas import AnalysisMetadata, AnalysisResult, RunRecord
from app.services.analysis_repository import AnalysisDocumentRepository
from app.services.embedding_index import EmbeddingIndex, ScoredEmbedding


logger = logging.getLogger(__name__)


class CacheStatus(str, Enum):
    HIT = "hit"
    MISS = "miss"
    DISABLED = "disabled"


@dataclass(frozen=True)
class CacheLookup:
    """Outcome of a cache lookup; ``document`` is set only on a hit."""

    status: CacheStatus
    document: RunAnalysisDocument | None = None
    reason: str | None = None
    score: float | None = None

    @property
    def is_hit(self) -> bool:
        return self.status is CacheStatus.HIT

    @classmethod
    def hit(cls, document: RunAnalysisDocument, score: float) -> "CacheLookup":
        return cls(CacheStatus.HIT, document=document, score=score)

    @classmethod
    def miss(cls, reason: str) -> "CacheLookup":
        return cls(CacheStatus.MISS, reason=reason)

    @classmethod
    def disabled(cls) -> "CacheLookup":
        return cls(CacheStatus.DISABLED, reason="disabled")


def build_embedding_content(document: RunAnalysisDocument) -> str:
    """Query text plus a short metrics footer; the narrative is never embedded."""

    content = f"{document.query_text}\n\nTotal Runs: {document.total_runs}\n"
    if document.total_distance_km is not None:
        content += f"Total Distance: {document.total_distance_km} km\n"
    return content


def build_metadata(runs: Sequence[RunRecord], result: AnalysisResult, document_id: str) -> AnalysisMetadata:
    metadata = AnalysisMetadata(document_id=document_id, run_count=len(runs))

    metrics = result.metrics
    if metrics is not None:
        metadata = metadata.model_copy(
            update={
                "total_distance_km": metrics.total_distance_km,
                "total_duration": metrics.total_duration,
                "average_pace_min_per_km": metrics.average_pace_min_per_km,
                "average_heart_rate": metrics.average_heart_rate,
                "total_calories": metrics.total_calories,
            }
        )

    activity_dates = [run.activity_date for run in runs if run.activity_date]
    if activity_dates:
        metadata = metadata.model_copy(
            update={
                "activity_dates": activity_dates,
                "date_range": f"{activity_dates[0]} to {activity_dates[-1]}",
            }
        )

    return metadata


class SemanticCache:
    """Embedding-indexed cache of run analyses."""

    def __init__(
        self,
        repository: AnalysisDocumentRepository,
        index: EmbeddingIndex,
        config: RagCacheConfig,
    ) -> None:
        self.repository = repository
        self.index = index
        self.config = config

    def find_cached_analysis(self, query_text: str) -> CacheLookup:
        """
        Find a stored analysis whose query is similar enough and not stale.

        Args:
            query_text: Canonical query text of the current request

        Returns:
            CacheLookup with status HIT (document attached), MISS (reason
            attached) or DISABLED
        """
        if not self.config.enabled:
            logger.debug("RAG cache is disabled, skipping cache lookup")
            return CacheLookup.disabled()

        logger.debug(
            "Searching for cached analysis with similarity threshold %.2f",
            self.config.similarity_threshold,
        )
        try:
            candidates = self.index.nearest_neighbors(
                query_text,
                top_k=1,
                min_similarity=self.config.similarity_threshold,
            )
        except Exception:
            logger.warning("Embedding index lookup failed, treating as cache miss", exc_info=True)
            return CacheLookup.miss("index_error")

        if not candidates:
            logger.debug("No cached analysis found above similarity threshold")
            return CacheLookup.miss("no_candidate")

        candidate = candidates[0]
        document_id = candidate.metadata.get("document_id")
        if not document_id:
            logger.warning("Similar embedding %s has no document_id in metadata", candidate.record_id)
            return CacheLookup.miss("missing_document_id")

        try:
            document = self.repository.find_by_document_id(str(document_id))
        except Exception:
            logger.warning("Failed to resolve cached document %s, treating as cache miss", document_id, exc_info=True)
            return CacheLookup.miss("store_error")

        if document is None:
            logger.warning("Document ID %s found in embedding index but not in database", document_id)
            return CacheLookup.miss("orphaned_document")

        stale_threshold = datetime.now(timezone.utc) - timedelta(days=self.config.ttl_days)
        if document.created_at_utc < stale_threshold:
            logger.debug(
                "Cached analysis %s is stale (created=%s, threshold=%s)",
                document_id,
                document.created_at_utc.isoformat(),
                stale_threshold.isoformat(),
            )
            return CacheLookup.miss("stale")

        logger.info("Found valid cached analysis %s (score=%.3f)", document_id, candidate.score)
        return CacheLookup.hit(document, candidate.score)

    def store_analysis(
        self,
        runs: Sequence[RunRecord],
        result: AnalysisResult,
        query_text: str,
    ) -> RunAnalysisDocument:
        """
        Persist a fresh analysis to the structured store and the embedding index.

        Raises:
            Exception: Whatever the structured store raises; embedding
                failures are logged and swallowed
        """
        logger.debug("Storing analysis for %d runs", len(runs))

        document_id = str(uuid.uuid4())
        metadata = build_metadata(runs, result, document_id)

        document = RunAnalysisDocument(
            document_id=document_id,
            activity_ids=",".join(run.activity_id for run in runs),
            query_text=query_text,
            analysis_content=result.raw_analysis or "",
            summary=result.summary,
            total_runs=result.metrics.total_runs if result.metrics is not None else len(runs),
            total_distance_km=result.metrics.total_distance_km if result.metrics is not None else None,
            metadata_json=metadata.model_dump(mode="json"),
            created_at=datetime.now(timezone.utc),
        )

        saved = self.repository.save(document)
        logger.info("Saved analysis document %s", saved.document_id)

        self._store_embedding(saved)
        return saved

    def _store_embedding(self, document: RunAnalysisDocument) -> None:
        vector_metadata: dict[str, Any] = {
            "document_id": document.document_id,
            "total_runs": document.total_runs,
            "total_distance_km": document.total_distance_km,
            "created_at": document.created_at_utc.isoformat(),
        }
        try:
            self.index.upsert(document.document_id, build_embedding_content(document), vector_metadata)
        except Exception:
            logger.error("Failed to store document %s in embedding index", document.document_id, exc_info=True)
            return
        logger.debug("Stored document %s in embedding index", document.document_id)

    def search_similar_analyses(self, query: str, top_k: int = 5) -> list[ScoredEmbedding]:
        """Free-text similarity search; index failures yield no results."""

        logger.debug("Searching for similar analyses (top_k=%d)", top_k)
        try:
            results = self.index.nearest_neighbors(query, top_k=top_k)
        except Exception:
            logger.error("Error searching embedding index", exc_info=True)
            return []
        logger.debug("Found %d similar documents", len(results))
        return results

    def find_by_document_id(self, document_id: str) -> RunAnalysisDocument | None:
        return self.repository.find_by_document_id(document_id)

    def get_recent_analyses(self, limit: int = 10) -> list[RunAnalysisDocument]:
        return self.repository.find_recent(limit)

    def find_analyses_by_activity_id(self, activity_id: str) -> list[RunAnalysisDocument]:
        return self.repository.find_by_activity_id_containing(activity_id)

    def find_analyses_by_minimum_distance(self, min_distance_km: float) -> list[RunAnalysisDocument]:
        return self.repository.find_by_minimum_distance(min_distance_km)

    def find_analyses_by_minimum_runs(self, min_runs: int) -> list[RunAnalysisDocument]:
        return self.repository.find_by_minimum_runs(min_runs)
