"""Embedding index for semantic lookups over stored analyses.

Vectors live next to the structured documents in the SQL database and are
searched with exact cosine similarity. No ANN index is used; exact search is
fine for the number of analyses a single athlete accumulates.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import numpy as np
from openai import OpenAI
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models.database_models import AnalysisEmbedding


logger = logging.getLogger(__name__)


class Embedder(Protocol):
    def embed(self, text: str) -> list[float]:
        ...


class OpenAIEmbedder:
    """Embeds text with the OpenAI embeddings API."""

    def __init__(self, model: str | None = None) -> None:
        settings = get_settings()
        self.client = OpenAI(api_key=settings.openai_api_key)
        self.model = model or settings.embedding_model

    def embed(self, text: str) -> list[float]:
        """
        Embed a single text.

        Raises:
            ValueError: If the embedding API call fails or returns nothing
        """
        try:
            response = self.client.embeddings.create(model=self.model, input=[text])
        except Exception as e:
            raise ValueError(f"Failed to generate embedding: {e}") from e

        if not response.data:
            raise ValueError("Embedding API returned no vectors")
        return list(response.data[0].embedding)


@dataclass(frozen=True)
class ScoredEmbedding:
    """A nearest-neighbour hit: payload text, metadata and cosine similarity."""

    record_id: str
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)
    score: float = 0.0


class EmbeddingIndex(Protocol):
    def nearest_neighbors(self, text: str, top_k: int, min_similarity: float = 0.0) -> list[ScoredEmbedding]:
        ...

    def upsert(self, record_id: str, text: str, metadata: dict[str, Any]) -> None:
        ...


def cosine_similarities(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    """Cosine similarity of each row in ``matrix`` against ``query``."""

    norms = np.linalg.norm(matrix, axis=1)
    norms = np.where(norms == 0, 1, norms)
    query_norm = np.linalg.norm(query)
    if query_norm == 0:
        return np.zeros(matrix.shape[0])
    scores = (matrix @ query) / (norms * query_norm)
    return np.clip(scores, -1.0, 1.0)


class SqlEmbeddingIndex:
    """Embedding index persisted in the ``analysis_embeddings`` table."""

    def __init__(self, db: Session, embedder: Embedder) -> None:
        self.db = db
        self.embedder = embedder

    def nearest_neighbors(self, text: str, top_k: int, min_similarity: float = 0.0) -> list[ScoredEmbedding]:
        """
        Return up to ``top_k`` records most similar to ``text``.

        Args:
            text: Query text to embed
            top_k: Maximum number of results
            min_similarity: Results scoring below this are dropped

        Returns:
            Results sorted by similarity, highest first
        """
        if top_k <= 0:
            return []

        query_vector = np.asarray(self.embedder.embed(text), dtype=np.float64)
        try:
            stored = self.db.query(AnalysisEmbedding).all()
        except Exception:
            # Leave the shared session usable for the structured write
            self.db.rollback()
            raise
        rows = [
            row
            for row in stored
            if row.embedding and len(row.embedding) == query_vector.shape[0]
        ]
        if not rows:
            return []

        matrix = np.asarray([row.embedding for row in rows], dtype=np.float64)
        # Round away float noise so identical texts score exactly 1.0
        scores = np.round(cosine_similarities(matrix, query_vector), 6)

        results: list[ScoredEmbedding] = []
        for idx in np.argsort(-scores, kind="stable"):
            score = float(scores[idx])
            if score < min_similarity:
                break
            row = rows[idx]
            results.append(
                ScoredEmbedding(
                    record_id=row.record_id,
                    text=row.content,
                    metadata=dict(row.metadata_json or {}),
                    score=score,
                )
            )
            if len(results) >= top_k:
                break

        logger.debug("Embedding search returned %d/%d candidates (min_similarity=%.2f)", len(results), len(rows), min_similarity)
        return results

    def upsert(self, record_id: str, text: str, metadata: dict[str, Any]) -> None:
        """Insert or replace the record keyed by ``record_id``."""

        vector = self.embedder.embed(text)
        try:
            existing = (
                self.db.query(AnalysisEmbedding)
                .filter(AnalysisEmbedding.record_id == record_id)
                .first()
            )
            if existing is None:
                self.db.add(
                    AnalysisEmbedding(
                        record_id=record_id,
                        content=text,
                        embedding=vector,
                        metadata_json=metadata,
                    )
                )
            else:
                existing.content = text
                existing.embedding = vector
                existing.metadata_json = metadata
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
