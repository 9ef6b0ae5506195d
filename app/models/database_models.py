"""SQLAlchemy ORM models for stored run analyses and their embeddings."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.schemas import AnalysisMetadata


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunAnalysisDocument(Base):
    """Durable semantic-cache entry: one LLM analysis of a set of runs."""

    __tablename__ = "run_analysis_documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Join key with the embedding index
    document_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False, index=True)

    activity_ids: Mapped[str] = mapped_column(Text, nullable=False)  # comma-joined source activity IDs
    query_text: Mapped[str] = mapped_column(Text, nullable=False)
    analysis_content: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)

    total_runs: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_distance_km: Mapped[float | None] = mapped_column(Float, nullable=True)

    # "metadata" is reserved on declarative classes, so the attribute is renamed.
    metadata_json: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    @property
    def analysis_metadata(self) -> AnalysisMetadata:
        """Typed view over the stored metadata bag."""
        return AnalysisMetadata.model_validate(self.metadata_json or {})

    @property
    def created_at_utc(self) -> datetime:
        """Creation time as an aware UTC datetime (SQLite drops tzinfo)."""
        if self.created_at.tzinfo is None:
            return self.created_at.replace(tzinfo=timezone.utc)
        return self.created_at


class AnalysisEmbedding(Base):
    """Vector-searchable counterpart of a RunAnalysisDocument."""

    __tablename__ = "analysis_embeddings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    record_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False, index=True)

    content: Mapped[str] = mapped_column(Text, nullable=False)  # query text + metrics footer
    embedding: Mapped[list] = mapped_column(JSON, nullable=False)
    metadata_json: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
