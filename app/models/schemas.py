"""Pydantic models describing API payloads and analysis artifacts."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


ACTIVITY_TYPE_PATTERN = r"^(running|strength_training|elliptical)$"
ELAPSED_TIME_PATTERN = r"^\d{2}:\d{2}:\d{2}$"


class RunRecord(BaseModel):
    """One workout entry as exported from Garmin."""

    model_config = ConfigDict(frozen=True)

    activity_id: str = Field(min_length=1)
    activity_date: str = Field(min_length=1)
    activity_type: str = Field(pattern=ACTIVITY_TYPE_PATTERN)
    activity_name: str = Field(min_length=1)
    activity_description: str | None = None
    elapsed_time: str | None = Field(default=None, pattern=ELAPSED_TIME_PATTERN)
    distance: str = Field(pattern=r"^\d+(\.\d+)?$", description="Distance in kilometers")
    max_heart_rate: str | None = Field(default=None, pattern=r"^\d+$")
    calories: str | None = Field(default=None, pattern=r"^\d+$")


class RunAnalysisRequest(BaseModel):
    """Batch of workout records submitted for analysis."""

    runs: list[RunRecord] = Field(min_length=1)
    force_refresh: bool = Field(
        default=False,
        description="Bypass the semantic cache lookup and force a fresh LLM analysis.",
    )


class PerformanceMetrics(BaseModel):
    """Aggregate performance over a set of runs."""

    model_config = ConfigDict(frozen=True)

    total_runs: int
    total_distance_km: float
    total_duration: str
    average_pace_min_per_km: float | None = None
    average_heart_rate: int | None = None
    total_calories: int | None = None


class Insight(BaseModel):
    """Categorised observation with a matching recommendation."""

    model_config = ConfigDict(frozen=True)

    category: str
    observation: str
    recommendation: str


class AnalysisResult(BaseModel):
    """Response artifact for a single analysis request."""

    model_config = ConfigDict(frozen=True)

    contains_run_data: bool
    summary: str
    insights: list[Insight] = []
    metrics: PerformanceMetrics | None = None
    raw_analysis: str | None = None
    analyzed_at: datetime
    cached_result: bool = False
    document_id: str | None = None


class AnalysisMetadata(BaseModel):
    """Structured view of the metadata stored alongside an analysis document."""

    document_id: str | None = None
    run_count: int | None = None
    total_distance_km: float | None = None
    total_duration: str | None = None
    average_pace_min_per_km: float | None = None
    average_heart_rate: int | None = None
    total_calories: int | None = None
    activity_dates: list[str] = []
    date_range: str | None = None
    extras: dict[str, Any] = {}


class StoredAnalysisResponse(BaseModel):
    """Schema for a stored analysis document returned by the RAG endpoints."""

    document_id: str
    activity_ids: str
    query_text: str
    analysis_content: str
    summary: str | None = None
    total_runs: int | None = None
    total_distance_km: float | None = None
    analysis_metadata: AnalysisMetadata
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RunCheckResponse(BaseModel):
    """Quick classification of a batch of workout records."""

    contains_run_data: bool
    total_records: int
    running_activity_count: int
    activity_type_counts: dict[str, int] = {}


class RagSearchRequest(BaseModel):
    """Free-text similarity search over stored analyses."""

    query: str = Field(min_length=1)
    top_k: int = Field(default=5, ge=1, le=50)


class RagSearchResult(BaseModel):
    document_id: str
    content: str
    metadata: dict[str, Any] = {}
    score: float | None = None


class RagSearchResponse(BaseModel):
    query: str
    results: list[RagSearchResult] = []
    total_results: int
