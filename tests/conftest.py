"""Pytest configuration for global fixtures and logging setup."""
from __future__ import annotations

import json
import os
import re
import zlib
from pathlib import Path
from typing import Any, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ["ANTHROPIC_API_KEY"] = os.environ.get("ANTHROPIC_API_KEY") or "test-anthropic-key"
os.environ["OPENAI_API_KEY"] = os.environ.get("OPENAI_API_KEY") or "test-openai-key"
os.environ["DATABASE_URL"] = "sqlite://"

from app.logging_config import configure_logging

configure_logging()

from app.config import RagCacheConfig
from app.database import Base, get_db
from app.dependencies import get_run_analyzer, get_semantic_cache
from app.main import app
from app.models import database_models  # noqa: F401  # Register tables on Base.metadata.
from app.models.schemas import RunRecord
from app.services.analysis_repository import AnalysisDocumentRepository
from app.services.embedding_index import SqlEmbeddingIndex
from app.services.run_analyzer import RunAnalyzer
from app.services.semantic_cache import SemanticCache

FIXTURES_DIR = Path(__file__).parent / "fixtures"

NARRATIVE = (
    "Summary: Solid week of running with a good mix of easy and tempo efforts.\n"
    "Key Insights: Pace is consistent and heart rate stays controlled.\n"
    "Recommendations: Add one more easy run and keep the long run conversational."
)


class FakeEmbedder:
    """Deterministic hashed bag-of-words embedding for offline tests."""

    dimensions = 1024

    def __init__(self) -> None:
        self.calls: list[str] = []

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        vector = [0.0] * self.dimensions
        for token in re.findall(r"\S+", text.lower()):
            vector[zlib.crc32(token.encode("utf-8")) % self.dimensions] += 1.0
        return vector


class FakeCompletionProvider:
    """Records prompts and returns a canned narrative (or raises)."""

    def __init__(self, narrative: str = NARRATIVE, error: Exception | None = None) -> None:
        self.narrative = narrative
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        if self.error is not None:
            raise self.error
        return self.narrative


class BrokenEmbeddingIndex:
    """Embedding index whose every call fails like an unreachable service."""

    def __init__(self) -> None:
        self.search_calls = 0
        self.upsert_calls = 0

    def nearest_neighbors(self, text: str, top_k: int, min_similarity: float = 0.0):
        self.search_calls += 1
        raise ConnectionError("embedding index unreachable")

    def upsert(self, record_id: str, text: str, metadata: dict[str, Any]) -> None:
        self.upsert_calls += 1
        raise ConnectionError("embedding index unreachable")


@pytest.fixture()
def db_session() -> Iterator[Session]:
    """Fresh in-memory SQLite database per test."""

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture(scope="session")
def runs_fixture() -> list[dict[str, Any]]:
    """Return raw Garmin workout records (runs mixed with other activities)."""

    with (FIXTURES_DIR / "garmin_runs.json").open("r", encoding="utf-8") as fh:
        return json.load(fh)


@pytest.fixture()
def workout_records(runs_fixture) -> list[RunRecord]:
    return [RunRecord.model_validate(item) for item in runs_fixture]


@pytest.fixture()
def run_a() -> RunRecord:
    return RunRecord(
        activity_id="1001",
        activity_date="2026-10-10",
        activity_type="running",
        activity_name="Run A",
        elapsed_time="00:30:00",
        distance="5.0",
        max_heart_rate="165",
    )


@pytest.fixture()
def run_b() -> RunRecord:
    return RunRecord(
        activity_id="1002",
        activity_date="2026-10-12",
        activity_type="running",
        activity_name="Run B",
        elapsed_time="00:45:00",
        distance="7.5",
        max_heart_rate="170",
    )


@pytest.fixture()
def cache_config() -> RagCacheConfig:
    return RagCacheConfig(enabled=True, similarity_threshold=0.85, ttl_days=7)


@pytest.fixture()
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture()
def llm() -> FakeCompletionProvider:
    return FakeCompletionProvider()


@pytest.fixture()
def semantic_cache(db_session, embedder, cache_config) -> SemanticCache:
    return SemanticCache(
        repository=AnalysisDocumentRepository(db_session),
        index=SqlEmbeddingIndex(db_session, embedder),
        config=cache_config,
    )


@pytest.fixture()
def run_analyzer(semantic_cache, llm) -> RunAnalyzer:
    return RunAnalyzer(cache=semantic_cache, llm=llm)


@pytest.fixture()
def test_client(db_session, semantic_cache, run_analyzer) -> Iterator[TestClient]:
    """FastAPI test client wired to the in-memory database and fake providers."""

    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_semantic_cache] = lambda: semantic_cache
    app.dependency_overrides[get_run_analyzer] = lambda: run_analyzer
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
