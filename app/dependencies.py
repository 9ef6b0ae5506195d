"""FastAPI dependencies wiring the analysis services per request."""
from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import get_db
from app.services.analysis_repository import AnalysisDocumentRepository
from app.services.embedding_index import OpenAIEmbedder, SqlEmbeddingIndex
from app.services.llm_client import ClaudeCompletionProvider
from app.services.run_analyzer import RunAnalyzer
from app.services.semantic_cache import SemanticCache


def get_semantic_cache(db: Session = Depends(get_db)) -> SemanticCache:
    settings = get_settings()
    return SemanticCache(
        repository=AnalysisDocumentRepository(db),
        index=SqlEmbeddingIndex(db, OpenAIEmbedder()),
        config=settings.rag_cache_config(),
    )


def get_run_analyzer(cache: SemanticCache = Depends(get_semantic_cache)) -> RunAnalyzer:
    return RunAnalyzer(cache=cache, llm=ClaudeCompletionProvider())
