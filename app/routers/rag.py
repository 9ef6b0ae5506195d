"""Search and retrieval of stored run analyses."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from app.dependencies import get_semantic_cache
from app.exceptions import DocumentNotFoundError
from app.models.schemas import (
    RagSearchRequest,
    RagSearchResponse,
    RagSearchResult,
    StoredAnalysisResponse,
)
from app.services.semantic_cache import SemanticCache


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rag", tags=["rag"])


@router.post("/search", response_model=RagSearchResponse)
def search_analyses(
    request: RagSearchRequest,
    cache: SemanticCache = Depends(get_semantic_cache),
) -> RagSearchResponse:
    """Search stored analyses by semantic similarity to a free-text query."""

    logger.info("Searching analyses | top_k=%d", request.top_k)
    hits = cache.search_similar_analyses(request.query, request.top_k)
    results = [
        RagSearchResult(
            document_id=str(hit.metadata.get("document_id") or hit.record_id),
            content=hit.text,
            metadata=hit.metadata,
            score=hit.score,
        )
        for hit in hits
    ]
    return RagSearchResponse(query=request.query, results=results, total_results=len(results))


@router.get("/recent", response_model=list[StoredAnalysisResponse])
def get_recent_analyses(
    limit: int = Query(default=10, ge=1, le=100),
    cache: SemanticCache = Depends(get_semantic_cache),
) -> list[StoredAnalysisResponse]:
    logger.info("Fetching %d most recent analyses", limit)
    return [StoredAnalysisResponse.model_validate(doc) for doc in cache.get_recent_analyses(limit)]


@router.get("/document/{document_id}", response_model=StoredAnalysisResponse)
def get_analysis_by_document_id(
    document_id: str,
    cache: SemanticCache = Depends(get_semantic_cache),
) -> StoredAnalysisResponse:
    """
    Retrieve a stored analysis by its document ID.

    Raises:
        DocumentNotFoundError: 404 if no document has this ID
    """
    logger.info("Fetching analysis document %s", document_id)
    document = cache.find_by_document_id(document_id)
    if document is None:
        raise DocumentNotFoundError(document_id)
    return StoredAnalysisResponse.model_validate(document)


@router.get("/activity/{activity_id}", response_model=list[StoredAnalysisResponse])
def find_by_activity_id(
    activity_id: str,
    cache: SemanticCache = Depends(get_semantic_cache),
) -> list[StoredAnalysisResponse]:
    logger.info("Searching analyses containing activity %s", activity_id)
    return [StoredAnalysisResponse.model_validate(doc) for doc in cache.find_analyses_by_activity_id(activity_id)]


@router.get("/distance", response_model=list[StoredAnalysisResponse])
def find_by_minimum_distance(
    min_distance_km: float = Query(ge=0),
    cache: SemanticCache = Depends(get_semantic_cache),
) -> list[StoredAnalysisResponse]:
    logger.info("Searching analyses with minimum distance %.2f km", min_distance_km)
    return [StoredAnalysisResponse.model_validate(doc) for doc in cache.find_analyses_by_minimum_distance(min_distance_km)]


@router.get("/runs", response_model=list[StoredAnalysisResponse])
def find_by_minimum_runs(
    min_runs: int = Query(ge=1),
    cache: SemanticCache = Depends(get_semantic_cache),
) -> list[StoredAnalysisResponse]:
    logger.info("Searching analyses with at least %d runs", min_runs)
    return [StoredAnalysisResponse.model_validate(doc) for doc in cache.find_analyses_by_minimum_runs(min_runs)]
