"""Router exposing basic system endpoints."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import get_db
from app.models.database_models import AnalysisEmbedding, RunAnalysisDocument
from app.services.analysis_repository import AnalysisDocumentRepository


logger = logging.getLogger(__name__)


router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("/status")
async def get_status() -> dict[str, str]:
    """Return a minimal status payload."""
    return {"status": "online"}


@router.get("/cache")
def get_cache_status(db: Session = Depends(get_db)) -> dict:
    """
    Report the semantic cache policy and how many entries back it.

    Returns:
        dict: {
            "enabled": bool,
            "similarity_threshold": float,
            "ttl_days": int,
            "stored_documents": int,
            "indexed_embeddings": int,
            "orphaned_embeddings": int
        }
    """
    config = get_settings().rag_cache_config()

    try:
        stored_documents = AnalysisDocumentRepository(db).count()
        indexed_embeddings = db.query(AnalysisEmbedding).count()
        orphaned_embeddings = (
            db.query(AnalysisEmbedding)
            .filter(~AnalysisEmbedding.record_id.in_(db.query(RunAnalysisDocument.document_id)))
            .count()
        )
    except Exception:
        logger.exception("Cache status check failed")
        raise HTTPException(status_code=500, detail="Failed to check cache status")

    return {
        "enabled": config.enabled,
        "similarity_threshold": config.similarity_threshold,
        "ttl_days": config.ttl_days,
        "stored_documents": stored_documents,
        "indexed_embeddings": indexed_embeddings,
        "orphaned_embeddings": orphaned_embeddings,
    }
