"""Structured store for analysis documents."""
from __future__ import annotations

from sqlalchemy.orm import Session

from app.models.database_models import RunAnalysisDocument


class AnalysisDocumentRepository:
    """Read/write access to ``run_analysis_documents``."""

    def __init__(self, db: Session):
        self.db = db

    def save(self, document: RunAnalysisDocument) -> RunAnalysisDocument:
        """Persist a new document and return it with generated fields populated."""
        try:
            self.db.add(document)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(document)
        return document

    def find_by_document_id(self, document_id: str) -> RunAnalysisDocument | None:
        try:
            return (
                self.db.query(RunAnalysisDocument)
                .filter(RunAnalysisDocument.document_id == document_id)
                .first()
            )
        except Exception:
            self.db.rollback()
            raise

    def find_recent(self, limit: int = 10) -> list[RunAnalysisDocument]:
        return (
            self.db.query(RunAnalysisDocument)
            .order_by(RunAnalysisDocument.created_at.desc(), RunAnalysisDocument.id.desc())
            .limit(limit)
            .all()
        )

    def find_by_activity_id_containing(self, activity_id: str) -> list[RunAnalysisDocument]:
        """Documents whose comma-joined activity list contains ``activity_id``."""
        return (
            self.db.query(RunAnalysisDocument)
            .filter(RunAnalysisDocument.activity_ids.contains(activity_id, autoescape=True))
            .order_by(RunAnalysisDocument.created_at.desc())
            .all()
        )

    def find_by_minimum_distance(self, min_distance_km: float) -> list[RunAnalysisDocument]:
        return (
            self.db.query(RunAnalysisDocument)
            .filter(RunAnalysisDocument.total_distance_km >= min_distance_km)
            .order_by(RunAnalysisDocument.created_at.desc())
            .all()
        )

    def find_by_minimum_runs(self, min_runs: int) -> list[RunAnalysisDocument]:
        return (
            self.db.query(RunAnalysisDocument)
            .filter(RunAnalysisDocument.total_runs >= min_runs)
            .order_by(RunAnalysisDocument.created_at.desc())
            .all()
        )

    def count(self) -> int:
        return self.db.query(RunAnalysisDocument).count()
