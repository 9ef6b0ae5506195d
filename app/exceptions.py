"""Exception hierarchy surfaced to API callers.

Each exception carries a machine-readable code and an HTTP status so the
exception handlers can render a consistent error payload.
"""
from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for consistent API error responses."""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    NOT_A_RUN = "NOT_A_RUN"
    AI_ANALYSIS_FAILED = "AI_ANALYSIS_FAILED"


class RunAnalyzerError(Exception):
    """Base exception for errors the API reports with a specific status."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}


class AIAnalysisError(RunAnalyzerError):
    """The LLM provider failed or returned an unusable response."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message,
            code=ErrorCode.AI_ANALYSIS_FAILED,
            status_code=503,
            details=details,
        )


class NotARunError(RunAnalyzerError):
    """A single-activity request carried a non-running activity."""

    def __init__(self, activity_type: str) -> None:
        super().__init__(
            f"The provided activity is not a running activity: {activity_type}",
            code=ErrorCode.NOT_A_RUN,
            status_code=400,
            details={"activity_type": activity_type},
        )


class DocumentNotFoundError(RunAnalyzerError):
    def __init__(self, document_id: str) -> None:
        super().__init__(
            f"Analysis document {document_id} not found",
            code=ErrorCode.NOT_FOUND,
            status_code=404,
            details={"document_id": document_id},
        )
