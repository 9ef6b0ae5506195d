"""API endpoints for AI-powered run analysis."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.dependencies import get_run_analyzer
from app.exceptions import NotARunError
from app.models.schemas import AnalysisResult, RunAnalysisRequest, RunCheckResponse, RunRecord
from app.services.run_analyzer import RunAnalyzer
from app.services.run_filter import count_by_activity_type, filter_running


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analysis", tags=["analysis"])


@router.post("/analyze", response_model=AnalysisResult)
def analyze_runs(
    request: RunAnalysisRequest,
    analyzer: RunAnalyzer = Depends(get_run_analyzer),
) -> AnalysisResult:
    """
    Analyze a batch of Garmin workout records.

    Serves a cached analysis when a sufficiently similar batch was analyzed
    recently, unless ``force_refresh`` is set. Otherwise asks Claude for a
    fresh narrative and stores it for future requests.
    """
    logger.info("Received analysis request for %d record(s) | force_refresh=%s", len(request.runs), request.force_refresh)
    return analyzer.analyze_runs(request.runs, force_refresh=request.force_refresh)


@router.post("/check", response_model=RunCheckResponse)
def check_for_run_data(request: RunAnalysisRequest) -> RunCheckResponse:
    """Quickly report whether the batch contains analyzable running activities."""

    logger.info("Checking %d record(s) for run data", len(request.runs))
    running = filter_running(request.runs)
    return RunCheckResponse(
        contains_run_data=bool(running),
        total_records=len(request.runs),
        running_activity_count=len(running),
        activity_type_counts=count_by_activity_type(request.runs),
    )


@router.post("/analyze/single", response_model=AnalysisResult)
def analyze_single_run(
    run: RunRecord,
    force_refresh: bool = False,
    analyzer: RunAnalyzer = Depends(get_run_analyzer),
):
    """Analyze one activity; non-running activities are rejected with 400."""

    logger.info("Analyzing single run: %s", run.activity_name)
    try:
        return analyzer.analyze_single_run(run, force_refresh=force_refresh)
    except NotARunError as exc:
        logger.warning("Rejected single analysis for %s: %s", run.activity_id, exc.message)
        rejected = AnalysisResult(
            contains_run_data=False,
            summary=exc.message,
            insights=[],
            analyzed_at=datetime.now(timezone.utc),
        )
        return JSONResponse(status_code=400, content=rejected.model_dump(mode="json"))
