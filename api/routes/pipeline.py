"""
Pipeline endpoints: run a pipeline, inspect runs and the error log
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from typing import List, Optional
from api.dependencies import get_error_log, get_pipeline_runner, get_run_store
from schemas.api import (
    ErrorLogEntryResponse,
    ErrorResponse,
    PipelineOutcomeResponse,
    PipelineRunRequest,
    PipelineRunSummary,
)
from schemas.pipeline import PipelineOutcome
from models.base import PipelineStage
from pipeline.base import ErrorLogSink
from pipeline.run_store import RunStore
from pipeline.runner import PipelineRunner
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/pipeline", tags=["Pipeline"])

HTTP_207_MULTI_STATUS = 207


def status_for_outcome(outcome: PipelineOutcome) -> int:
    """502 aborted at extract, 200 no failures, 207 any failure"""
    if outcome.aborted:
        return status.HTTP_502_BAD_GATEWAY
    if outcome.failed_count == 0:
        return status.HTTP_200_OK
    return HTTP_207_MULTI_STATUS


@router.post(
    "/run",
    response_model=PipelineOutcomeResponse,
    responses={
        207: {"model": PipelineOutcomeResponse, "description": "Some records failed"},
        400: {"model": ErrorResponse, "description": "Malformed request"},
        502: {"model": PipelineOutcomeResponse, "description": "Extraction aborted"},
    },
)
async def run_pipeline(
    payload: PipelineRunRequest,
    request: Request,
    runner: PipelineRunner = Depends(get_pipeline_runner)
):
    """
    Run Extract -> Transform -> Load against one upstream source.

    The body is always the full outcome; the status code summarizes it.
    """
    request_id = getattr(request.state, "request_id", None)

    logger.info(f"[{request_id}] POST /pipeline/run - source={payload.source_endpoint}")

    outcome = await runner.run(
        payload.source_endpoint,
        timeout=payload.timeout_seconds,
        request_id=request_id
    )

    body = PipelineOutcomeResponse.from_outcome(outcome)
    return JSONResponse(
        status_code=status_for_outcome(outcome),
        content=jsonable_encoder(body, by_alias=True),
        headers={"X-Request-ID": outcome.request_id}
    )


@router.get("/runs", response_model=List[PipelineRunSummary])
async def list_runs(
    limit: int = Query(10, ge=1, le=100, description="Number of recent runs to return"),
    run_store: RunStore = Depends(get_run_store)
):
    """Most recent pipeline runs first"""
    runs = await run_store.recent(limit)
    return [PipelineRunSummary.model_validate(run) for run in runs]


@router.get(
    "/runs/{request_id}",
    response_model=PipelineRunSummary,
    responses={404: {"model": ErrorResponse}},
)
async def get_run(
    request_id: str,
    run_store: RunStore = Depends(get_run_store)
):
    """One stored pipeline run"""
    run = await run_store.get(request_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Pipeline run {request_id} not found")
    return PipelineRunSummary.model_validate(run)


@router.get("/errors", response_model=List[ErrorLogEntryResponse])
async def list_errors(
    request_id: Optional[str] = Query(None, description="Filter by run"),
    stage: Optional[PipelineStage] = Query(None, description="Filter by stage"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum entries to return"),
    error_log: ErrorLogSink = Depends(get_error_log)
):
    """Entries from the error log, most recent first"""
    entries = await error_log.list(request_id=request_id, stage=stage, limit=limit)
    return [
        ErrorLogEntryResponse(
            request_id=entry.request_id,
            stage=entry.stage,
            message=entry.message,
            related_record=entry.related_record,
            occurred_at=entry.timestamp,
        )
        for entry in entries
    ]
