"""
Health check endpoint with database and last-run status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, text
from api.dependencies import get_db
from schemas.api import HealthCheckResponse, PipelineRunSummary
from models.pipeline_run import PipelineRun
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - The most recent pipeline run
    """

    db_connected = False
    last_run = None

    try:
        await db.execute(text("SELECT 1"))
        db_connected = True

        result = await db.execute(
            select(PipelineRun).order_by(PipelineRun.id.desc()).limit(1)
        )
        run = result.scalar_one_or_none()
        if run is not None:
            last_run = PipelineRunSummary.model_validate(run)
    except Exception as e:
        logger.error(f"Health check query failed: {str(e)}")

    return HealthCheckResponse(
        status=HealthCheckResponse.determine_status(db_connected, last_run),
        timestamp=datetime.now(timezone.utc),
        database_connected=db_connected,
        last_run=last_run
    )
