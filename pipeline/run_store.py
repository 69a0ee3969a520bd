"""
Pipeline run tracking
"""

from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker
from models.base import RunState, utcnow
from models.pipeline_run import PipelineRun
from schemas.pipeline import PipelineOutcome
from core.database import DATABASE_ERRORS
from core.exceptions import DuplicateRunError, RunStoreError
import logging

logger = logging.getLogger(__name__)


class RunStore:
    """
    Records one pipeline_runs row per run.

    start() is written when extraction begins so in-flight runs are
    visible; complete() fills in the outcome.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def start(self, request_id: str, source_endpoint: str) -> None:
        """
        Raises:
            DuplicateRunError: request_id is already recorded
            RunStoreError: the row could not be written
        """
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(PipelineRun(
                        request_id=request_id,
                        source_endpoint=source_endpoint,
                        state=RunState.EXTRACTING,
                        started_at=utcnow(),
                    ))
        except IntegrityError as e:
            raise DuplicateRunError(
                f"Pipeline run {request_id} already exists",
                context={"request_id": request_id, "operation": "INSERT"},
                original_exception=e
            )
        except DATABASE_ERRORS as e:
            raise RunStoreError(
                "Failed to record pipeline run start",
                context={"request_id": request_id, "operation": "INSERT"},
                original_exception=e
            )

    async def complete(self, source_endpoint: str, outcome: PipelineOutcome) -> None:
        """Write the outcome, creating the row if start() never landed"""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        select(PipelineRun).where(PipelineRun.request_id == outcome.request_id)
                    )
                    run = result.scalar_one_or_none()
                    if run is None:
                        run = PipelineRun(
                            request_id=outcome.request_id,
                            source_endpoint=source_endpoint,
                            started_at=outcome.started_at,
                        )
                        session.add(run)

                    run.state = outcome.state
                    run.timed_out = outcome.timed_out
                    run.extracted_count = outcome.extracted_count
                    run.transformed_count = outcome.transformed_count
                    run.loaded_count = outcome.loaded_count
                    run.failed_count = outcome.failed_count
                    run.completed_at = outcome.completed_at
                    run.duration_seconds = outcome.duration_seconds
                    run.error_message = outcome.errors[0].message if outcome.errors else None
        except DATABASE_ERRORS as e:
            raise RunStoreError(
                "Failed to record pipeline run outcome",
                context={"request_id": outcome.request_id, "operation": "UPDATE"},
                original_exception=e
            )

    async def get(self, request_id: str) -> Optional[PipelineRun]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(PipelineRun).where(PipelineRun.request_id == request_id)
                )
                return result.scalar_one_or_none()
        except DATABASE_ERRORS as e:
            raise RunStoreError(
                "Failed to read pipeline run",
                context={"request_id": request_id, "operation": "SELECT"},
                original_exception=e
            )

    async def recent(self, limit: int = 10) -> List[PipelineRun]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(PipelineRun).order_by(PipelineRun.id.desc()).limit(limit)
                )
                return list(result.scalars().all())
        except DATABASE_ERRORS as e:
            raise RunStoreError(
                "Failed to read recent pipeline runs",
                context={"operation": "SELECT"},
                original_exception=e
            )
