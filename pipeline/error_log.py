"""
Error log sinks: append-only destinations for stage error records
"""

from typing import List, Optional, Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker
from pipeline.base import ErrorLogSink
from models.base import PipelineStage
from models.error_log import PipelineErrorEntry
from schemas.pipeline import ErrorRecord, LoggedErrorRecord
from core.database import DATABASE_ERRORS
from core.exceptions import ErrorLogWriteError
import logging

logger = logging.getLogger(__name__)


class DatabaseErrorLog(ErrorLogSink):
    """Stores error records as rows of the pipeline_errors table."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def write(self, request_id: str, errors: Sequence[ErrorRecord]) -> None:
        if not errors:
            return

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add_all([
                        PipelineErrorEntry(
                            request_id=request_id,
                            stage=error.stage,
                            message=error.message,
                            related_record=error.related_record,
                            occurred_at=error.timestamp,
                        )
                        for error in errors
                    ])
        except DATABASE_ERRORS as e:
            raise ErrorLogWriteError(
                f"Failed to append {len(errors)} error records",
                context={"request_id": request_id, "table_name": PipelineErrorEntry.__tablename__},
                original_exception=e
            )

        logger.info(f"[{request_id}] Logged {len(errors)} error records")

    async def list(
        self,
        request_id: Optional[str] = None,
        stage: Optional[PipelineStage] = None,
        limit: int = 100
    ) -> List[LoggedErrorRecord]:
        query = select(PipelineErrorEntry)
        if request_id:
            query = query.where(PipelineErrorEntry.request_id == request_id)
        if stage:
            query = query.where(PipelineErrorEntry.stage == stage)
        query = query.order_by(PipelineErrorEntry.id.desc()).limit(limit)

        async with self.session_factory() as session:
            result = await session.execute(query)
            rows = result.scalars().all()

        return [
            LoggedErrorRecord(
                request_id=row.request_id,
                stage=row.stage,
                message=row.message,
                related_record=row.related_record,
                timestamp=row.occurred_at,
            )
            for row in rows
        ]


class InMemoryErrorLog(ErrorLogSink):
    """Process-local error log, for tests and dry runs."""

    def __init__(self):
        self.entries: List[LoggedErrorRecord] = []

    async def write(self, request_id: str, errors: Sequence[ErrorRecord]) -> None:
        for error in errors:
            self.entries.append(LoggedErrorRecord(request_id=request_id, **error.model_dump()))

    async def list(
        self,
        request_id: Optional[str] = None,
        stage: Optional[PipelineStage] = None,
        limit: int = 100
    ) -> List[LoggedErrorRecord]:
        matches = [
            entry for entry in reversed(self.entries)
            if (request_id is None or entry.request_id == request_id)
            and (stage is None or entry.stage == stage)
        ]
        return matches[:limit]
