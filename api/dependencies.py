"""
FastAPI dependencies
"""

from functools import lru_cache
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession
from core.database import get_session, get_session_factory
from pipeline.base import ErrorLogSink
from pipeline.error_log import DatabaseErrorLog
from pipeline.factory import build_runner
from pipeline.run_store import RunStore
from pipeline.runner import PipelineRunner


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


@lru_cache
def get_pipeline_runner() -> PipelineRunner:
    """One runner per process so every request shares the loader's concurrency bound and key locks"""
    return build_runner(get_session_factory())


def get_run_store() -> RunStore:
    return RunStore(get_session_factory())


def get_error_log() -> ErrorLogSink:
    return DatabaseErrorLog(get_session_factory())
