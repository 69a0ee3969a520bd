"""
Wiring of the production pipeline from settings
"""

from typing import Optional
from sqlalchemy.ext.asyncio import async_sessionmaker
from pipeline.error_log import DatabaseErrorLog
from pipeline.extractors.http_source import HTTPSourceClient
from pipeline.loaders.contact_loader import ContactLoader
from pipeline.run_store import RunStore
from pipeline.runner import PipelineRunner
from pipeline.transformers.record_mapper import RecordMapper


def build_runner(
    session_factory: async_sessionmaker,
    source: Optional[HTTPSourceClient] = None
) -> PipelineRunner:
    """Runner backed by the database for loading, error logging and run tracking"""
    return PipelineRunner(
        source=source or HTTPSourceClient(),
        mapper=RecordMapper(),
        sink=ContactLoader(session_factory),
        error_log=DatabaseErrorLog(session_factory),
        run_store=RunStore(session_factory),
    )
