"""
SQLAlchemy ORM models for database tables.

This package defines the database schema using SQLAlchemy ORM models:

Models:
    base: Base declarative class and shared enums (PipelineStage, RunState, LoadStatus)
    contact: Canonical contacts, unique by email (the load store)
    pipeline_run: Pipeline execution tracking and counts
    error_log: Append-only error records emitted by pipeline stages

Usage:
    from models import Base, Contact, PipelineRun, PipelineErrorEntry
    from models.base import PipelineStage, RunState

Relationships:
    - PipelineRun -> PipelineErrorEntry (one-to-many by request_id)
    - PipelineRun -> Contact (one-to-many by last_request_id)
"""

from models.base import Base, PipelineStage, RunState, LoadStatus
from models.contact import Contact
from models.pipeline_run import PipelineRun
from models.error_log import PipelineErrorEntry

__all__ = [
    "Base",
    "PipelineStage",
    "RunState",
    "LoadStatus",
    "Contact",
    "PipelineRun",
    "PipelineErrorEntry",
]
