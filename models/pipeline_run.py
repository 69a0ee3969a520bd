from sqlalchemy import Column, String, Enum, DateTime, Float, Integer, Text, Boolean, Index
from models.base import Base, BigIntPK, RunState, utcnow


class PipelineRun(Base):
    """
    Tracks metadata for each pipeline execution.

    Purpose:
    - Audit trail of all runs, addressable by request id
    - Backing data for the health check and run inspection endpoints
    """
    __tablename__ = "pipeline_runs"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    request_id = Column(String(64), unique=True, nullable=False, index=True)

    # Source identification
    source_endpoint = Column(String(2048), nullable=False)

    # Run metadata
    state = Column(Enum(RunState), default=RunState.EXTRACTING, nullable=False, index=True)
    timed_out = Column(Boolean, default=False, nullable=False)

    # Timestamps
    started_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    duration_seconds = Column(Float, nullable=True)

    # Statistics
    extracted_count = Column(Integer, default=0, nullable=False)
    transformed_count = Column(Integer, default=0, nullable=False)
    loaded_count = Column(Integer, default=0, nullable=False)
    failed_count = Column(Integer, default=0, nullable=False)

    # First error message, for quick triage
    error_message = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_pipeline_run_state_started", "state", "started_at"),
    )
