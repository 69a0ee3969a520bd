from sqlalchemy import Column, String, Enum, Text, DateTime, Index
from models.base import Base, BigIntPK, JSONType, PipelineStage, utcnow


class PipelineErrorEntry(Base):
    """
    Append-only log of error records emitted by pipeline stages.

    Purpose:
    - Post-hoc inspection of failed records per run
    - Replay: related_record keeps the raw payload snapshot

    Rows are never updated or deleted by the service.
    """
    __tablename__ = "pipeline_errors"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)

    request_id = Column(String(64), nullable=False, index=True)
    stage = Column(Enum(PipelineStage), nullable=False, index=True)
    message = Column(Text, nullable=False)
    related_record = Column(JSONType, nullable=True)

    occurred_at = Column(DateTime(timezone=True), nullable=False)
    logged_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_pipeline_errors_request_stage", "request_id", "stage"),
    )
