"""
Pydantic value types passed between pipeline stages.

All models are frozen: once a stage has produced a value, later stages
only read it.
"""

from pydantic import BaseModel, Field, validator
from typing import Any, Dict, Optional, Tuple
from datetime import datetime, timezone
from models.base import PipelineStage, RunState, LoadStatus

# Raw payload as decoded from the upstream JSON array
RawExternalRecord = Dict[str, Any]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_valid_email(value: str) -> bool:
    """Exactly one "@" with non-empty local and domain parts"""
    if value.count("@") != 1:
        return False
    local, domain = value.split("@")
    return bool(local) and bool(domain)


class CanonicalRecord(BaseModel):
    """
    Validated contact derived from exactly one raw record.

    The validators repeat the mapper's checks so an invalid instance
    cannot be built by any path.
    """

    first_name: str = Field(..., alias="firstName", min_length=1)
    last_name: str = Field(..., alias="lastName", min_length=1)
    email: str = Field(..., min_length=3)
    phone: Optional[str] = None

    @validator("first_name", "last_name")
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @validator("email")
    def email_shape(cls, v):
        if not is_valid_email(v):
            raise ValueError("must contain exactly one '@' with non-empty local and domain parts")
        return v

    class Config:
        frozen = True
        populate_by_name = True


class LoadResult(BaseModel):
    """Outcome of persisting one canonical record"""

    record: CanonicalRecord
    status: LoadStatus
    error_detail: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == LoadStatus.SUCCESS

    class Config:
        frozen = True


class ErrorRecord(BaseModel):
    """One failure of one stage on one item (or on the whole extract)"""

    stage: PipelineStage
    message: str
    related_record: Optional[Any] = None
    timestamp: datetime = Field(default_factory=_utcnow)

    class Config:
        frozen = True


class PipelineOutcome(BaseModel):
    """
    Aggregate result of one end-to-end run.

    failed_count counts records that failed mapping plus records that
    failed loading. errors are ordered Extract, then Transform, then Load.
    """

    request_id: str
    state: RunState
    extracted_count: int = Field(0, ge=0)
    transformed_count: int = Field(0, ge=0)
    loaded_count: int = Field(0, ge=0)
    failed_count: int = Field(0, ge=0)
    errors: Tuple[ErrorRecord, ...] = ()
    timed_out: bool = False
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: datetime = Field(default_factory=_utcnow)

    @property
    def aborted(self) -> bool:
        return self.state == RunState.ABORTED

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()

    class Config:
        frozen = True


class LoggedErrorRecord(ErrorRecord):
    """An error record as read back from the error log"""

    request_id: str
