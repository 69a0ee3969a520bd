"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List, Any
from datetime import datetime, timezone
from models.base import PipelineStage, RunState
from pipeline.extractors.http_source import is_absolute_http_url
from schemas.pipeline import PipelineOutcome


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Pipeline Run Schemas
# ============================================================================

class PipelineRunRequest(BaseModel):
    """Body of POST /pipeline/run"""
    source_endpoint: str = Field(..., alias="sourceEndpoint", description="Absolute http(s) URI of the upstream source")
    timeout_ms: Optional[int] = Field(None, alias="timeoutMs", gt=0, description="Per-attempt extract timeout override")

    @validator("source_endpoint")
    def must_be_absolute(cls, v):
        v = v.strip()
        if not is_absolute_http_url(v):
            raise ValueError("sourceEndpoint must be an absolute http(s) URI")
        return v

    @property
    def timeout_seconds(self) -> Optional[float]:
        return self.timeout_ms / 1000 if self.timeout_ms else None

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "sourceEndpoint": "https://crm.example.com/api/contacts",
                "timeoutMs": 5000
            }
        }


class ErrorRecordResponse(BaseModel):
    """Serialized error record"""
    stage: PipelineStage
    message: str
    timestamp: datetime

    class Config:
        use_enum_values = True


class PipelineOutcomeResponse(BaseModel):
    """Serialized pipeline outcome, the body of every /pipeline/run response"""
    request_id: str = Field(..., alias="requestId")
    extracted_count: int = Field(..., alias="extractedCount")
    transformed_count: int = Field(..., alias="transformedCount")
    loaded_count: int = Field(..., alias="loadedCount")
    failed_count: int = Field(..., alias="failedCount")
    errors: List[ErrorRecordResponse] = Field(default_factory=list)

    @classmethod
    def from_outcome(cls, outcome: PipelineOutcome) -> "PipelineOutcomeResponse":
        return cls(
            request_id=outcome.request_id,
            extracted_count=outcome.extracted_count,
            transformed_count=outcome.transformed_count,
            loaded_count=outcome.loaded_count,
            failed_count=outcome.failed_count,
            errors=[
                ErrorRecordResponse(stage=e.stage, message=e.message, timestamp=e.timestamp)
                for e in outcome.errors
            ],
        )

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "requestId": "0f8e6c1c6a0b4d0c9a53f4f3f6b2a7d1",
                "extractedCount": 2,
                "transformedCount": 1,
                "loadedCount": 1,
                "failedCount": 1,
                "errors": [
                    {
                        "stage": "Transform",
                        "message": "missing lastName",
                        "timestamp": "2024-01-15T10:30:00Z"
                    }
                ]
            }
        }


# ============================================================================
# Inspection Schemas
# ============================================================================

class PipelineRunSummary(BaseModel):
    """A stored pipeline run"""
    request_id: str
    source_endpoint: str
    state: RunState
    timed_out: bool = False
    extracted_count: int = 0
    transformed_count: int = 0
    loaded_count: int = 0
    failed_count: int = 0
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    error_message: Optional[str] = None

    class Config:
        from_attributes = True
        use_enum_values = True


class ErrorLogEntryResponse(BaseModel):
    """A stored error record"""
    request_id: str
    stage: PipelineStage
    message: str
    related_record: Optional[Any] = None
    occurred_at: datetime

    class Config:
        from_attributes = True
        use_enum_values = True


# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field(..., description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=_utcnow)
    database_connected: bool
    last_run: Optional[PipelineRunSummary] = None

    @classmethod
    def determine_status(cls, database_connected: bool, last_run: Optional[PipelineRunSummary]) -> str:
        """Derive overall health from store connectivity and the last run"""
        if not database_connected:
            return "unhealthy"
        if last_run is None:
            return "healthy"  # No runs yet
        if last_run.state == RunState.ABORTED.value or last_run.failed_count > 0:
            return "degraded"
        return "healthy"


# ============================================================================
# Error Response Schema
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response"""
    error: str
    detail: Optional[Any] = None
    timestamp: datetime = Field(default_factory=_utcnow)

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Malformed request",
                "detail": "sourceEndpoint must be an absolute http(s) URI",
                "timestamp": "2024-01-15T10:30:00Z"
            }
        }
