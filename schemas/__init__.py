"""
Pydantic schemas for data validation and serialization.

Schemas:
    pipeline: Immutable values passed between stages (CanonicalRecord,
        LoadResult, ErrorRecord, PipelineOutcome)
    api: API request/response models

Features:
    - Automatic data validation
    - camelCase wire names via field aliases
    - OpenAPI schema generation for FastAPI

Usage:
    from schemas.pipeline import CanonicalRecord, PipelineOutcome
    from schemas.api import PipelineRunRequest, PipelineOutcomeResponse

Example:
    record = CanonicalRecord(firstName="Ada", lastName="Lovelace", email="ada@example.com")
    assert record.first_name == "Ada"
"""

__all__ = [
    "pipeline",
    "api",
]
