"""
Unit tests for the pipeline exception hierarchy
"""

import pytest
from core.exceptions import (
    ExtractError,
    MappingError,
    NonRetryableError,
    PermanentExtractError,
    PipelineException,
    RetryableError,
    SourceTimeoutError,
    TransientExtractError,
)


class TestExceptionHierarchy:

    @pytest.mark.parametrize("exc_class,retryable", [
        (TransientExtractError, True),
        (SourceTimeoutError, True),
        (PermanentExtractError, False),
    ])
    def test_extract_errors_classified(self, exc_class, retryable):
        error = exc_class("upstream failed")

        assert isinstance(error, ExtractError)
        assert isinstance(error, RetryableError) is retryable
        assert isinstance(error, NonRetryableError) is not retryable

    def test_to_dict_carries_context_and_cause(self):
        cause = ConnectionError("refused")
        error = TransientExtractError(
            "Connection failed",
            context={"source_endpoint": "https://src/contacts"},
            original_exception=cause
        )

        data = error.to_dict()

        assert data["error_type"] == "TransientExtractError"
        assert data["message"] == "Connection failed"
        assert data["context"]["source_endpoint"] == "https://src/contacts"
        assert data["original_error"] == "refused"
        assert error.__cause__ is cause
        assert "Caused by: ConnectionError" in str(error)

    def test_mapping_error_keeps_reason_and_snapshot(self):
        error = MappingError("missing email", raw_snapshot={"firstName": "A"})

        assert isinstance(error, PipelineException)
        assert error.reason == "missing email"
        assert error.raw_snapshot == {"firstName": "A"}
