"""
Custom exceptions for the contact pipeline with structured error context.

This module provides the exception hierarchy used by every pipeline stage.
Each exception carries context information for debugging and for the
error log.

Exception Hierarchy:
    PipelineException (base)
    ├── ExtractError
    │   ├── TransientExtractError (retryable)
    │   │   └── SourceTimeoutError
    │   └── PermanentExtractError (not retryable)
    ├── MappingError
    ├── LoadError
    │   └── ContactUpsertError
    ├── StorageError
    │   ├── ErrorLogWriteError
    │   └── RunStoreError
    │       └── DuplicateRunError
    └── RetryableError / NonRetryableError (mixins)

Propagation:
    ExtractError aborts a run. MappingError and LoadError are caught per
    record by the runner and folded into the outcome. StorageError is
    raised by bookkeeping writes and only ever logged by the runner.
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class PipelineException(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (endpoint, status code, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(PipelineException):
    """
    Mixin for errors that should trigger retry logic.

    Use this for transient errors like:
    - Network timeouts
    - Connection failures
    - Server errors (HTTP 5xx)
    """
    pass


class NonRetryableError(PipelineException):
    """
    Mixin for errors that should NOT trigger retry logic.

    Use this for permanent errors like:
    - Client errors (HTTP 4xx)
    - Malformed response bodies
    - Invalid endpoints
    """
    pass


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractError(PipelineException):
    """
    Base exception for source extraction failures.

    Context should include:
        - source_endpoint: The upstream URL
        - status_code: HTTP status code (if applicable)
        - response_body: Response body (truncated if large)
    """
    pass


class TransientExtractError(RetryableError, ExtractError):
    """Server errors and connection failures that may succeed on retry."""
    pass


class SourceTimeoutError(TransientExtractError):
    """The upstream did not answer within the configured timeout."""
    pass


class PermanentExtractError(NonRetryableError, ExtractError):
    """Client errors and malformed bodies; retrying will not help."""
    pass


# ============================================================================
# Transformation Errors
# ============================================================================

class MappingError(NonRetryableError):
    """
    Raised when a raw record cannot be mapped to a canonical record.

    Always scoped to one record. The reason names the first validation
    rule that failed; raw_snapshot is a copy of the offending payload.
    """

    def __init__(
        self,
        reason: str,
        raw_snapshot: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(reason, context, original_exception)
        self.reason = reason
        self.raw_snapshot = raw_snapshot


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(PipelineException):
    """
    Base exception for per-record persistence failures.

    Context should include:
        - email: Natural key of the record
        - batch_index: Index in the submitted batch
        - operation: Database operation (UPSERT)
    """
    pass


class ContactUpsertError(LoadError):
    """The upsert of a single contact row failed."""
    pass


# ============================================================================
# Bookkeeping Errors
# ============================================================================

class StorageError(PipelineException):
    """Base exception for run-tracking and error-log writes."""
    pass


class ErrorLogWriteError(StorageError):
    """Error records could not be appended to the error log."""
    pass


class RunStoreError(StorageError):
    """A pipeline run row could not be written or read."""
    pass


class DuplicateRunError(RunStoreError):
    """A run with this request id is already recorded."""
    pass
