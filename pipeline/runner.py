# ============================================================================
# File: pipeline/runner.py
# Description: Pipeline orchestrator with retries, partial failures and a run deadline
# ============================================================================
"""
Pipeline Runner - Orchestrates Extract, Transform, Load for one request.

This module provides the run state machine:

    Extracting -> Transforming -> Loading -> Completed
         \\
          -> Aborted   (extraction failed or the deadline passed while extracting)

- Extract is retried with exponential backoff on transient failures only
- Transform and Load never abort the run; they degrade to partial success
- Load failures are not retried within a run; callers resubmit
- Every run ends in a PipelineOutcome, never an exception, for stage errors
"""

from typing import List, Optional, Tuple
import asyncio
import logging
import uuid

from pipeline.base import (
    PIPELINE_TIMEOUT,
    ErrorLogSink,
    RecordSink,
    RecordTransformer,
    SourceClient,
)
from pipeline.run_store import RunStore
from models.base import PipelineStage, RunState, utcnow
from schemas.pipeline import (
    CanonicalRecord,
    ErrorRecord,
    LoadResult,
    PipelineOutcome,
    RawExternalRecord,
)
from core.config import settings
from core.exceptions import (
    DuplicateRunError,
    ExtractError,
    PermanentExtractError,
    RetryableError,
    StorageError,
)

logger = logging.getLogger(__name__)


class PipelineRunner:
    """
    Pipeline Orchestrator

    Responsibilities:
    - Sequence Extract -> Transform -> Load with no overlap between stages
    - Retry transient extract failures
    - Collect per-record failures into stage-ordered error records
    - Enforce the whole-run deadline
    - Hand errors to the error log and the outcome to the run store
    """

    def __init__(
        self,
        source: SourceClient,
        mapper: RecordTransformer,
        sink: RecordSink,
        error_log: Optional[ErrorLogSink] = None,
        run_store: Optional[RunStore] = None,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        default_timeout: Optional[float] = None,
        load_budget: Optional[float] = None
    ):
        self.source = source
        self.mapper = mapper
        self.sink = sink
        self.error_log = error_log
        self.run_store = run_store
        self.max_attempts = max_attempts or settings.EXTRACT_MAX_ATTEMPTS
        self.retry_delay = settings.EXTRACT_RETRY_DELAY_SECONDS if retry_delay is None else retry_delay
        self.default_timeout = default_timeout or settings.SOURCE_TIMEOUT_SECONDS
        self.load_budget = settings.LOAD_BUDGET_SECONDS if load_budget is None else load_budget

    def run_budget(self, timeout: float) -> float:
        """Wall-clock seconds allowed for a run: every extract attempt and backoff, plus loading"""
        backoff = sum(self.retry_delay * (2 ** i) for i in range(self.max_attempts - 1))
        return timeout * self.max_attempts + backoff + self.load_budget

    async def run(
        self,
        source_endpoint: str,
        timeout: Optional[float] = None,
        request_id: Optional[str] = None
    ) -> PipelineOutcome:
        """
        Run the full pipeline against one upstream endpoint.

        Args:
            source_endpoint: Absolute URL of the upstream source
            timeout: Per-attempt extract timeout in seconds
            request_id: Opaque id for the run (generated when omitted)

        Returns:
            PipelineOutcome; state is Aborted when extraction failed
        """
        request_id = request_id or uuid.uuid4().hex
        timeout = timeout or self.default_timeout
        started_at = utcnow()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.run_budget(timeout)

        request_id = await self._record_start(request_id, source_endpoint)

        # --------------------------------------------------
        # EXTRACTING
        # --------------------------------------------------
        logger.info(f"[{request_id}] {RunState.EXTRACTING.value}: {source_endpoint}")

        try:
            raws = await asyncio.wait_for(
                self._extract_with_retry(source_endpoint, timeout, request_id),
                timeout=max(0.0, deadline - loop.time())
            )

        except ExtractError as e:
            logger.error(
                f"[{request_id}] {RunState.ABORTED.value}: {e.message}",
                extra={"error_context": e.to_dict()}
            )
            outcome = self._aborted(request_id, started_at, e.message)
            return await self._finish(source_endpoint, outcome)

        except asyncio.TimeoutError:
            logger.error(f"[{request_id}] {RunState.ABORTED.value}: {PIPELINE_TIMEOUT} during extraction")
            outcome = self._aborted(request_id, started_at, PIPELINE_TIMEOUT, timed_out=True)
            return await self._finish(source_endpoint, outcome)

        extracted_count = len(raws)
        logger.info(f"[{request_id}] Extracted {extracted_count} records")

        # --------------------------------------------------
        # TRANSFORMING
        # --------------------------------------------------
        logger.info(f"[{request_id}] {RunState.TRANSFORMING.value} {extracted_count} records")

        records, transform_errors = self._transform(raws, request_id)

        logger.info(
            f"[{request_id}] Mapping complete: {len(records)} succeeded, "
            f"{len(transform_errors)} failed"
        )

        # --------------------------------------------------
        # LOADING
        # --------------------------------------------------
        logger.info(f"[{request_id}] {RunState.LOADING.value} {len(records)} records")

        results: List[LoadResult] = []
        if records:
            results = await self.sink.load_batch(
                records,
                request_id=request_id,
                source_endpoint=source_endpoint,
                deadline=deadline
            )
        else:
            logger.warning(f"[{request_id}] No records to load")

        loaded = [r for r in results if r.succeeded]
        failed = [r for r in results if not r.succeeded]
        load_errors = [
            ErrorRecord(
                stage=PipelineStage.LOAD,
                message=f"{r.record.email}: {r.error_detail}",
                related_record=r.record.model_dump(by_alias=True),
            )
            for r in failed
        ]
        timed_out = any(r.error_detail == PIPELINE_TIMEOUT for r in failed)

        # --------------------------------------------------
        # COMPLETED
        # --------------------------------------------------
        outcome = PipelineOutcome(
            request_id=request_id,
            state=RunState.COMPLETED,
            extracted_count=extracted_count,
            transformed_count=len(records),
            loaded_count=len(loaded),
            failed_count=len(transform_errors) + len(failed),
            errors=tuple(transform_errors + load_errors),
            timed_out=timed_out,
            started_at=started_at,
            completed_at=utcnow(),
        )

        logger.info(
            f"[{request_id}] {RunState.COMPLETED.value}: "
            f"Extracted: {outcome.extracted_count}, Transformed: {outcome.transformed_count}, "
            f"Loaded: {outcome.loaded_count}, Failed: {outcome.failed_count}"
            + (" (deadline reached)" if timed_out else "")
        )

        return await self._finish(source_endpoint, outcome)

    async def _extract_with_retry(
        self,
        source_endpoint: str,
        timeout: float,
        request_id: str
    ) -> List[RawExternalRecord]:
        """Call the source, retrying RetryableError with exponential backoff"""
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self.source.fetch(source_endpoint, timeout)

            except RetryableError as e:
                if attempt >= self.max_attempts:
                    raise
                delay = self.retry_delay * (2 ** (attempt - 1))
                logger.warning(
                    f"[{request_id}] {e.message}. Retrying in {delay} seconds "
                    f"(attempt {attempt}/{self.max_attempts})"
                )
                await asyncio.sleep(delay)

            except ExtractError:
                raise

            except Exception as e:
                raise PermanentExtractError(
                    "Unexpected error during extraction",
                    context={"source_endpoint": source_endpoint, "attempt": attempt},
                    original_exception=e
                )

        # max_attempts < 1
        raise PermanentExtractError(
            "No extraction attempts configured",
            context={"source_endpoint": source_endpoint}
        )

    def _transform(
        self,
        raws: List[RawExternalRecord],
        request_id: str
    ) -> Tuple[List[CanonicalRecord], List[ErrorRecord]]:
        """Map each record independently; order of the survivors is preserved"""
        mapped, failed = self.mapper.map_batch(raws)

        for index, error in failed:
            logger.warning(
                f"[{request_id}] Mapping failed for record {index}: {error.reason}",
                extra={"error_context": error.to_dict()}
            )

        records = [record for _, record in mapped]
        errors = [
            ErrorRecord(
                stage=PipelineStage.TRANSFORM,
                message=error.reason,
                related_record=error.raw_snapshot,
            )
            for _, error in failed
        ]
        return records, errors

    @staticmethod
    def _aborted(
        request_id: str,
        started_at,
        message: str,
        timed_out: bool = False
    ) -> PipelineOutcome:
        return PipelineOutcome(
            request_id=request_id,
            state=RunState.ABORTED,
            errors=(ErrorRecord(stage=PipelineStage.EXTRACT, message=message),),
            timed_out=timed_out,
            started_at=started_at,
            completed_at=utcnow(),
        )

    async def _record_start(self, request_id: str, source_endpoint: str) -> str:
        """Record the run start; returns the request id the run is tracked under"""
        if self.run_store is None:
            return request_id
        try:
            await self.run_store.start(request_id, source_endpoint)
        except DuplicateRunError:
            fresh_id = uuid.uuid4().hex
            logger.warning(f"[{request_id}] Request id already used by an earlier run, tracking as {fresh_id}")
            return await self._record_start(fresh_id, source_endpoint)
        except StorageError as e:
            logger.error(f"[{request_id}] {e.message}", extra={"error_context": e.to_dict()})
        return request_id

    async def _finish(self, source_endpoint: str, outcome: PipelineOutcome) -> PipelineOutcome:
        """Bookkeeping writes; their failures are logged and never alter the outcome"""
        if self.error_log is not None and outcome.errors:
            try:
                await self.error_log.write(outcome.request_id, outcome.errors)
            except StorageError as e:
                logger.error(f"[{outcome.request_id}] {e.message}", extra={"error_context": e.to_dict()})

        if self.run_store is not None:
            try:
                await self.run_store.complete(source_endpoint, outcome)
            except StorageError as e:
                logger.error(f"[{outcome.request_id}] {e.message}", extra={"error_context": e.to_dict()})

        return outcome
