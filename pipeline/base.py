"""
Stage interfaces for the contact pipeline.

Each stage is an explicit abstract interface; the runner depends only on
these, so sources, mappers and sinks can be swapped (or faked in tests)
without touching orchestration.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple
import copy
from models.base import PipelineStage
from core.exceptions import MappingError
from schemas.pipeline import (
    CanonicalRecord,
    ErrorRecord,
    LoadResult,
    LoggedErrorRecord,
    RawExternalRecord,
)


class SourceClient(ABC):
    """Extract: fetch raw records from one upstream endpoint."""

    @abstractmethod
    async def fetch(
        self,
        source_endpoint: str,
        timeout: Optional[float] = None
    ) -> List[RawExternalRecord]:
        """
        Fetch every record the endpoint returns.

        Raises:
            ExtractError: TransientExtractError for retryable failures,
                PermanentExtractError otherwise
        """
        pass


class RecordTransformer(ABC):
    """Transform: convert one raw record to its canonical form."""

    @abstractmethod
    def map(self, raw: RawExternalRecord) -> CanonicalRecord:
        """
        Raises:
            MappingError: the record fails validation
        """
        pass

    def map_batch(
        self,
        raws: Sequence[RawExternalRecord]
    ) -> Tuple[List[Tuple[int, CanonicalRecord]], List[Tuple[int, MappingError]]]:
        """
        Map every record independently.

        Any other exception from map() is reported as a MappingError for
        that record, so one broken record never stops the batch.

        Returns:
            (mapped, failed) where each entry carries the index of the raw
            record in the input, so extraction order is preserved
        """
        mapped: List[Tuple[int, CanonicalRecord]] = []
        failed: List[Tuple[int, MappingError]] = []

        for index, raw in enumerate(raws):
            try:
                mapped.append((index, self.map(raw)))
            except MappingError as e:
                failed.append((index, e))
            except Exception as e:
                failed.append((index, MappingError(
                    f"unexpected mapping error: {e}",
                    raw_snapshot=copy.deepcopy(raw),
                    original_exception=e
                )))

        return mapped, failed


class RecordSink(ABC):
    """Load: persist canonical records, one result per record."""

    @abstractmethod
    async def load_batch(
        self,
        records: Sequence[CanonicalRecord],
        request_id: Optional[str] = None,
        source_endpoint: Optional[str] = None,
        deadline: Optional[float] = None
    ) -> List[LoadResult]:
        """
        Returns:
            LoadResults in submission order, len(result) == len(records)
        """
        pass


class ErrorLogSink(ABC):
    """Append-only destination for error records."""

    @abstractmethod
    async def write(self, request_id: str, errors: Sequence[ErrorRecord]) -> None:
        """
        Raises:
            ErrorLogWriteError: the records could not be stored
        """
        pass

    @abstractmethod
    async def list(
        self,
        request_id: Optional[str] = None,
        stage: Optional[PipelineStage] = None,
        limit: int = 100
    ) -> List[LoggedErrorRecord]:
        """Most recent first."""
        pass


# Detail reported for records abandoned at the run deadline
PIPELINE_TIMEOUT = "pipeline timeout"
