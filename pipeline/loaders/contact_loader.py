"""
Load canonical contacts with per-record upserts keyed by email (idempotency)
"""

import asyncio
import weakref
from typing import Dict, List, Optional, Sequence
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from pipeline.base import PIPELINE_TIMEOUT, RecordSink
from models.base import LoadStatus, utcnow
from models.contact import Contact
from schemas.pipeline import CanonicalRecord, LoadResult
from core.config import settings
from core.exceptions import ContactUpsertError
import logging

logger = logging.getLogger(__name__)

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class KeyedLocks:
    """
    One asyncio.Lock per key, dropped once nobody holds a reference.

    Writers to the same key queue in FIFO order.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def get(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock


class ContactLoader(RecordSink):
    """
    Load contacts into the store with idempotent upsert operations.

    Ensures:
    - No duplicate rows for the same email, on repeated or concurrent runs
    - One LoadResult per submitted record, in submission order
    - A failing record never prevents the others from being attempted
    - Each record is its own transaction, so a cancelled write leaves
      nothing half-written

    One instance is shared by every run of a process: its semaphore bounds
    total store concurrency and its key locks serialize same-email writes.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        max_concurrency: Optional[int] = None,
        batch_size: Optional[int] = None
    ):
        self.session_factory = session_factory
        self.max_concurrency = max_concurrency or settings.LOAD_MAX_CONCURRENCY
        self.batch_size = batch_size or settings.LOAD_BATCH_SIZE
        self._semaphore = asyncio.Semaphore(self.max_concurrency)
        self._key_locks = KeyedLocks()

    async def load_batch(
        self,
        records: Sequence[CanonicalRecord],
        request_id: Optional[str] = None,
        source_endpoint: Optional[str] = None,
        deadline: Optional[float] = None
    ) -> List[LoadResult]:
        """
        Upsert records, reporting success or failure per record.

        Args:
            records: Canonical records to persist
            request_id: Run that is writing, stored as lineage
            source_endpoint: Upstream the records came from
            deadline: Event-loop time after which unfinished records are
                abandoned and reported as failed

        Returns:
            LoadResults, len(results) == len(records), same order
        """
        if not records:
            return []

        results: List[LoadResult] = []

        for start in range(0, len(records), self.batch_size):
            chunk = records[start:start + self.batch_size]
            results.extend(
                await self._load_chunk(chunk, start, request_id, source_endpoint, deadline)
            )

            logger.info(
                f"Batch {start // self.batch_size + 1}: "
                f"{sum(1 for r in results[start:] if r.succeeded)}/{len(chunk)} contacts loaded"
            )

        return results

    async def _load_chunk(
        self,
        chunk: Sequence[CanonicalRecord],
        offset: int,
        request_id: Optional[str],
        source_endpoint: Optional[str],
        deadline: Optional[float]
    ) -> List[LoadResult]:
        loop = asyncio.get_running_loop()
        tasks = [
            asyncio.create_task(self._load_one(offset + i, record, request_id, source_endpoint))
            for i, record in enumerate(chunk)
        ]

        timeout = None if deadline is None else max(0.0, deadline - loop.time())

        try:
            _, pending = await asyncio.wait(tasks, timeout=timeout)
        finally:
            # Covers both the deadline and the caller being cancelled
            abandoned = [t for t in tasks if not t.done()]
            for task in abandoned:
                task.cancel()
            if abandoned:
                await asyncio.gather(*abandoned, return_exceptions=True)

        if pending:
            logger.warning(f"{len(pending)} contacts abandoned at the pipeline deadline")

        results = []
        for task, record in zip(tasks, chunk):
            if task.cancelled():
                results.append(LoadResult(record=record, status=LoadStatus.FAILED, error_detail=PIPELINE_TIMEOUT))
            else:
                results.append(task.result())
        return results

    async def _load_one(
        self,
        index: int,
        record: CanonicalRecord,
        request_id: Optional[str],
        source_endpoint: Optional[str]
    ) -> LoadResult:
        async with self._semaphore:
            async with self._key_locks.get(record.email):
                try:
                    async with self.session_factory() as session:
                        async with session.begin():
                            await self._upsert(session, record, request_id, source_endpoint)

                except Exception as e:
                    error = ContactUpsertError(
                        f"Failed to upsert contact {record.email}",
                        context={
                            "email": record.email,
                            "batch_index": index,
                            "operation": "UPSERT",
                            "table_name": Contact.__tablename__,
                        },
                        original_exception=e
                    )
                    logger.error(
                        f"Load failed for batch_index={index}: {e}",
                        extra={"error_context": error.to_dict()}
                    )
                    return LoadResult(record=record, status=LoadStatus.FAILED, error_detail=str(e))

        return LoadResult(record=record, status=LoadStatus.SUCCESS)

    async def _upsert(
        self,
        session: AsyncSession,
        record: CanonicalRecord,
        request_id: Optional[str],
        source_endpoint: Optional[str]
    ) -> None:
        """INSERT ... ON CONFLICT (email) DO UPDATE, last write wins"""
        now = utcnow()
        values: Dict[str, object] = {
            "email": record.email,
            "first_name": record.first_name,
            "last_name": record.last_name,
            "phone": record.phone,
            "source_endpoint": source_endpoint,
            "last_request_id": request_id,
            "created_at": now,
            "updated_at": now,
        }

        insert = _INSERTS[session.bind.dialect.name]
        stmt = insert(Contact).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["email"],
            set_={
                "first_name": stmt.excluded.first_name,
                "last_name": stmt.excluded.last_name,
                "phone": stmt.excluded.phone,
                "source_endpoint": stmt.excluded.source_endpoint,
                "last_request_id": stmt.excluded.last_request_id,
                "updated_at": stmt.excluded.updated_at,
            }
        )

        await session.execute(stmt)
