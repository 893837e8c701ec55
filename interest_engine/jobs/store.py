"""
Job stores for poll-able analysis progress.

Jobs are ephemeral: losing them on restart is acceptable, but a reader
must never see a half-applied update. Both stores apply mutations under
a per-job lock and hand out copies.

- InMemoryJobStore: single-process deployments and tests
- RedisJobStore: shared across workers, JSON snapshots with a key TTL
"""

import asyncio
import copy
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import redis.asyncio as redis

from interest_engine.jobs.config import JobsConfig
from interest_engine.jobs.schemas import AnalysisJob

logger = logging.getLogger(__name__)

JobMutation = Callable[[AnalysisJob], None]


class JobStore(ABC):
    """Storage interface used by the job runner and poll endpoint."""

    @abstractmethod
    async def create(self, job: AnalysisJob) -> None:
        """Store a new job."""
        ...

    @abstractmethod
    async def get(self, job_id: str) -> AnalysisJob | None:
        """Return a snapshot of the job, or None if unknown or expired."""
        ...

    @abstractmethod
    async def update(self, job_id: str, mutate: JobMutation) -> AnalysisJob | None:
        """
        Apply ``mutate`` to the job atomically and refresh its timestamp.

        Returns:
            Snapshot after the update, or None if the job is gone
        """
        ...

    @abstractmethod
    async def delete(self, job_id: str) -> bool:
        ...


class InMemoryJobStore(JobStore):
    """
    Dict-backed job store with per-job locks and TTL expiry.

    Expired jobs are invisible to ``get`` immediately and physically
    removed by ``reap_expired``, either on demand or from the optional
    background reaper.

    Usage:
        store = InMemoryJobStore()
        store.start_reaper()
        ...
        await store.stop_reaper()
    """

    def __init__(
        self,
        config: JobsConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._config = config or JobsConfig()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._jobs: dict[str, AnalysisJob] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._reaper: asyncio.Task | None = None

    @property
    def retention(self) -> timedelta:
        return timedelta(seconds=self._config.retention_seconds)

    def _expired(self, job: AnalysisJob, now: datetime) -> bool:
        return now - job.updated_at > self.retention

    async def create(self, job: AnalysisJob) -> None:
        job.updated_at = self._clock()
        self._locks[job.job_id] = asyncio.Lock()
        self._jobs[job.job_id] = copy.deepcopy(job)

    async def get(self, job_id: str) -> AnalysisJob | None:
        job = self._jobs.get(job_id)
        if job is None or self._expired(job, self._clock()):
            return None
        return copy.deepcopy(job)

    async def update(self, job_id: str, mutate: JobMutation) -> AnalysisJob | None:
        lock = self._locks.get(job_id)
        if lock is None:
            return None
        async with lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            # Mutate a copy so a failing mutation leaves the stored job intact
            updated = copy.deepcopy(job)
            mutate(updated)
            updated.updated_at = self._clock()
            self._jobs[job_id] = updated
            return copy.deepcopy(updated)

    async def delete(self, job_id: str) -> bool:
        self._locks.pop(job_id, None)
        return self._jobs.pop(job_id, None) is not None

    async def reap_expired(self) -> int:
        """Remove jobs past the retention window. Returns how many."""
        now = self._clock()
        expired = [job_id for job_id, job in self._jobs.items() if self._expired(job, now)]
        for job_id in expired:
            await self.delete(job_id)
        if expired:
            logger.info("Reaped %d expired analysis jobs", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._jobs)

    def start_reaper(self) -> None:
        """Start the periodic sweep; requires a running loop."""
        if self._reaper is None or self._reaper.done():
            self._reaper = asyncio.create_task(self._reap_loop())

    async def stop_reaper(self) -> None:
        if self._reaper is None:
            return
        self._reaper.cancel()
        try:
            await self._reaper
        except asyncio.CancelledError:
            pass
        self._reaper = None

    async def _reap_loop(self) -> None:
        while True:
            await asyncio.sleep(self._config.reaper_interval)
            await self.reap_expired()


class RedisJobStore(JobStore):
    """
    Redis-backed job store.

    Each job is one JSON string under ``{prefix}{job_id}`` with an expiry
    equal to the retention window, refreshed on every update. Updates are
    read-modify-write under a local per-job lock; one runner owns each job,
    so cross-process writers do not contend.
    """

    def __init__(
        self,
        redis_url: str,
        config: JobsConfig | None = None,
        client: redis.Redis | None = None,
    ):
        self._redis_url = redis_url
        self._config = config or JobsConfig()
        self._redis: redis.Redis | None = client
        self._locks: dict[str, asyncio.Lock] = {}

    async def connect(self) -> None:
        if self._redis is None:
            self._redis = redis.from_url(self._redis_url, decode_responses=True)
            logger.info("Job store connected to Redis")

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.close()
            self._redis = None

    @property
    def client(self) -> redis.Redis:
        if self._redis is None:
            raise RuntimeError("Job store not connected. Call connect() first.")
        return self._redis

    def _key(self, job_id: str) -> str:
        return f"{self._config.redis_key_prefix}{job_id}"

    async def _write(self, job: AnalysisJob) -> None:
        await self.client.set(
            self._key(job.job_id),
            json.dumps(job.to_dict(), ensure_ascii=False),
            ex=self._config.retention_seconds,
        )

    async def create(self, job: AnalysisJob) -> None:
        job.updated_at = datetime.now(timezone.utc)
        await self._write(job)

    async def get(self, job_id: str) -> AnalysisJob | None:
        raw = await self.client.get(self._key(job_id))
        if raw is None:
            return None
        return AnalysisJob.from_dict(json.loads(raw))

    async def update(self, job_id: str, mutate: JobMutation) -> AnalysisJob | None:
        lock = self._locks.setdefault(job_id, asyncio.Lock())
        async with lock:
            job = await self.get(job_id)
            if job is None:
                self._locks.pop(job_id, None)
                return None
            mutate(job)
            job.updated_at = datetime.now(timezone.utc)
            await self._write(job)
            if job.is_finished:
                self._locks.pop(job_id, None)
            return job

    async def delete(self, job_id: str) -> bool:
        self._locks.pop(job_id, None)
        return bool(await self.client.delete(self._key(job_id)))
