"""Pytest fixtures for analysis job tests."""

from datetime import datetime, timedelta, timezone

import pytest

from interest_engine.jobs.config import JobsConfig
from interest_engine.jobs.schemas import AnalysisJob
from interest_engine.jobs.store import InMemoryJobStore


class FakeClock:
    """Settable wall clock for expiry tests."""

    def __init__(self) -> None:
        self.now = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeRedis:
    """Subset of redis.asyncio.Redis used by RedisJobStore."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.expiry: dict[str, int | None] = {}
        self.closed = False

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.expiry[key] = ex
        return True

    async def get(self, key):
        return self.data.get(key)

    async def delete(self, key):
        self.expiry.pop(key, None)
        return 1 if self.data.pop(key, None) is not None else 0

    async def close(self):
        self.closed = True


class RecordingSink:
    """StageSink that keeps every sample it receives."""

    def __init__(self, fail: bool = False) -> None:
        self.samples = []
        self.fail = fail

    async def append(self, sample) -> None:
        if self.fail:
            raise ConnectionError("stats table unavailable")
        self.samples.append(sample)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def jobs_config() -> JobsConfig:
    return JobsConfig(retention_seconds=600, inter_document_delay=0.0)


@pytest.fixture
def memory_store(jobs_config, clock) -> InMemoryJobStore:
    return InMemoryJobStore(jobs_config, clock=clock)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def sample_job() -> AnalysisJob:
    return AnalysisJob(user_id=42, item_type="article", mode="unread", total_items=2)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def failing_sink() -> RecordingSink:
    return RecordingSink(fail=True)
