"""Fakes and fixtures for InterestService tests."""

import pytest

from interest_engine.jobs.config import JobsConfig
from interest_engine.jobs.schemas import StageTiming
from interest_engine.scheduler.errors import TransientExternalError
from interest_engine.services.interest_service import InterestService
from interest_engine.vectorstore.augmentor import SimilarityAugmentor
from interest_engine.vectorstore.base import VectorSearchResult, VectorStore


class FakeExtractor:
    """Themes are the comma-separated parts of the text."""

    async def extract_themes(self, text):
        return [part.strip() for part in text.split(",") if part.strip()]


class FakeEmbedder:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail

    async def embed(self, text):
        if self.fail:
            raise TransientExternalError("embedding down", operation="embedding", attempts=3)
        return [0.1, 0.2, 0.3]


class FakeSentiment:
    def __init__(self, answer: str = "positive") -> None:
        self.answer = answer
        self.comments: list[str] = []

    async def classify(self, comment):
        self.comments.append(comment)
        return self.answer


class FakeFeedbackRepository:
    def __init__(self) -> None:
        self.signals = []
        self.fail_reads = False

    async def create(self, signal):
        self.signals.append(signal)
        return signal

    async def list_recent(self, user_id, *, limit=50, exclude_neutral=True):
        if self.fail_reads:
            raise ConnectionRefusedError("feedback store offline")
        return [s for s in self.signals if s.user_id == user_id][:limit]


class FakeVectorStore(VectorStore):
    def __init__(self) -> None:
        self.results: list[VectorSearchResult] = []
        self.upserts: list[tuple[list[int], list[list[float]]]] = []
        self.fail_search = False

    async def upsert(self, ids, embeddings):
        self.upserts.append((list(ids), list(embeddings)))
        return len(ids)

    async def search(self, query_embedding, limit=5, threshold=0.45, filters=None):
        if self.fail_search:
            raise ConnectionResetError("vector store offline")
        return list(self.results)


class FakeStageStats:
    def __init__(self) -> None:
        self.samples = []

    async def append(self, sample):
        self.samples.append(sample)

    async def get_stage_stats(self, item_type=None):
        return [
            StageTiming(stage_id=0, stage_name="Extracting themes", item_type="article",
                        avg_ms=12.0, count=1)
        ]


@pytest.fixture
def feedback_repo() -> FakeFeedbackRepository:
    return FakeFeedbackRepository()


@pytest.fixture
def vector_store() -> FakeVectorStore:
    return FakeVectorStore()


@pytest.fixture
def stage_stats() -> FakeStageStats:
    return FakeStageStats()


@pytest.fixture
def sentiment() -> FakeSentiment:
    return FakeSentiment()


@pytest.fixture
def make_service(cloud_store, feedback_repo, vector_store, stage_stats, sentiment):
    """Build a fully wired service; keyword overrides replace single collaborators."""

    def _make(**overrides) -> InterestService:
        wiring = {
            "augmentor": SimilarityAugmentor(vector_store),
            "feedback_repository": feedback_repo,
            "sentiment": sentiment,
            "extractor": FakeExtractor(),
            "embedder": FakeEmbedder(),
            "vector_store": vector_store,
            "stage_stats": stage_stats,
            "jobs_config": JobsConfig(inter_document_delay=0.0),
        }
        wiring.update(overrides)
        return InterestService(cloud_store, **wiring)

    return _make


@pytest.fixture
def service(make_service) -> InterestService:
    return make_service()


@pytest.fixture
def failing_embedder() -> FakeEmbedder:
    return FakeEmbedder(fail=True)
