"""Pytest fixtures for vectorstore tests."""

import pytest

from interest_engine.vectorstore.base import VectorSearchResult, VectorStore
from interest_engine.vectorstore.config import VectorStoreConfig


class FakeVectorStore(VectorStore):
    """Returns canned results and records the search arguments."""

    def __init__(self, results: list[VectorSearchResult] | None = None) -> None:
        self.results = results or []
        self.searches: list[dict] = []
        self.upserts: list[tuple[list[int], list[list[float]]]] = []

    async def upsert(self, ids, embeddings):
        self.upserts.append((ids, embeddings))
        return len(ids)

    async def search(self, query_embedding, limit=5, threshold=0.45, filters=None):
        self.searches.append(
            {"query": query_embedding, "limit": limit, "threshold": threshold, "filters": filters}
        )
        return list(self.results)


@pytest.fixture
def small_config() -> VectorStoreConfig:
    """Three-dimensional vectors keep SQL parameter assertions readable."""
    return VectorStoreConfig(dimensions=3)


@pytest.fixture
def fake_store() -> FakeVectorStore:
    return FakeVectorStore()


def hit(document_id: int, score: float, summary: str = "", url: str | None = None) -> VectorSearchResult:
    return VectorSearchResult(
        document_id=document_id,
        score=score,
        metadata={"user_id": 1, "url": url, "summary": summary},
    )


@pytest.fixture
def make_hit():
    return hit
