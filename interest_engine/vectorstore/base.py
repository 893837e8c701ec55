"""Vector store interface used by the similarity augmentor."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class VectorSearchResult:
    """
    One prior document returned by a similarity search.

    ``score`` is cosine similarity in [0, 1]. ``metadata`` carries the
    document row fields the augmentor renders (user_id, url, summary).
    """

    document_id: int
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0.0 <= self.score <= 1.0:
            raise ValueError(f"Similarity must lie in [0, 1], got {self.score}")

    @property
    def url(self) -> str | None:
        return self.metadata.get("url")

    @property
    def summary(self) -> str | None:
        return self.metadata.get("summary")


@dataclass
class VectorSearchFilter:
    """Restricts a search to one owner's documents, minus some ids."""

    owner_id: int | None = None
    exclude_ids: list[int] | None = None

    @property
    def is_empty(self) -> bool:
        return self.owner_id is None and not self.exclude_ids


class VectorStore(ABC):
    """Embeddings attached to previously analyzed documents."""

    @abstractmethod
    async def upsert(self, ids: list[int], embeddings: list[list[float]]) -> int:
        """Set the embedding of each existing document; returns how many rows changed."""

    @abstractmethod
    async def search(
        self,
        query_embedding: list[float],
        limit: int = 5,
        threshold: float = 0.45,
        filters: VectorSearchFilter | None = None,
    ) -> list[VectorSearchResult]:
        """Documents with similarity >= ``threshold``, most similar first."""
