"""Nearest-neighbour context for relevance verdicts.

Finds documents a user analyzed before that resemble the one being
scored, so a verdict can say "this is like X you read last week".
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from interest_engine.vectorstore.base import VectorSearchFilter, VectorStore
from interest_engine.vectorstore.config import VectorStoreConfig

logger = structlog.get_logger(__name__)

CONTEXT_HEADER = "Documents like this you engaged with before:"


@dataclass
class SimilarDocument:
    """A prior document close to the query vector."""

    id: int
    url: str | None
    summary: str | None
    similarity: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "summary": self.summary,
            "similarity": self.similarity,
        }


class SimilarityAugmentor:
    """
    Wraps a VectorStore with similarity thresholds and context rendering.

    Usage:
        augmentor = SimilarityAugmentor(PgVectorStore(db))
        similar = await augmentor.find_similar(vector, owner_id=42, exclude_id=7)
        context = augmentor.build_context(similar)
    """

    def __init__(
        self,
        store: VectorStore,
        config: VectorStoreConfig | None = None,
    ) -> None:
        self._store = store
        self._config = config or VectorStoreConfig()

    async def find_similar(
        self,
        query_vector: Sequence[float],
        owner_id: int | None = None,
        exclude_id: int | None = None,
        limit: int | None = None,
        min_similarity: float | None = None,
    ) -> list[SimilarDocument]:
        """Return prior documents at or above ``min_similarity``.

        An empty list is a normal outcome.

        Raises:
            ValueError: The query vector is empty.
        """
        if not query_vector:
            raise ValueError("Query vector must be non-empty")

        limit = limit if limit is not None else self._config.default_limit
        threshold = (
            min_similarity if min_similarity is not None else self._config.min_similarity
        )
        filters = VectorSearchFilter(
            owner_id=owner_id,
            exclude_ids=[exclude_id] if exclude_id is not None else None,
        )

        results = await self._store.search(
            list(query_vector),
            limit=limit,
            threshold=threshold,
            filters=None if filters.is_empty else filters,
        )

        # The store's own threshold can let boundary values through after rounding
        similar = [
            SimilarDocument(
                id=r.document_id,
                url=r.url,
                summary=r.summary,
                similarity=round(r.score, 4),
            )
            for r in results
            if r.score >= threshold and r.document_id != exclude_id
        ]
        similar.sort(key=lambda d: d.similarity, reverse=True)

        logger.debug(
            "Similar documents found",
            owner_id=owner_id,
            returned=len(results),
            kept=len(similar),
            threshold=threshold,
        )
        return similar[:limit]

    def build_context(self, similar: Sequence[SimilarDocument]) -> str:
        """Render similar documents as a short text block; empty if none."""
        if not similar:
            return ""

        max_chars = self._config.summary_preview_chars
        lines = [CONTEXT_HEADER]
        for index, doc in enumerate(similar, start=1):
            summary = (doc.summary or "").strip()
            if len(summary) > max_chars:
                summary = summary[:max_chars].rstrip() + "..."
            pct = int(round(doc.similarity * 100))
            head = f"{index}. [{pct}%]"
            if doc.url:
                head += f" {doc.url}"
            lines.append(f"{head}: {summary}" if summary else head)
        return "\n".join(lines)
