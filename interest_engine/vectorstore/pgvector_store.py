"""
pgvector-backed store over the analysis history table.

The host application owns the table and its rows; this store only fills
the ``embedding`` column and reads it back through cosine distance
(``<=>``). Similarity is reported as ``1 - distance`` clamped to [0, 1].
"""

from collections.abc import Sequence
from typing import Any

import structlog

from interest_engine.storage.database import Database
from interest_engine.vectorstore.base import VectorSearchFilter, VectorSearchResult, VectorStore
from interest_engine.vectorstore.config import VectorStoreConfig

logger = structlog.get_logger(__name__)


def to_pgvector(embedding: Sequence[float]) -> str:
    """pgvector text literal, e.g. ``[0.1,0.2,0.3]``."""
    return "[" + ",".join(repr(float(x)) for x in embedding) + "]"


def _filter_clauses(filters: VectorSearchFilter | None, first_param: int) -> tuple[list[str], list[Any]]:
    """SQL conditions and their parameters, numbered from ``first_param``."""
    clauses: list[str] = []
    params: list[Any] = []
    if filters is None:
        return clauses, params
    if filters.owner_id is not None:
        params.append(filters.owner_id)
        clauses.append(f"user_id = ${first_param + len(params) - 1}")
    if filters.exclude_ids:
        params.append(list(filters.exclude_ids))
        clauses.append(f"id != ALL(${first_param + len(params) - 1})")
    return clauses, params


class PgVectorStore(VectorStore):
    """Cosine search over ``{table}.embedding`` with owner and exclusion filters."""

    def __init__(self, database: Database, config: VectorStoreConfig | None = None):
        self._db = database
        self._config = config or VectorStoreConfig()

    @property
    def table(self) -> str:
        return self._config.table_name

    def _check_dimensions(self, embedding: Sequence[float]) -> None:
        if len(embedding) != self._config.dimensions:
            raise ValueError(
                f"Expected {self._config.dimensions}-dimensional embedding, got {len(embedding)}"
            )

    async def upsert(self, ids: list[int], embeddings: list[list[float]]) -> int:
        """
        Write embeddings onto existing rows; unknown ids are skipped.

        Raises:
            ValueError: Lengths differ or a vector has the wrong dimensionality.
        """
        if len(ids) != len(embeddings):
            raise ValueError(
                f"ids and embeddings must have same length: {len(ids)} != {len(embeddings)}"
            )
        for embedding in embeddings:
            self._check_dimensions(embedding)

        sql = f"UPDATE {self.table} SET embedding = $2::vector WHERE id = $1 RETURNING id"
        updated = 0
        for doc_id, embedding in zip(ids, embeddings):
            if await self._db.fetchval(sql, doc_id, to_pgvector(embedding)) is not None:
                updated += 1

        if updated < len(ids):
            logger.warning("Some documents missing for embeddings", updated=updated, requested=len(ids))
        else:
            logger.debug("Embeddings stored", updated=updated)
        return updated

    async def search(
        self,
        query_embedding: list[float],
        limit: int = 5,
        threshold: float = 0.45,
        filters: VectorSearchFilter | None = None,
    ) -> list[VectorSearchResult]:
        clauses, filter_params = _filter_clauses(filters, first_param=2)
        threshold_idx = 2 + len(filter_params)
        where = " AND ".join(["embedding IS NOT NULL", *clauses])

        sql = f"""
            SELECT id, user_id, url, summary,
                   1 - (embedding <=> $1::vector) AS similarity
            FROM {self.table}
            WHERE {where}
              AND 1 - (embedding <=> $1::vector) >= ${threshold_idx}
            ORDER BY embedding <=> $1::vector
            LIMIT ${threshold_idx + 1}
        """
        rows = await self._db.fetch(
            sql, to_pgvector(query_embedding), *filter_params, threshold, limit
        )
        return [
            VectorSearchResult(
                document_id=row["id"],
                score=min(1.0, max(0.0, float(row["similarity"] or 0.0))),
                metadata={"user_id": row["user_id"], "url": row["url"], "summary": row["summary"]},
            )
            for row in rows
        ]
