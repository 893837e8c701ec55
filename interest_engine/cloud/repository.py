"""Interest tag repository over the ``user_semantic_tags`` table.

Weight changes are expressed as atomic ``weight = weight + $n`` updates
so two writers merging into the same row never both read the
pre-increment value.
"""

import logging
from datetime import datetime
from typing import Any

import asyncpg

from interest_engine.cloud.schemas import VALID_SORT_KEYS, InterestTag, SortBy
from interest_engine.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS user_semantic_tags (
    id           SERIAL PRIMARY KEY,
    user_id      INTEGER NOT NULL,
    tag          VARCHAR(255) NOT NULL,
    weight       DOUBLE PRECISION NOT NULL DEFAULT 1.0,
    last_used    TIMESTAMPTZ,
    created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (user_id, tag)
);

CREATE INDEX IF NOT EXISTS idx_user_semantic_tags_user_weight
    ON user_semantic_tags(user_id, weight DESC);
"""

_ORDER_BY = {
    "weight": "weight DESC, id ASC",
    "date": "last_used DESC NULLS LAST, id DESC",
}


class DuplicateTagError(Exception):
    """Raised when an insert collides with an existing (user_id, tag) row."""


class InterestTagRepository:
    """CRUD operations for InterestTag records."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        await self._db.execute(_CREATE_TABLE_SQL)

    async def list_for_user(
        self,
        user_id: int,
        *,
        limit: int | None = None,
        sort_by: SortBy = "weight",
    ) -> list[InterestTag]:
        """Get a user's tags ordered by weight or recency.

        Args:
            user_id: Owner.
            limit: Maximum rows, or None for the whole cloud.
            sort_by: "weight" (heaviest first) or "date" (most recent first).
        """
        if sort_by not in VALID_SORT_KEYS:
            raise ValueError(
                f"Invalid sort_by {sort_by!r}. Must be one of: {sorted(VALID_SORT_KEYS)}"
            )

        params: list[Any] = [user_id]
        limit_clause = ""
        if limit is not None:
            limit_clause = "LIMIT $2"
            params.append(limit)

        sql = f"""
            SELECT * FROM user_semantic_tags
            WHERE user_id = $1
            ORDER BY {_ORDER_BY[sort_by]}
            {limit_clause}
        """
        rows = await self._db.fetch(sql, *params)
        return [_row_to_tag(row) for row in rows]

    async def insert(
        self,
        user_id: int,
        label: str,
        weight: float,
        now: datetime,
    ) -> InterestTag:
        """Insert a new tag.

        Raises:
            DuplicateTagError: If (user_id, label) already exists.
        """
        sql = """
            INSERT INTO user_semantic_tags (user_id, tag, weight, last_used)
            VALUES ($1, $2, $3, $4)
            RETURNING *
        """
        try:
            row = await self._db.fetchrow(sql, user_id, label, weight, now)
        except asyncpg.UniqueViolationError as e:
            raise DuplicateTagError(f"Tag {label!r} already exists for user {user_id}") from e
        return _row_to_tag(row)

    async def increment(
        self,
        user_id: int,
        tag_id: int,
        delta: float,
        now: datetime,
    ) -> InterestTag | None:
        """Atomically add delta to a tag's weight. None if the tag is gone."""
        sql = """
            UPDATE user_semantic_tags
            SET weight = weight + $3, last_used = $4, updated_at = NOW()
            WHERE id = $2 AND user_id = $1
            RETURNING *
        """
        row = await self._db.fetchrow(sql, user_id, tag_id, delta, now)
        return _row_to_tag(row) if row else None

    async def increment_by_label(
        self,
        user_id: int,
        label: str,
        delta: float,
        now: datetime,
    ) -> InterestTag | None:
        """Atomically add delta to the tag with exactly this label."""
        sql = """
            UPDATE user_semantic_tags
            SET weight = weight + $3, last_used = $4, updated_at = NOW()
            WHERE user_id = $1 AND tag = $2
            RETURNING *
        """
        row = await self._db.fetchrow(sql, user_id, label, delta, now)
        return _row_to_tag(row) if row else None

    async def adjust(
        self,
        user_id: int,
        tag_id: int,
        delta: float,
        floor: float,
    ) -> InterestTag | None:
        """Apply a signed weight change without going below floor.

        last_used is left alone: a correction is not a use.
        """
        sql = """
            UPDATE user_semantic_tags
            SET weight = GREATEST(weight + $3, $4), updated_at = NOW()
            WHERE id = $2 AND user_id = $1
            RETURNING *
        """
        row = await self._db.fetchrow(sql, user_id, tag_id, delta, floor)
        return _row_to_tag(row) if row else None

    async def delete(self, user_id: int, tag_id: int) -> bool:
        """Delete a tag owned by user_id. False if absent or not owned."""
        sql = """
            DELETE FROM user_semantic_tags
            WHERE id = $2 AND user_id = $1
            RETURNING id
        """
        deleted = await self._db.fetchval(sql, user_id, tag_id)
        return deleted is not None


def _row_to_tag(row: Any) -> InterestTag:
    """Convert an asyncpg Record to an InterestTag."""
    return InterestTag(
        tag_id=row["id"],
        user_id=row["user_id"],
        label=row["tag"],
        weight=float(row["weight"]),
        last_used_at=row.get("last_used"),
        created_at=row["created_at"],
    )
