"""Feedback repository for storing and reading feedback signals."""

import json
import logging
from typing import Any

from interest_engine.feedback.schemas import FeedbackSignal
from interest_engine.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS interest_feedback (
    feedback_id  TEXT PRIMARY KEY,
    user_id      INTEGER NOT NULL,
    document_id  TEXT,
    themes       JSONB NOT NULL DEFAULT '[]',
    sentiment    TEXT NOT NULL CHECK (sentiment IN ('positive', 'negative', 'neutral')),
    comment      TEXT,
    created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_interest_feedback_user_created
    ON interest_feedback(user_id, created_at DESC);
"""


class FeedbackRepository:
    """Repository for FeedbackSignal persistence."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        await self._db.execute(_CREATE_TABLE_SQL)

    async def create(self, feedback: FeedbackSignal) -> FeedbackSignal:
        """Insert a new feedback record.

        Returns:
            The created FeedbackSignal as stored.
        """
        sql = """
            INSERT INTO interest_feedback (
                feedback_id, user_id, document_id, themes,
                sentiment, comment, created_at
            ) VALUES ($1, $2, $3, $4, $5, $6, $7)
            RETURNING *
        """
        row = await self._db.fetchrow(
            sql,
            feedback.feedback_id,
            feedback.user_id,
            feedback.document_id,
            json.dumps(feedback.themes, ensure_ascii=False),
            feedback.sentiment,
            feedback.comment,
            feedback.created_at,
        )
        return _row_to_feedback(row)

    async def list_recent(
        self,
        user_id: int,
        *,
        limit: int = 50,
        exclude_neutral: bool = True,
    ) -> list[FeedbackSignal]:
        """Get a user's most recent feedback.

        Args:
            user_id: Owner.
            limit: Maximum records to return.
            exclude_neutral: Skip neutral records, which never move a score.

        Returns:
            Feedback ordered by created_at descending.
        """
        neutral_clause = "AND sentiment <> 'neutral'" if exclude_neutral else ""
        sql = f"""
            SELECT * FROM interest_feedback
            WHERE user_id = $1 {neutral_clause}
            ORDER BY created_at DESC
            LIMIT $2
        """
        rows = await self._db.fetch(sql, user_id, limit)
        return [_row_to_feedback(row) for row in rows]


def _row_to_feedback(row: Any) -> FeedbackSignal:
    """Convert an asyncpg Record to a FeedbackSignal."""
    themes = row.get("themes") or []
    if isinstance(themes, str):
        themes = json.loads(themes)
    return FeedbackSignal(
        feedback_id=row["feedback_id"],
        user_id=row["user_id"],
        document_id=row.get("document_id"),
        themes=list(themes),
        sentiment=row["sentiment"],
        comment=row.get("comment"),
        created_at=row["created_at"],
    )
