"""Stage timing repository backed by ``analysis_stage_stats``."""

import logging
from typing import Any

from interest_engine.jobs.schemas import VALID_ITEM_TYPES, StageSample, StageTiming
from interest_engine.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS analysis_stage_stats (
    id           SERIAL PRIMARY KEY,
    stage_id     INTEGER NOT NULL,
    stage_name   VARCHAR(255) NOT NULL,
    item_type    VARCHAR(20) NOT NULL
                 CHECK (item_type IN ('channel', 'urls', 'text', 'article', 'video')),
    duration_ms  INTEGER NOT NULL CHECK (duration_ms >= 0),
    created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_analysis_stage_stats_stage_item
    ON analysis_stage_stats(stage_id, item_type);
CREATE INDEX IF NOT EXISTS idx_analysis_stage_stats_created
    ON analysis_stage_stats(created_at);
"""


class StageStatsRepository:
    """Append-only store of stage durations plus aggregate reads."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        await self._db.execute(_CREATE_TABLE_SQL)

    async def append(self, sample: StageSample) -> None:
        sql = """
            INSERT INTO analysis_stage_stats (
                stage_id, stage_name, item_type, duration_ms, created_at
            ) VALUES ($1, $2, $3, $4, $5)
        """
        await self._db.execute(
            sql,
            sample.stage_id,
            sample.stage_name,
            sample.item_type,
            sample.duration_ms,
            sample.created_at,
        )

    async def get_stage_stats(self, item_type: str | None = None) -> list[StageTiming]:
        """Average duration and sample count per stage.

        Args:
            item_type: Restrict to one item type; all types when None.

        Returns:
            Timings ordered by item type, then stage id.

        Raises:
            ValueError: Unknown item type.
        """
        params: list[Any] = []
        where = ""
        if item_type is not None:
            if item_type not in VALID_ITEM_TYPES:
                raise ValueError(
                    f"Invalid item_type {item_type!r}. Must be one of: {sorted(VALID_ITEM_TYPES)}"
                )
            where = "WHERE item_type = $1"
            params.append(item_type)

        sql = f"""
            SELECT
                stage_id,
                MAX(stage_name) AS stage_name,
                item_type,
                AVG(duration_ms)::float AS avg_ms,
                COUNT(*) AS count
            FROM analysis_stage_stats
            {where}
            GROUP BY stage_id, item_type
            ORDER BY item_type, stage_id
        """
        rows = await self._db.fetch(sql, *params)
        return [
            StageTiming(
                stage_id=row["stage_id"],
                stage_name=row["stage_name"],
                item_type=row["item_type"],
                avg_ms=round(float(row["avg_ms"]), 1),
                count=int(row["count"]),
            )
            for row in rows
        ]
