"""Stage timing for long-running analyses.

``start`` stamps a monotonic start time per (job_id, stage_id);
``complete`` turns it into a StageSample, appends it to the sink and
clears the stamp. Two starts for the same key simply overwrite each
other: the last one wins.
"""

import time
from collections.abc import Callable
from typing import Protocol

import structlog

from interest_engine.jobs.schemas import ItemType, StageSample
from interest_engine.observability.metrics import get_metrics

logger = structlog.get_logger(__name__)


class StageSink(Protocol):
    async def append(self, sample: StageSample) -> None: ...


class StageTracker:
    """
    Records per-stage durations for analysis jobs.

    Usage:
        tracker = StageTracker(StageStatsRepository(db))
        tracker.start(job_id, Stage.EXTRACT_THEMES)
        ...
        await tracker.complete(job_id, Stage.EXTRACT_THEMES, "Extracting themes", "article")
    """

    def __init__(
        self,
        sink: StageSink | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sink = sink
        self._clock = clock
        self._started: dict[tuple[str, int], float] = {}

    def start(self, job_id: str, stage_id: int) -> None:
        self._started[(job_id, int(stage_id))] = self._clock()

    def is_running(self, job_id: str, stage_id: int) -> bool:
        return (job_id, int(stage_id)) in self._started

    async def complete(
        self,
        job_id: str,
        stage_id: int,
        stage_name: str,
        item_type: ItemType,
    ) -> StageSample | None:
        """Close a stage and record its duration.

        Returns:
            The recorded sample, or None if the stage was never started.
        """
        started = self._started.pop((job_id, int(stage_id)), None)
        if started is None:
            logger.debug("Stage completed without start", job_id=job_id, stage_id=stage_id)
            return None

        duration_ms = max(0, int(round((self._clock() - started) * 1000)))
        sample = StageSample(
            stage_id=int(stage_id),
            stage_name=stage_name,
            item_type=item_type,
            duration_ms=duration_ms,
        )
        get_metrics().record_stage(stage_name, item_type, duration_ms)

        if self._sink is not None:
            try:
                await self._sink.append(sample)
            except Exception as e:
                # Samples are analytics only; losing one is tolerated
                logger.warning(
                    "Failed to persist stage sample",
                    job_id=job_id,
                    stage_id=stage_id,
                    error=str(e),
                )
        return sample

    def discard(self, job_id: str, stage_id: int | None = None) -> None:
        """Drop an open stage stamp without recording it (all of the job's if no stage)."""
        if stage_id is not None:
            self._started.pop((job_id, int(stage_id)), None)
            return
        for key in [k for k in self._started if k[0] == job_id]:
            del self._started[key]
