"""
Background execution of multi-document analysis jobs.

``submit`` stores a pending job, spawns a detached task and returns the
job id at once; clients poll the job store for progress. Documents run
one after another with a pause between them. Within a document the item
processor runs its stages in order through ``StageContext.run``, which
keeps the job's current stage and the stage timings in step.

A job is marked completed only after every stage sample of its last
document has been recorded.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol, TypeVar

import structlog

from interest_engine.jobs.config import JobsConfig
from interest_engine.jobs.schemas import (
    STAGE_NAMES,
    AnalysisItem,
    AnalysisJob,
    AnalysisMode,
    DocumentResult,
    ItemType,
    JobStatus,
    Stage,
)
from interest_engine.jobs.stage_tracker import StageTracker
from interest_engine.jobs.store import JobStore
from interest_engine.observability.logging import bind_context, clear_context, log_context
from interest_engine.observability.metrics import get_metrics

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class StageContext:
    """Handle passed to the item processor for one document of one job."""

    def __init__(
        self,
        job: AnalysisJob,
        item: AnalysisItem,
        store: JobStore,
        tracker: StageTracker,
    ) -> None:
        self.job = job
        self.item = item
        self._store = store
        self._tracker = tracker

    @property
    def user_id(self) -> int:
        return self.job.user_id

    @property
    def mode(self) -> AnalysisMode:
        return self.job.mode

    async def run(self, stage: Stage, fn: Callable[[], Awaitable[T]]) -> T:
        """Run one stage: publish it as current, time it, record a sample on success."""
        name = STAGE_NAMES[stage]

        def _enter(job: AnalysisJob) -> None:
            job.current_stage_id = int(stage)
            job.current_stage_name = name

        await self._store.update(self.job.job_id, _enter)
        self._tracker.start(self.job.job_id, stage)
        try:
            result = await fn()
        except BaseException:
            # Failed or cancelled stages leave no sample
            self._tracker.discard(self.job.job_id, stage)
            raise
        await self._tracker.complete(self.job.job_id, stage, name, self.job.item_type)
        return result


class ItemProcessor(Protocol):
    async def __call__(self, ctx: StageContext) -> DocumentResult: ...


class AnalysisJobRunner:
    """
    Runs analysis jobs as detached asyncio tasks.

    Usage:
        runner = AnalysisJobRunner(InMemoryJobStore(), StageTracker(repo), processor)
        job_id = await runner.submit(user_id, items, mode="unread", item_type="article")
        job = await runner.poll(job_id)
    """

    def __init__(
        self,
        store: JobStore,
        tracker: StageTracker,
        processor: ItemProcessor,
        config: JobsConfig | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._tracker = tracker
        self._processor = processor
        self._config = config or JobsConfig()
        self._sleep = sleep
        self._tasks: set[asyncio.Task] = set()

    @property
    def store(self) -> JobStore:
        return self._store

    @property
    def active_jobs(self) -> int:
        return len(self._tasks)

    async def submit(
        self,
        user_id: int,
        items: Sequence[AnalysisItem],
        mode: AnalysisMode = "unread",
        item_type: ItemType = "article",
    ) -> str:
        """
        Accept a job and start it in the background.

        Raises:
            ValueError: No items, too many items, duplicate item ids, or an
                invalid mode / item type.
        """
        if not items:
            raise ValueError("At least one item is required")
        if len(items) > self._config.max_items_per_job:
            raise ValueError(
                f"Too many items: {len(items)} > {self._config.max_items_per_job}"
            )
        if len({item.item_id for item in items}) != len(items):
            raise ValueError("Item ids must be unique within a job")

        job = AnalysisJob(
            user_id=user_id,
            item_type=item_type,
            mode=mode,
            total_items=len(items),
        )
        await self._store.create(job)

        task = asyncio.create_task(self._run(job, list(items)), name=job.job_id)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.info(
            "Analysis job submitted",
            job_id=job.job_id,
            user_id=user_id,
            items=len(items),
            mode=mode,
            item_type=item_type,
        )
        return job.job_id

    async def poll(self, job_id: str) -> AnalysisJob | None:
        return await self._store.get(job_id)

    async def wait(self, job_id: str) -> None:
        """Await a job's task if it is still running in this process."""
        for task in list(self._tasks):
            if task.get_name() == job_id:
                await task

    async def shutdown(self) -> None:
        """Cancel running jobs and wait for them to unwind."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _run(self, job: AnalysisJob, items: list[AnalysisItem]) -> None:
        bind_context(job_id=job.job_id, user_id=job.user_id)
        started = time.perf_counter()

        def _begin(j: AnalysisJob) -> None:
            j.status = JobStatus.IN_PROGRESS

        try:
            await self._store.update(job.job_id, _begin)

            for index, item in enumerate(items):
                if index > 0 and self._config.inter_document_delay > 0:
                    await self._sleep(self._config.inter_document_delay)

                def _current(j: AnalysisJob, item_id: str = item.item_id) -> None:
                    j.current_item = item_id

                await self._store.update(job.job_id, _current)
                result = await self._process(job, item)

                def _record(j: AnalysisJob, r: DocumentResult = result) -> None:
                    j.results.append(r)

                await self._store.update(job.job_id, _record)

            final = await self._store.update(job.job_id, self._finish)
            status = final.status.value if final else JobStatus.COMPLETED.value
            get_metrics().record_job(status)
            logger.info(
                "Analysis job finished",
                status=status,
                duration_s=round(time.perf_counter() - started, 2),
            )
        except asyncio.CancelledError:
            await self._fail(job.job_id, "cancelled")
            raise
        except Exception as e:
            logger.exception("Analysis job failed")
            await self._fail(job.job_id, str(e))
        finally:
            self._tracker.discard(job.job_id)
            clear_context()

    async def _process(self, job: AnalysisJob, item: AnalysisItem) -> DocumentResult:
        ctx = StageContext(job, item, self._store, self._tracker)
        try:
            with log_context(item_id=item.item_id):
                return await self._processor(ctx)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Document analysis failed", item_id=item.item_id, error=str(e))
            return DocumentResult(item_id=item.item_id, status="error", error=str(e))

    @staticmethod
    def _finish(job: AnalysisJob) -> None:
        job.current_item = None
        job.current_stage_id = None
        job.current_stage_name = None
        if job.results and all(r.status == "error" for r in job.results):
            job.status = JobStatus.ERROR
            job.error = "All documents failed"
        else:
            job.status = JobStatus.COMPLETED

    async def _fail(self, job_id: str, error: str) -> None:
        def _mark(j: AnalysisJob) -> None:
            j.status = JobStatus.ERROR
            j.error = error

        try:
            await self._store.update(job_id, _mark)
        except Exception as e:
            logger.error("Could not mark job as failed", error=str(e))
        get_metrics().record_job(JobStatus.ERROR.value)
