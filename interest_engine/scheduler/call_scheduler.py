"""
Rate-limited scheduler for external inference calls.

Every call to the inference service goes through a single scheduler so
that concurrency, pacing and retries are enforced in one place:

- at most ``max_concurrent`` calls run at once, the rest wait in FIFO order
- after a call completes its slot stays closed for ``inter_call_delay``
- each attempt has a hard timeout
- transient failures are retried with backoff (provider hint first)
- quota exhaustion surfaces immediately as QuotaExhaustedError

A retried call gives up its slot while it waits, so one stuck provider
cannot starve unrelated work.
"""

import asyncio
import enum
import itertools
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import structlog

from interest_engine.observability.metrics import get_metrics
from interest_engine.scheduler.backoff import ExponentialBackoff
from interest_engine.scheduler.config import SchedulerConfig
from interest_engine.scheduler.errors import (
    ErrorKind,
    QuotaExhaustedError,
    TransientExternalError,
    classify_error,
    retry_hint_seconds,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CallState(str, enum.Enum):
    QUEUED = "queued"
    RUNNING = "running"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class SchedulerStats:
    """Point-in-time view of scheduler load and lifetime counters."""

    running: int = 0
    queued: int = 0
    retrying: int = 0
    submitted: int = 0
    succeeded: int = 0
    failed: int = 0
    retries: int = 0
    by_operation: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "running": self.running,
            "queued": self.queued,
            "retrying": self.retrying,
            "submitted": self.submitted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "retries": self.retries,
            "by_operation": dict(self.by_operation),
        }


class RateLimitedCallScheduler:
    """
    Bounded, paced, retrying executor for awaitable factories.

    ``submit`` takes a zero-argument callable returning a fresh awaitable
    so each retry gets a new coroutine.

    Usage:
        scheduler = RateLimitedCallScheduler()
        text = await scheduler.submit(
            lambda: client.generate(prompt),
            operation="theme_extraction",
        )
    """

    def __init__(
        self,
        config: SchedulerConfig | None = None,
        classifier: Callable[[BaseException], ErrorKind] = classify_error,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._config = config or SchedulerConfig()
        self._classify = classifier
        self._sleep = sleep
        self._slots = asyncio.Semaphore(self._config.max_concurrent)
        self._states: dict[int, CallState] = {}
        self._ids = itertools.count(1)
        self._stats = SchedulerStats()

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    @property
    def stats(self) -> SchedulerStats:
        """Snapshot of current load and lifetime counters."""
        states = list(self._states.values())
        return SchedulerStats(
            running=states.count(CallState.RUNNING),
            queued=states.count(CallState.QUEUED),
            retrying=states.count(CallState.RETRYING),
            submitted=self._stats.submitted,
            succeeded=self._stats.succeeded,
            failed=self._stats.failed,
            retries=self._stats.retries,
            by_operation=dict(self._stats.by_operation),
        )

    def _backoff(self) -> ExponentialBackoff:
        cfg = self._config
        return ExponentialBackoff(
            base_delay=cfg.base_backoff,
            multiplier=cfg.backoff_multiplier,
            min_delay=cfg.min_retry_delay,
            max_delay=cfg.max_retry_delay,
        )

    def _set_state(self, call_id: int, state: CallState) -> None:
        if state in (CallState.SUCCEEDED, CallState.FAILED):
            self._states.pop(call_id, None)
        else:
            self._states[call_id] = state
        states = self._states.values()
        get_metrics().set_scheduler_load(
            running=sum(1 for s in states if s == CallState.RUNNING),
            queued=sum(1 for s in states if s == CallState.QUEUED),
        )

    def _release_slot(self) -> None:
        delay = self._config.inter_call_delay
        if delay <= 0:
            self._slots.release()
            return
        asyncio.get_running_loop().call_later(delay, self._slots.release)

    async def _attempt(
        self,
        call_id: int,
        fn: Callable[[], Awaitable[T]],
        timeout: float,
    ) -> T:
        self._set_state(call_id, CallState.QUEUED)
        await self._slots.acquire()
        try:
            self._set_state(call_id, CallState.RUNNING)
            return await asyncio.wait_for(fn(), timeout=timeout)
        finally:
            self._release_slot()

    async def submit(
        self,
        fn: Callable[[], Awaitable[T]],
        *,
        operation: str = "external",
        timeout: float | None = None,
    ) -> T:
        """Run ``fn`` under the scheduler's limits and return its result.

        Raises:
            QuotaExhaustedError: The provider reported quota exhaustion.
            TransientExternalError: Transient failures outlasted the
                retry budget.
            Exception: Anything unclassified is re-raised as is.
        """
        call_id = next(self._ids)
        timeout = timeout if timeout is not None else self._config.call_timeout
        backoff = self._backoff()
        metrics = get_metrics()

        self._stats.submitted += 1
        self._stats.by_operation[operation] = self._stats.by_operation.get(operation, 0) + 1

        attempt = 0
        while True:
            attempt += 1
            started = time.perf_counter()
            try:
                result = await self._attempt(call_id, fn, timeout)
            except asyncio.CancelledError:
                self._set_state(call_id, CallState.FAILED)
                raise
            except Exception as exc:
                latency = time.perf_counter() - started
                kind = self._classify(exc)

                if kind == ErrorKind.QUOTA:
                    self._fail(call_id)
                    metrics.record_call(operation, "quota", latency)
                    logger.error("Provider quota exhausted", operation=operation, error=str(exc))
                    if isinstance(exc, QuotaExhaustedError):
                        raise
                    raise QuotaExhaustedError(str(exc), operation=operation) from exc

                if kind == ErrorKind.FATAL:
                    self._fail(call_id)
                    metrics.record_call(operation, "failed", latency)
                    raise

                if attempt >= self._config.max_attempts:
                    self._fail(call_id)
                    metrics.record_call(operation, "exhausted", latency)
                    logger.error(
                        "External call failed after retries",
                        operation=operation,
                        attempts=attempt,
                        error=str(exc),
                    )
                    raise TransientExternalError(
                        f"{operation} failed after {attempt} attempts: {exc}",
                        operation=operation,
                        attempts=attempt,
                        last_error=exc,
                    ) from exc

                delay = backoff.next_delay(hint=retry_hint_seconds(exc))
                self._stats.retries += 1
                metrics.record_retry(operation)
                logger.warning(
                    "Transient external error, retrying",
                    operation=operation,
                    attempt=attempt,
                    delay=round(delay, 2),
                    error=str(exc),
                )
                self._set_state(call_id, CallState.RETRYING)
                await self._sleep(delay)
                continue

            metrics.record_call(operation, "succeeded", time.perf_counter() - started)
            self._stats.succeeded += 1
            self._set_state(call_id, CallState.SUCCEEDED)
            return result

    def _fail(self, call_id: int) -> None:
        self._stats.failed += 1
        self._set_state(call_id, CallState.FAILED)
