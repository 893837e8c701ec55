"""Rate-limited, retrying execution of external inference calls."""

from interest_engine.scheduler.backoff import ExponentialBackoff
from interest_engine.scheduler.call_scheduler import (
    CallState,
    RateLimitedCallScheduler,
    SchedulerStats,
)
from interest_engine.scheduler.config import SchedulerConfig
from interest_engine.scheduler.errors import (
    ErrorKind,
    ExternalServiceError,
    InterestEngineError,
    MalformedResponseError,
    QuotaExhaustedError,
    TransientExternalError,
    classify_error,
    retry_hint_seconds,
)

__all__ = [
    "CallState",
    "ErrorKind",
    "ExponentialBackoff",
    "ExternalServiceError",
    "InterestEngineError",
    "MalformedResponseError",
    "QuotaExhaustedError",
    "RateLimitedCallScheduler",
    "SchedulerConfig",
    "SchedulerStats",
    "TransientExternalError",
    "classify_error",
    "retry_hint_seconds",
]
