"""Background analysis jobs with poll-able progress and stage timing."""

from interest_engine.jobs.config import JobsConfig
from interest_engine.jobs.repository import StageStatsRepository
from interest_engine.jobs.runner import AnalysisJobRunner, ItemProcessor, StageContext
from interest_engine.jobs.schemas import (
    STAGE_NAMES,
    VALID_ITEM_TYPES,
    AnalysisItem,
    AnalysisJob,
    DocumentResult,
    JobStatus,
    Stage,
    StageSample,
    StageTiming,
)
from interest_engine.jobs.stage_tracker import StageTracker
from interest_engine.jobs.store import InMemoryJobStore, JobStore, RedisJobStore

__all__ = [
    "STAGE_NAMES",
    "VALID_ITEM_TYPES",
    "AnalysisItem",
    "AnalysisJob",
    "AnalysisJobRunner",
    "DocumentResult",
    "InMemoryJobStore",
    "ItemProcessor",
    "JobStatus",
    "JobStore",
    "JobsConfig",
    "RedisJobStore",
    "Stage",
    "StageContext",
    "StageSample",
    "StageStatsRepository",
    "StageTiming",
    "StageTracker",
]
