"""
Per-user interest cloud: weighted, deduplicated theme labels.

Components:
- InterestTag: Dataclass mapping to the user_semantic_tags table
- InterestTagRepository: asyncpg CRUD with atomic weight increments
- InterestCloudStore: merge-on-write upserts, TTL-cached reads
- CloudConfig: weights, limits and cache TTL (CLOUD_* env vars)
"""

from interest_engine.cloud.config import CloudConfig
from interest_engine.cloud.repository import DuplicateTagError, InterestTagRepository
from interest_engine.cloud.schemas import (
    InterestTag,
    UpsertItem,
    UpsertOutcome,
    UpsertSummary,
)
from interest_engine.cloud.store import InterestCloudStore

__all__ = [
    "CloudConfig",
    "DuplicateTagError",
    "InterestCloudStore",
    "InterestTag",
    "InterestTagRepository",
    "UpsertItem",
    "UpsertOutcome",
    "UpsertSummary",
]
