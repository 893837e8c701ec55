"""
Interest cloud store: merge-on-write accumulation of theme labels.

Write path ("I liked this"): every extracted theme is normalized and
checked against the user's existing tags with the FuzzyDeduplicator.
Duplicates add weight to the existing tag, new concepts become new
tags. Read path ("should I read this"): the heaviest tags are served
from a short-TTL in-process cache.

The store owns cache invalidation. Every write that returns has already
dropped the user's cache entry, so a read issued after a write in the
same process never sees the pre-write cloud.
"""

import asyncio
import time
from collections.abc import Iterable
from datetime import datetime, timezone

import structlog

from interest_engine.cloud.config import CloudConfig
from interest_engine.cloud.repository import DuplicateTagError, InterestTagRepository
from interest_engine.cloud.schemas import (
    InterestTag,
    SortBy,
    UpsertItem,
    UpsertOutcome,
    UpsertSummary,
)
from interest_engine.labels.dedup import FuzzyDeduplicator
from interest_engine.labels.normalizer import normalize
from interest_engine.observability.metrics import get_metrics

logger = structlog.get_logger(__name__)


class _TagCache:
    """Per-user TTL cache with lazy eviction on read.

    Each invalidation bumps the user's generation; a fill started under
    an older generation is dropped so a slow read cannot reinstate a
    snapshot taken before a write.
    """

    def __init__(self, ttl: float) -> None:
        self._ttl = ttl
        self._store: dict[int, tuple[list[InterestTag], float]] = {}
        self._generations: dict[int, int] = {}

    def generation(self, user_id: int) -> int:
        return self._generations.get(user_id, 0)

    def get(self, user_id: int) -> list[InterestTag] | None:
        entry = self._store.get(user_id)
        if entry is None:
            return None
        tags, expiry = entry
        if time.monotonic() >= expiry:
            del self._store[user_id]
            return None
        return tags

    def put(self, user_id: int, tags: list[InterestTag], generation: int) -> bool:
        if self._ttl <= 0 or generation != self.generation(user_id):
            return False
        self._store[user_id] = (tags, time.monotonic() + self._ttl)
        return True

    def invalidate(self, user_id: int) -> None:
        self._generations[user_id] = self.generation(user_id) + 1
        self._store.pop(user_id, None)

    def __contains__(self, user_id: int) -> bool:
        return self.get(user_id) is not None


class InterestCloudStore:
    """
    Per-user weighted tag store with fuzzy merge-on-write.

    Same-user writes are serialized by a per-user asyncio.Lock around the
    whole read-decide-write sequence; different users never contend.

    Usage:
        store = InterestCloudStore(InterestTagRepository(db))
        summary = await store.upsert_batch(42, ["Python", "машинное обучение"])
        tags = await store.get_tags(42)
    """

    def __init__(
        self,
        repository: InterestTagRepository,
        deduplicator: FuzzyDeduplicator | None = None,
        config: CloudConfig | None = None,
    ) -> None:
        self._repo = repository
        self._config = config or CloudConfig()
        self._dedup = deduplicator or FuzzyDeduplicator(
            similarity_threshold=self._config.similarity_threshold,
        )
        self._cache = _TagCache(ttl=self._config.cache_ttl_seconds)
        self._locks: dict[int, asyncio.Lock] = {}
        self._metrics = get_metrics()

    @property
    def config(self) -> CloudConfig:
        return self._config

    def _lock_for(self, user_id: int) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    # ── Write path ──────────────────────────────────────────

    async def upsert_batch(
        self,
        user_id: int,
        themes: Iterable[str],
        weight_increment: float | None = None,
        initial_weight: float | None = None,
    ) -> UpsertSummary:
        """Merge a batch of themes into the user's cloud.

        Each theme is handled independently: a failing write is counted
        as an error and the rest of the batch continues.

        Args:
            user_id: Owner of the cloud.
            themes: Raw theme labels.
            weight_increment: Weight added on merge (default from config).
            initial_weight: Weight of newly created tags (default from config).
                A value above the configured default marks a high-signal
                source and is also used as the merge increment when larger.

        Returns:
            UpsertSummary with one item per input theme.
        """
        increment = weight_increment if weight_increment is not None else self._config.weight_increment
        initial = initial_weight if initial_weight is not None else self._config.initial_weight
        if increment <= 0 or initial <= 0:
            raise ValueError("weight_increment and initial_weight must be positive")
        if initial > self._config.initial_weight:
            increment = max(increment, initial)

        summary = UpsertSummary(user_id=user_id)
        themes = list(themes or [])
        if not themes:
            return summary

        async with self._lock_for(user_id):
            try:
                existing = await self._repo.list_for_user(user_id)
                now = datetime.now(timezone.utc)
                for theme in themes:
                    item = await self._upsert_one(
                        user_id, theme, existing, increment, initial, now,
                    )
                    summary.items.append(item)
            finally:
                self.invalidate(user_id)

        for outcome in UpsertOutcome:
            self._metrics.record_tag_upsert(
                outcome.value, sum(1 for i in summary.items if i.outcome == outcome),
            )
        logger.info("Interest tags saved", **summary.to_dict())
        return summary

    async def _upsert_one(
        self,
        user_id: int,
        theme: str,
        existing: list[InterestTag],
        increment: float,
        initial: float,
        now: datetime,
    ) -> UpsertItem:
        label = normalize(theme)
        if not label:
            logger.warning("Skipping empty theme", user_id=user_id, theme=theme)
            return UpsertItem(theme=theme, outcome=UpsertOutcome.SKIPPED)

        max_len = self._config.max_label_length
        if len(label) > max_len:
            logger.warning(
                "Theme too long, truncating",
                user_id=user_id,
                length=len(label),
                preview=label[:50],
            )
            label = normalize(label[:max_len])

        try:
            duplicate = self._dedup.find_duplicate(label, existing)
            if duplicate is not None and duplicate.tag_id is not None:
                updated = await self._repo.increment(user_id, duplicate.tag_id, increment, now)
                if updated is not None:
                    _replace(existing, updated)
                    return UpsertItem(theme=theme, outcome=UpsertOutcome.MERGED, label=updated.label)
                # Row deleted underneath us; fall back to a fresh insert

            try:
                created = await self._repo.insert(user_id, label, initial, now)
            except DuplicateTagError:
                updated = await self._repo.increment_by_label(user_id, label, increment, now)
                if updated is None:
                    raise
                _replace(existing, updated)
                return UpsertItem(theme=theme, outcome=UpsertOutcome.MERGED, label=updated.label)

            existing.append(created)
            return UpsertItem(theme=theme, outcome=UpsertOutcome.CREATED, label=created.label)

        except Exception as e:
            logger.warning(
                "Failed to save interest tag",
                user_id=user_id,
                label=label,
                error=str(e),
            )
            return UpsertItem(theme=theme, outcome=UpsertOutcome.ERROR, label=label, error=str(e))

    async def adjust_weights(
        self,
        user_id: int,
        themes: Iterable[str],
        delta: float,
    ) -> int:
        """Apply an explicit signed weight change to tags matching themes.

        This is the only path that can lower a weight. Themes with no
        matching tag are ignored; nothing is created.

        Returns:
            Number of tags adjusted.
        """
        themes = list(themes or [])
        if not themes or delta == 0:
            return 0

        adjusted = 0
        async with self._lock_for(user_id):
            try:
                existing = await self._repo.list_for_user(user_id)
                touched: set[int] = set()
                for theme in themes:
                    tag = self._dedup.find_duplicate(theme, existing)
                    if tag is None or tag.tag_id is None or tag.tag_id in touched:
                        continue
                    try:
                        updated = await self._repo.adjust(
                            user_id, tag.tag_id, delta, self._config.weight_floor,
                        )
                    except Exception as e:
                        logger.warning(
                            "Failed to adjust interest tag",
                            user_id=user_id,
                            label=tag.label,
                            error=str(e),
                        )
                        continue
                    if updated is not None:
                        touched.add(tag.tag_id)
                        _replace(existing, updated)
                        adjusted += 1
            finally:
                self.invalidate(user_id)

        logger.info("Interest weights adjusted", user_id=user_id, delta=delta, adjusted=adjusted)
        return adjusted

    async def delete_tag(self, user_id: int, tag_id: int) -> bool:
        """Explicitly remove a tag. Idempotent; False if absent or not owned."""
        async with self._lock_for(user_id):
            try:
                deleted = await self._repo.delete(user_id, tag_id)
            finally:
                self.invalidate(user_id)
        if deleted:
            logger.info("Interest tag deleted", user_id=user_id, tag_id=tag_id)
        return deleted

    # ── Read path ───────────────────────────────────────────

    async def get_tags(
        self,
        user_id: int,
        limit: int | None = None,
        sort_by: SortBy = "weight",
    ) -> list[InterestTag]:
        """Get the user's tags, heaviest first by default.

        Only the default query (top-N by weight) is cached; other
        orderings and limits always read through.
        """
        limit = limit or self._config.default_tag_limit
        cacheable = sort_by == "weight" and limit == self._config.default_tag_limit

        generation = self._cache.generation(user_id)
        if cacheable:
            cached = self._cache.get(user_id)
            self._metrics.record_tag_cache(hit=cached is not None)
            if cached is not None:
                return list(cached)

        tags = await self._repo.list_for_user(user_id, limit=limit, sort_by=sort_by)
        if cacheable:
            self._cache.put(user_id, tags, generation)
        return list(tags)

    def invalidate(self, user_id: int) -> None:
        """Force the next get_tags for user_id to read through."""
        self._cache.invalidate(user_id)

    def is_cached(self, user_id: int) -> bool:
        return user_id in self._cache


def _replace(tags: list[InterestTag], updated: InterestTag) -> None:
    """Swap the entry with updated.tag_id for the fresh row."""
    for index, tag in enumerate(tags):
        if tag.tag_id == updated.tag_id:
            tags[index] = updated
            return
    tags.append(updated)
