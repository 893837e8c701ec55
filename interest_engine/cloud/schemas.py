"""Schema definitions for the interest cloud.

InterestTag maps 1:1 to the ``user_semantic_tags`` table. UpsertSummary
is the per-call report returned by batch writes.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

SortBy = Literal["weight", "date"]

VALID_SORT_KEYS: frozenset[str] = frozenset({"weight", "date"})


@dataclass
class InterestTag:
    """A weighted label in a user's interest cloud.

    Attributes:
        tag_id: Database identifier (None before insert).
        user_id: Owner of the tag.
        label: Normalized label, unique per user.
        weight: Accumulated interest, grows with every occurrence.
        last_used_at: When the tag was last created or merged into.
        created_at: When the tag first appeared.
    """

    user_id: int
    label: str
    weight: float = 1.0
    tag_id: int | None = None
    last_used_at: datetime | None = None
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.tag_id,
            "label": self.label,
            "weight": self.weight,
            "last_used_at": self.last_used_at.isoformat() if self.last_used_at else None,
        }


class UpsertOutcome(str, enum.Enum):
    CREATED = "created"
    MERGED = "merged"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass
class UpsertItem:
    """What happened to one theme of a batch."""

    theme: str
    outcome: UpsertOutcome
    label: str | None = None
    error: str | None = None


@dataclass
class UpsertSummary:
    """Per-call report of a batch upsert."""

    user_id: int
    items: list[UpsertItem] = field(default_factory=list)

    def _count(self, outcome: UpsertOutcome) -> int:
        return sum(1 for item in self.items if item.outcome == outcome)

    @property
    def created(self) -> int:
        return self._count(UpsertOutcome.CREATED)

    @property
    def merged(self) -> int:
        return self._count(UpsertOutcome.MERGED)

    @property
    def skipped(self) -> int:
        return self._count(UpsertOutcome.SKIPPED)

    @property
    def errors(self) -> int:
        return self._count(UpsertOutcome.ERROR)

    @property
    def written(self) -> int:
        return self.created + self.merged

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "created": self.created,
            "merged": self.merged,
            "skipped": self.skipped,
            "errors": self.errors,
        }
