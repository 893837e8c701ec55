"""Schema definitions for analysis jobs and stage timing samples.

AnalysisJob records are ephemeral progress indicators: they live in a
JobStore for the retention window and are polled by clients. StageSample
rows are append-only and map 1:1 to the ``analysis_stage_stats`` table.
"""

import enum
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

ItemType = Literal["channel", "urls", "text", "article", "video"]

VALID_ITEM_TYPES: frozenset[str] = frozenset({
    "channel",
    "urls",
    "text",
    "article",
    "video",
})

AnalysisMode = Literal["read", "unread"]

VALID_MODES: frozenset[str] = frozenset({"read", "unread"})


class JobStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ERROR = "error"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.ERROR})


class Stage(enum.IntEnum):
    """Pipeline stages, in execution order."""

    EXTRACT_THEMES = 0
    EMBED = 1
    UPDATE_INTERESTS = 2
    SCORE_RELEVANCE = 3
    FIND_SIMILAR = 4


STAGE_NAMES: dict[Stage, str] = {
    Stage.EXTRACT_THEMES: "Extracting themes",
    Stage.EMBED: "Computing embedding",
    Stage.UPDATE_INTERESTS: "Updating interest cloud",
    Stage.SCORE_RELEVANCE: "Scoring relevance",
    Stage.FIND_SIMILAR: "Finding similar documents",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_job_id() -> str:
    return f"job_{uuid.uuid4().hex[:12]}"


@dataclass
class AnalysisItem:
    """One document submitted for analysis.

    Attributes:
        item_id: Caller's identifier, used to key results.
        text: Extracted document text.
        document_id: Row in the document table, when one exists. Needed to
            store an embedding and to exclude the document from its own
            similarity results.
    """

    item_id: str
    text: str
    document_id: int | None = None


@dataclass
class DocumentResult:
    """Per-item outcome inside a job."""

    item_id: str
    status: Literal["success", "error"] = "success"
    themes: list[str] = field(default_factory=list)
    comparison: dict[str, Any] | None = None
    similar: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DocumentResult":
        return cls(
            item_id=data["item_id"],
            status=data.get("status", "success"),
            themes=list(data.get("themes") or []),
            comparison=data.get("comparison"),
            similar=list(data.get("similar") or []),
            error=data.get("error"),
        )


@dataclass
class AnalysisJob:
    """Poll-able progress record of a multi-document analysis."""

    user_id: int
    item_type: ItemType
    mode: AnalysisMode = "unread"
    job_id: str = field(default_factory=_new_job_id)
    status: JobStatus = JobStatus.PENDING
    total_items: int = 0
    current_item: str | None = None
    current_stage_id: int | None = None
    current_stage_name: str | None = None
    results: list[DocumentResult] = field(default_factory=list)
    error: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if self.item_type not in VALID_ITEM_TYPES:
            raise ValueError(
                f"Invalid item_type {self.item_type!r}. "
                f"Must be one of: {sorted(VALID_ITEM_TYPES)}"
            )
        if self.mode not in VALID_MODES:
            raise ValueError(f"Invalid mode {self.mode!r}. Must be one of: {sorted(VALID_MODES)}")
        if not isinstance(self.status, JobStatus):
            self.status = JobStatus(self.status)

    @property
    def is_finished(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "user_id": self.user_id,
            "item_type": self.item_type,
            "mode": self.mode,
            "status": self.status.value,
            "total_items": self.total_items,
            "current_item": self.current_item,
            "current_stage_id": self.current_stage_id,
            "current_stage_name": self.current_stage_name,
            "results": [r.to_dict() for r in self.results],
            "error": self.error,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisJob":
        return cls(
            job_id=data["job_id"],
            user_id=data["user_id"],
            item_type=data["item_type"],
            mode=data.get("mode", "unread"),
            status=JobStatus(data.get("status", "pending")),
            total_items=data.get("total_items", 0),
            current_item=data.get("current_item"),
            current_stage_id=data.get("current_stage_id"),
            current_stage_name=data.get("current_stage_name"),
            results=[DocumentResult.from_dict(r) for r in data.get("results") or []],
            error=data.get("error"),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )


@dataclass
class StageSample:
    """One completed stage, persisted for timing analytics."""

    stage_id: int
    stage_name: str
    item_type: ItemType
    duration_ms: int
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class StageTiming:
    """Aggregate timing of one stage for one item type."""

    stage_id: int
    stage_name: str
    item_type: str
    avg_ms: float
    count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
