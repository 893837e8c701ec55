"""Result types for relevance scoring."""

from dataclasses import dataclass, field
from typing import Any

from interest_engine.labels.dedup import MatchKind


@dataclass
class WeightedLabel:
    """Minimal tag shape accepted by the matcher."""

    label: str
    weight: float


@dataclass
class MatchedTheme:
    """An article theme and the cloud tag it matched."""

    theme: str
    matched_tag: str
    tag_weight: float
    kind: MatchKind

    def to_dict(self) -> dict[str, Any]:
        return {
            "theme": self.theme,
            "matched_tag": self.matched_tag,
            "tag_weight": self.tag_weight,
            "kind": self.kind.value,
        }


@dataclass
class ComparisonResult:
    """Outcome of comparing one document's themes with a user's cloud.

    Attributes:
        match_percentage: Final relevance score, 0-100.
        matched_themes: Article themes that found a tag.
        unmatched_themes: Article themes that found none, in input order.
        has_no_tags: The user has no cloud yet. Callers should invite the
            user to build one rather than report the document irrelevant.
        total_tag_weight: Sum of all tag weights considered.
        matched_weight: Sum of weights of matched tags.
        feedback_adjustment: Score points contributed by prior feedback.
    """

    match_percentage: int = 0
    matched_themes: list[MatchedTheme] = field(default_factory=list)
    unmatched_themes: list[str] = field(default_factory=list)
    has_no_tags: bool = False
    total_tag_weight: float = 0.0
    matched_weight: float = 0.0
    feedback_adjustment: float = 0.0

    @property
    def matched_count(self) -> int:
        return len(self.matched_themes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "match_percentage": self.match_percentage,
            "matched_themes": [m.to_dict() for m in self.matched_themes],
            "unmatched_themes": list(self.unmatched_themes),
            "has_no_tags": self.has_no_tags,
            "total_tag_weight": self.total_tag_weight,
            "matched_weight": self.matched_weight,
            "feedback_adjustment": self.feedback_adjustment,
        }
