"""Fuzzy duplicate detection for interest tags.

Decides whether a freshly extracted label denotes the same concept as
a tag already in the user's cloud. Rules are tried in order, each over
the whole tag list, so an exact hit anywhere beats a fuzzy hit earlier
in the list:

1. exact       normalized labels are equal
2. synonym     both labels fall in one SynonymTable class
3. containment one label contains the other; only merges a longer new
               label into a shorter existing one
4. similarity  Levenshtein ratio >= threshold
"""

import enum
import logging
from collections.abc import Sequence
from typing import Protocol, TypeVar

from rapidfuzz.distance import Levenshtein

from interest_engine.labels.normalizer import normalize
from interest_engine.labels.synonyms import SynonymTable

logger = logging.getLogger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 0.85


class TagLike(Protocol):
    label: str
    weight: float


T = TypeVar("T", bound=TagLike)


class MatchKind(str, enum.Enum):
    """Which rule produced a duplicate decision."""

    EXACT = "exact"
    SYNONYM = "synonym"
    CONTAINMENT = "containment"
    SIMILARITY = "similarity"


def label_similarity(first: str, second: str) -> float:
    """Normalized edit-distance similarity in [0, 1].

    (max_len - distance) / max_len; two empty strings are identical.
    """
    longest = max(len(first), len(second))
    if longest == 0:
        return 1.0
    distance = Levenshtein.distance(first, second)
    return (longest - distance) / longest


class FuzzyDeduplicator:
    """Read-only duplicate decision over a user's existing tags.

    Args:
        synonyms: Equivalence classes; defaults to the built-in table.
        similarity_threshold: Minimum Levenshtein ratio for rule 4.
    """

    def __init__(
        self,
        synonyms: SynonymTable | None = None,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    ) -> None:
        self._synonyms = synonyms or SynonymTable()
        self._threshold = similarity_threshold

    @property
    def synonyms(self) -> SynonymTable:
        return self._synonyms

    @property
    def similarity_threshold(self) -> float:
        return self._threshold

    def find_duplicate(self, candidate: str, existing: Sequence[T]) -> T | None:
        """Return the existing tag that candidate duplicates, or None."""
        match = self.find_duplicate_with_kind(candidate, existing)
        return match[0] if match else None

    def find_duplicate_with_kind(
        self,
        candidate: str,
        existing: Sequence[T],
    ) -> tuple[T, MatchKind] | None:
        new = normalize(candidate)
        if not new or not existing:
            return None

        normalized = [(tag, normalize(tag.label)) for tag in existing]

        for tag, label in normalized:
            if label == new:
                return tag, MatchKind.EXACT

        for tag, label in normalized:
            if self._synonyms.are_synonyms(new, label):
                return tag, MatchKind.SYNONYM

        for tag, label in normalized:
            # Only generalize toward the shorter, already-known label
            if label and label in new and len(new) > len(label):
                return tag, MatchKind.CONTAINMENT

        for tag, label in normalized:
            if label and label_similarity(new, label) >= self._threshold:
                return tag, MatchKind.SIMILARITY

        return None
