"""
Theme label canonicalization and fuzzy duplicate detection.

Components:
- normalize / normalize_for_comparison: canonical label forms
- SynonymTable: injectable equivalence classes of label variants
- FuzzyDeduplicator: exact -> synonym -> containment -> edit-distance cascade
"""

from interest_engine.labels.dedup import (
    DEFAULT_SIMILARITY_THRESHOLD,
    FuzzyDeduplicator,
    MatchKind,
    TagLike,
    label_similarity,
)
from interest_engine.labels.normalizer import (
    TRAILING_STOP_WORDS,
    normalize,
    normalize_for_comparison,
)
from interest_engine.labels.synonyms import DEFAULT_SYNONYM_GROUPS, SynonymTable

__all__ = [
    "DEFAULT_SIMILARITY_THRESHOLD",
    "DEFAULT_SYNONYM_GROUPS",
    "FuzzyDeduplicator",
    "MatchKind",
    "SynonymTable",
    "TRAILING_STOP_WORDS",
    "TagLike",
    "label_similarity",
    "normalize",
    "normalize_for_comparison",
]
