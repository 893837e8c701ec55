"""
Relevance scoring of documents against a user's interest cloud.

Components:
- RelevanceMatcher: Theme cascade matching and 0-100 scoring
- ComparisonResult / MatchedTheme: Scoring breakdown
- WeightedLabel: Minimal (label, weight) input shape
- MatcherConfig: Tunable scoring constants (MATCHER_* env vars)
"""

from interest_engine.relevance.config import MatcherConfig
from interest_engine.relevance.matcher import RelevanceMatcher
from interest_engine.relevance.schemas import ComparisonResult, MatchedTheme, WeightedLabel

__all__ = [
    "ComparisonResult",
    "MatchedTheme",
    "MatcherConfig",
    "RelevanceMatcher",
    "WeightedLabel",
]
