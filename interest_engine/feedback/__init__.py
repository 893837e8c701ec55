"""Feedback signals: a user's reactions to analyzed documents.

Components:
- FeedbackSignal: Dataclass mapping to the interest_feedback table
- FeedbackConfig: Comment limits and score adjustment sizes
- FeedbackRepository: Persistence and recent-history reads
- VALID_SENTIMENTS: Frozenset for runtime validation
"""

from interest_engine.feedback.config import FeedbackConfig
from interest_engine.feedback.repository import FeedbackRepository
from interest_engine.feedback.schemas import VALID_SENTIMENTS, FeedbackSignal, Sentiment

__all__ = [
    "FeedbackConfig",
    "FeedbackRepository",
    "FeedbackSignal",
    "Sentiment",
    "VALID_SENTIMENTS",
]
