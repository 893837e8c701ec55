"""Schema definitions for feedback signals.

Maps 1:1 to the ``interest_feedback`` table. Each record captures a
user's reaction (usually a comment) to an analyzed document together
with that document's themes, so later relevance scores can be nudged
toward or away from those themes.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

Sentiment = Literal["positive", "negative", "neutral"]

VALID_SENTIMENTS: frozenset[str] = frozenset({
    "positive",
    "negative",
    "neutral",
})


@dataclass
class FeedbackSignal:
    """A persisted feedback record.

    Attributes:
        feedback_id: Identifier (feedback_{uuid_hex[:12]}).
        user_id: Who reacted.
        themes: Themes of the document the reaction refers to.
        sentiment: positive, negative or neutral.
        document_id: Optional identifier of the analyzed document.
        comment: Optional free-text comment the sentiment came from.
        created_at: When the feedback was recorded.
    """

    user_id: int
    themes: list[str]
    sentiment: Sentiment
    feedback_id: str = field(
        default_factory=lambda: f"feedback_{uuid.uuid4().hex[:12]}"
    )
    document_id: str | None = None
    comment: str | None = None
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def __post_init__(self) -> None:
        if self.sentiment not in VALID_SENTIMENTS:
            raise ValueError(
                f"Invalid sentiment {self.sentiment!r}. "
                f"Must be one of: {sorted(VALID_SENTIMENTS)}"
            )
