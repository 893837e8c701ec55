"""Feedback configuration.

Controls comment limits and how far prior feedback may move a relevance
score. All settings can be overridden via ``FEEDBACK_*`` environment
variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FeedbackConfig(BaseSettings):
    """Configuration for feedback signals."""

    model_config = SettingsConfigDict(
        env_prefix="FEEDBACK_",
        case_sensitive=False,
        extra="ignore",
    )

    max_comment_length: int = Field(
        default=2000,
        ge=0,
        le=10000,
        description="Comments longer than this are truncated before storage",
    )
    history_limit: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Most recent feedback records consulted when scoring",
    )
    positive_boost: float = Field(
        default=0.3,
        ge=0.0,
        le=5.0,
        description="Score points added per theme shared with positively rated documents",
    )
    negative_penalty: float = Field(
        default=0.2,
        ge=0.0,
        le=5.0,
        description="Score points removed per theme shared with negatively rated documents",
    )
