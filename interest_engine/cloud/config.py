"""Interest cloud configuration.

All settings can be overridden via ``CLOUD_*`` environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CloudConfig(BaseSettings):
    """Configuration for interest tag accumulation and caching."""

    model_config = SettingsConfigDict(
        env_prefix="CLOUD_",
        case_sensitive=False,
        extra="ignore",
    )

    initial_weight: float = Field(
        default=1.0,
        gt=0.0,
        description="Weight of a tag on its first occurrence",
    )
    weight_increment: float = Field(
        default=0.5,
        gt=0.0,
        description="Weight added when a theme merges into an existing tag",
    )
    comment_weight: float = Field(
        default=2.0,
        gt=0.0,
        description="Initial weight and merge increment for themes from user comments",
    )
    negative_feedback_delta: float = Field(
        default=0.5,
        gt=0.0,
        description="Weight removed from matching tags on negative feedback",
    )
    weight_floor: float = Field(
        default=0.1,
        gt=0.0,
        description="Lowest weight a negative adjustment can leave on a tag",
    )
    similarity_threshold: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Levenshtein ratio at which two labels are treated as one",
    )
    max_label_length: int = Field(
        default=255,
        ge=10,
        le=1000,
        description="Stored label length limit; longer labels are truncated",
    )
    default_tag_limit: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Tags returned by default reads (top by weight)",
    )
    cache_ttl_seconds: float = Field(
        default=60.0,
        ge=0.0,
        le=3600.0,
        description="TTL of the in-process per-user tag cache (0 disables)",
    )
