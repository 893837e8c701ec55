"""Relevance matcher configuration.

The scoring constants were tuned empirically, not derived. They are
kept here so they can be changed per deployment (``MATCHER_*`` env
vars) and asserted exactly in tests.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MatcherConfig(BaseSettings):
    """Configuration for theme-to-cloud relevance scoring."""

    model_config = SettingsConfigDict(
        env_prefix="MATCHER_",
        case_sensitive=False,
        extra="ignore",
    )

    article_ratio_weight: float = Field(
        default=80.0,
        ge=0.0,
        le=100.0,
        description="Points for matching every article theme",
    )
    weight_ratio_weight: float = Field(
        default=20.0,
        ge=0.0,
        le=100.0,
        description="Points for matched tags carrying the whole cloud weight",
    )
    match_count_floors: dict[int, int] = Field(
        default={3: 30, 5: 45, 8: 60},
        description="Minimum score once at least N themes matched",
    )
    high_coverage_ratio: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Article match ratio that enables the coverage floor",
    )
    high_coverage_min_matches: int = Field(
        default=5,
        ge=1,
        description="Matched themes required for the coverage floor",
    )
    similarity_threshold: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Levenshtein ratio for the last matching rule",
    )
    min_significant_word_length: int = Field(
        default=3,
        ge=1,
        description="Shortest word that counts for word-overlap matching",
    )
    max_feedback_adjustment: float = Field(
        default=10.0,
        ge=0.0,
        le=100.0,
        description="Cap on the absolute score change from prior feedback",
    )

    @field_validator("match_count_floors")
    @classmethod
    def _floors_in_range(cls, value: dict[int, int]) -> dict[int, int]:
        for count, floor in value.items():
            if count < 1 or not 0 <= floor <= 100:
                raise ValueError(f"Invalid floor {count}: {floor}")
        return value
