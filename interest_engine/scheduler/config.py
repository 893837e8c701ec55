"""Configuration for the rate-limited call scheduler.

All settings can be overridden via ``SCHEDULER_*`` environment variables.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchedulerConfig(BaseSettings):
    """Concurrency, pacing and retry policy for external inference calls."""

    model_config = SettingsConfigDict(
        env_prefix="SCHEDULER_",
        case_sensitive=False,
        extra="ignore",
    )

    max_concurrent: int = Field(
        default=3,
        ge=1,
        le=100,
        description="Calls allowed to run at the same time",
    )
    inter_call_delay: float = Field(
        default=0.5,
        ge=0.0,
        le=60.0,
        description="Seconds a slot stays closed after a call completes",
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per call including the first",
    )
    call_timeout: float = Field(
        default=60.0,
        gt=0.0,
        le=600.0,
        description="Hard timeout per attempt, in seconds",
    )
    base_backoff: float = Field(
        default=2.0,
        gt=0.0,
        description="First retry delay when the provider gives no hint",
    )
    backoff_multiplier: float = Field(
        default=1.5,
        ge=1.0,
        description="Growth factor of successive retry delays",
    )
    min_retry_delay: float = Field(
        default=1.0,
        ge=0.0,
        description="Lower clamp for retry delays",
    )
    max_retry_delay: float = Field(
        default=60.0,
        gt=0.0,
        description="Upper clamp for retry delays",
    )

    @model_validator(mode="after")
    def _check_delay_bounds(self) -> "SchedulerConfig":
        if self.min_retry_delay > self.max_retry_delay:
            raise ValueError("min_retry_delay must not exceed max_retry_delay")
        return self
