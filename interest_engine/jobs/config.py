"""Configuration for background analysis jobs.

All settings can be overridden via ``JOBS_*`` environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class JobsConfig(BaseSettings):
    """Retention, pacing and storage of analysis jobs."""

    model_config = SettingsConfigDict(
        env_prefix="JOBS_",
        case_sensitive=False,
        extra="ignore",
    )

    retention_seconds: int = Field(
        default=3600,
        ge=60,
        le=7 * 24 * 3600,
        description="How long a job stays poll-able after its last update",
    )
    inter_document_delay: float = Field(
        default=2.0,
        ge=0.0,
        le=60.0,
        description="Pause between documents of one job",
    )
    reaper_interval: float = Field(
        default=300.0,
        gt=0.0,
        description="Seconds between expired-job sweeps of the in-memory store",
    )
    max_items_per_job: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Maximum documents accepted in one job",
    )
    redis_key_prefix: str = Field(
        default="interest_engine:job:",
        description="Key prefix for job snapshots in Redis",
    )
