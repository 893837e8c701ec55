"""Configuration for theme extraction, embeddings and sentiment.

Provides Pydantic settings for the OpenAI key, model selection and the
limits applied to extracted themes. All settings can be overridden via
EXTRACTION_* environment variables.
"""

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExtractionConfig(BaseSettings):
    """Configuration for the inference-backed extraction clients.

    Example:
        EXTRACTION_OPENAI_API_KEY=sk-...
        EXTRACTION_THEME_LANGUAGE=English
    """

    model_config = SettingsConfigDict(
        env_prefix="EXTRACTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    openai_api_key: SecretStr | None = Field(
        default=None,
        description="OpenAI API key (falls back to OPENAI_API_KEY in the SDK)",
    )

    # Model selection
    chat_model: str = Field(
        default="gpt-4o-mini",
        description="Model for theme extraction and sentiment",
    )
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Model for document embeddings",
    )
    embedding_dimensions: int = Field(
        default=768,
        ge=1,
        le=4096,
        description="Dimensionality stored in the vector column",
    )

    # Input limits
    min_text_length: int = Field(
        default=50,
        ge=0,
        description="Texts shorter than this (stripped) yield no themes",
    )
    max_text_length: int = Field(
        default=100_000,
        ge=1000,
        description="Longer texts are truncated before extraction",
    )
    min_embedding_text_length: int = Field(
        default=10,
        ge=1,
        description="Minimum stripped text length for embedding",
    )

    # Theme limits
    theme_language: str = Field(
        default="Russian",
        description="All themes are returned in this language",
    )
    max_themes: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum themes kept per document",
    )
    max_theme_words: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Themes with more words are cut to this many",
    )
    max_theme_chars: int = Field(
        default=50,
        ge=5,
        le=255,
        description="Themes longer than this are dropped",
    )

    # Request tuning
    llm_timeout: float = Field(
        default=60.0,
        gt=0.0,
        le=600.0,
        description="Timeout for chat completion calls in seconds",
    )
    embedding_timeout: float = Field(
        default=30.0,
        gt=0.0,
        le=600.0,
        description="Timeout for embedding calls in seconds",
    )
