"""
Configuration for vector store operations.

Uses Pydantic BaseSettings for environment variable support.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class VectorStoreConfig(BaseSettings):
    """
    Configuration for PgVectorStore and SimilarityAugmentor.

    All settings can be overridden via environment variables with
    VECTORSTORE_ prefix (e.g., VECTORSTORE_DEFAULT_LIMIT=10).
    """

    # Search defaults
    default_limit: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Default number of similar documents to return",
    )
    min_similarity: float = Field(
        default=0.45,
        ge=0.0,
        le=1.0,
        description="Default minimum cosine similarity",
    )

    # Storage layout
    dimensions: int = Field(
        default=768,
        ge=1,
        description="Dimensionality of stored embeddings",
    )
    table_name: str = Field(
        default="analysis_history",
        pattern=r"^[a-z_][a-z0-9_]*$",
        description="Table holding analyzed documents and their embeddings",
    )

    # Context rendering
    summary_preview_chars: int = Field(
        default=150,
        ge=10,
        description="Summary length shown per similar document",
    )

    model_config = SettingsConfigDict(env_prefix="VECTORSTORE_")
