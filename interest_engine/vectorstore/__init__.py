"""Vector similarity over previously analyzed documents."""

from interest_engine.vectorstore.augmentor import SimilarDocument, SimilarityAugmentor
from interest_engine.vectorstore.base import VectorSearchFilter, VectorSearchResult, VectorStore
from interest_engine.vectorstore.config import VectorStoreConfig
from interest_engine.vectorstore.pgvector_store import PgVectorStore

__all__ = [
    "PgVectorStore",
    "SimilarDocument",
    "SimilarityAugmentor",
    "VectorSearchFilter",
    "VectorSearchResult",
    "VectorStore",
    "VectorStoreConfig",
]
