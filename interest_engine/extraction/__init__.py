"""Inference-backed theme extraction, embeddings and comment sentiment."""

from interest_engine.extraction.config import ExtractionConfig
from interest_engine.extraction.llm_client import (
    EmbeddingProvider,
    SentimentClassifier,
    ThemeExtractor,
    fit_dimensions,
)
from interest_engine.extraction.parsing import (
    clean_themes,
    escape_control_chars,
    parse_theme_response,
)

__all__ = [
    "EmbeddingProvider",
    "ExtractionConfig",
    "SentimentClassifier",
    "ThemeExtractor",
    "clean_themes",
    "escape_control_chars",
    "fit_dimensions",
    "parse_theme_response",
]
