"""Semantic interest modeling and relevance scoring engine."""

__version__ = "0.1.0"
