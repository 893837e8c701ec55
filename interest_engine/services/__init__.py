"""Public entry points of the interest engine."""

from interest_engine.services.interest_service import (
    InterestService,
    RelevanceReport,
    build_interest_service,
    create_tables,
)

__all__ = [
    "InterestService",
    "RelevanceReport",
    "build_interest_service",
    "create_tables",
]
