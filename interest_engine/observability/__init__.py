"""Observability: structlog logging setup and Prometheus metrics."""

from interest_engine.observability.logging import (
    bind_context,
    clear_context,
    log_context,
    setup_logging,
)
from interest_engine.observability.metrics import MetricsCollector, get_metrics

__all__ = [
    "MetricsCollector",
    "bind_context",
    "clear_context",
    "get_metrics",
    "log_context",
    "setup_logging",
]
