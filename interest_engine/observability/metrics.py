"""
Prometheus metrics for the interest engine.

Covers the external call scheduler, interest cloud writes, relevance
scoring and analysis job progress. Metrics are exposed via an HTTP
endpoint for Prometheus scraping when start_server() is called.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from interest_engine.config.settings import get_settings

logger = logging.getLogger(__name__)

# External inference calls run from hundreds of ms to tens of seconds
CALL_LATENCY_BUCKETS = (0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)

STAGE_DURATION_BUCKETS = (0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the interest engine.

    Usage:
        metrics = get_metrics()
        metrics.record_call("theme_extraction", "succeeded", latency=1.2)
        metrics.record_tag_upsert("merged", count=3)
    """

    def __init__(self):
        # Scheduler
        self.external_calls = Counter(
            "interest_engine_external_calls_total",
            "External inference calls by final outcome",
            ["operation", "outcome"],  # outcome: succeeded, failed, quota, exhausted
        )

        self.external_retries = Counter(
            "interest_engine_external_retries_total",
            "Retries of transient external call failures",
            ["operation"],
        )

        self.external_call_latency = Histogram(
            "interest_engine_external_call_latency_seconds",
            "Latency of a single external call attempt",
            ["operation"],
            buckets=CALL_LATENCY_BUCKETS,
        )

        self.scheduler_running = Gauge(
            "interest_engine_scheduler_running",
            "External calls currently running",
        )

        self.scheduler_queued = Gauge(
            "interest_engine_scheduler_queued",
            "External calls waiting for a concurrency slot",
        )

        # Interest cloud
        self.tag_upserts = Counter(
            "interest_engine_tag_upserts_total",
            "Interest tag writes by outcome",
            ["outcome"],  # created, merged, skipped, error
        )

        self.tag_cache = Counter(
            "interest_engine_tag_cache_total",
            "Interest cloud cache lookups",
            ["result"],  # hit, miss
        )

        # Relevance
        self.relevance_scores = Histogram(
            "interest_engine_relevance_score",
            "Distribution of relevance match percentages",
            buckets=(0, 10, 20, 30, 45, 60, 75, 90, 100),
        )

        # Jobs
        self.stage_duration = Histogram(
            "interest_engine_stage_duration_seconds",
            "Analysis stage durations",
            ["stage", "item_type"],
            buckets=STAGE_DURATION_BUCKETS,
        )

        self.jobs = Counter(
            "interest_engine_jobs_total",
            "Analysis jobs by terminal status",
            ["status"],
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        port = port or get_settings().metrics_port
        start_http_server(port, registry=REGISTRY)
        logger.info(f"Prometheus metrics server started on port {port}")

    # Convenience methods

    def record_call(
        self,
        operation: str,
        outcome: str,
        latency: float | None = None,
    ) -> None:
        """Record the final outcome of a scheduled external call."""
        self.external_calls.labels(operation=operation, outcome=outcome).inc()
        if latency is not None:
            self.external_call_latency.labels(operation=operation).observe(latency)

    def record_retry(self, operation: str) -> None:
        self.external_retries.labels(operation=operation).inc()

    def set_scheduler_load(self, running: int, queued: int) -> None:
        self.scheduler_running.set(running)
        self.scheduler_queued.set(queued)

    def record_tag_upsert(self, outcome: str, count: int = 1) -> None:
        if count:
            self.tag_upserts.labels(outcome=outcome).inc(count)

    def record_tag_cache(self, hit: bool) -> None:
        self.tag_cache.labels(result="hit" if hit else "miss").inc()

    def record_relevance(self, match_percentage: int) -> None:
        self.relevance_scores.observe(match_percentage)

    def record_stage(self, stage: str, item_type: str, duration_ms: int) -> None:
        self.stage_duration.labels(stage=stage, item_type=item_type).observe(
            duration_ms / 1000.0
        )

    def record_job(self, status: str) -> None:
        self.jobs.labels(status=status).inc()


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
