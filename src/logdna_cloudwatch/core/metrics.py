"""
Prometheus metrics collection.

In-memory counters for decoded batches, delivered lines and delivery
attempts. Pass a dedicated CollectorRegistry to keep instances isolated.
"""

from typing import Optional

import structlog
from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram, Info

from .. import __version__

logger = structlog.get_logger(__name__)


class MetricsCollector:
    """Centralized metrics collection for the forwarder."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        self.registry = registry

        self.service_info = Info(
            "logdna_cloudwatch_service",
            "Forwarder service information",
            registry=registry,
        )
        self.service_info.info({
            "version": __version__,
            "service": "logdna-cloudwatch",
        })

        # Pipeline metrics
        self.batches_total = Counter(
            "cloudwatch_batches_total",
            "Total CloudWatch batches processed",
            ["outcome"],
            registry=registry,
        )

        self.batch_size_lines = Histogram(
            "cloudwatch_batch_size_lines",
            "Number of log lines per batch",
            buckets=[1, 5, 10, 25, 50, 100, 250, 500, 1000, 5000, 10000],
            registry=registry,
        )

        # Delivery metrics
        self.delivery_attempts_total = Counter(
            "logdna_delivery_attempts_total",
            "Total delivery attempts to the LogDNA ingestion endpoint",
            ["outcome"],
            registry=registry,
        )

        self.delivery_retries_total = Counter(
            "logdna_delivery_retries_total",
            "Total delivery retries",
            ["reason"],
            registry=registry,
        )

        self.lines_delivered_total = Counter(
            "logdna_lines_delivered_total",
            "Total log lines accepted by the ingestion endpoint",
            registry=registry,
        )

        self.delivery_duration = Histogram(
            "logdna_delivery_duration_seconds",
            "Ingestion request duration in seconds",
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=registry,
        )

        logger.debug("Metrics collector initialized")

    def record_batch(self, outcome: str, lines_count: int = 0) -> None:
        self.batches_total.labels(outcome=outcome).inc()
        if lines_count:
            self.batch_size_lines.observe(lines_count)

    def record_attempt(self, outcome: str, duration_seconds: Optional[float] = None) -> None:
        self.delivery_attempts_total.labels(outcome=outcome).inc()
        if duration_seconds is not None:
            self.delivery_duration.observe(duration_seconds)

    def record_retry(self, reason: str) -> None:
        self.delivery_retries_total.labels(reason=reason).inc()

    def record_delivered(self, lines_count: int) -> None:
        self.lines_delivered_total.inc(lines_count)


# Global collector instance
_metrics: Optional[MetricsCollector] = None


def get_metrics() -> MetricsCollector:
    """Get or create global metrics collector registered on the default registry."""
    global _metrics

    if _metrics is None:
        _metrics = MetricsCollector()

    return _metrics
