"""
Metrics for reconciliation and apply runs.

Tracks how records were classified, how writes went, and how the table
store responded, labelled by category/operation rather than table id to
keep cardinality bounded.
"""

import logging
from typing import Any

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

from . import get_or_create_metric

logger = logging.getLogger(__name__)


class SyncMetrics:
    """
    Metrics for Base table sync runs

    Args:
        registry: Custom Prometheus registry (default: global REGISTRY)
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or REGISTRY

        self.records_classified_total = self._counter(
            "reconciliation_records_classified_total",
            "Records classified by reconciliation, per category",
            ["category"],
        )
        self.reconciliation_duration_seconds = self._histogram(
            "reconciliation_duration_seconds",
            "Duration of in-memory reconciliation",
            buckets=(0.01, 0.05, 0.1, 0.5, 1, 5, 10, 30),
        )
        self.writes_total = self._counter(
            "apply_writes_total",
            "Record writes issued against the target table",
            ["operation", "status"],
        )
        self.apply_duration_seconds = self._histogram(
            "apply_duration_seconds",
            "Duration of apply runs",
            buckets=(1, 5, 10, 30, 60, 120, 300, 600, 1800),
        )
        self.store_requests_total = self._counter(
            "tablestore_requests_total",
            "Requests sent to the table store",
            ["operation", "status"],
        )
        self.transformation_errors_total = self._counter(
            "transformation_errors_total",
            "Field values dropped because they could not be coerced",
            ["field_type"],
        )

    def _counter(self, name: str, documentation: str, labels: list[str]) -> Counter:
        return get_or_create_metric(
            lambda: Counter(name, documentation, labels, registry=self.registry),
            name,
            self.registry,
        )

    def _histogram(self, name: str, documentation: str, buckets: tuple) -> Histogram:
        return get_or_create_metric(
            lambda: Histogram(name, documentation, buckets=buckets, registry=self.registry),
            name,
            self.registry,
        )

    def record_diff(self, counts: dict[str, int], duration: float) -> None:
        """
        Record the outcome of one reconciliation

        Args:
            counts: Category name -> number of entries
            duration: Reconciliation time in seconds
        """
        for category, count in counts.items():
            if count:
                self.records_classified_total.labels(category=category).inc(count)
        self.reconciliation_duration_seconds.observe(duration)

    def record_write(self, operation: str, success: bool) -> None:
        """
        Record a single create/update call

        Args:
            operation: "create" or "update"
            success: Whether the store accepted the write
        """
        self.writes_total.labels(
            operation=operation,
            status="success" if success else "failed",
        ).inc()

    def record_apply(self, duration: float) -> None:
        self.apply_duration_seconds.observe(duration)

    def record_request(self, operation: str, status: str) -> None:
        self.store_requests_total.labels(operation=operation, status=status).inc()

    def record_transformation_error(self, field_type: Any) -> None:
        self.transformation_errors_total.labels(field_type=str(field_type)).inc()


_default_metrics: SyncMetrics | None = None


def get_sync_metrics() -> SyncMetrics:
    """Return the process-wide SyncMetrics bound to the default registry."""
    global _default_metrics
    if _default_metrics is None:
        _default_metrics = SyncMetrics()
    return _default_metrics
