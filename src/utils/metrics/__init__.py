"""
Prometheus metrics for Base table sync

Usage:
    from utils.metrics import get_sync_metrics

    metrics = get_sync_metrics()
    metrics.record_diff(diff.counts(), duration)
    metrics.record_write("create", success=True)

Expose them with ``prometheus_client.start_http_server`` when running as a
long-lived service; the CLI leaves them in the default registry.
"""

import logging
from collections.abc import Callable
from typing import TypeVar

from prometheus_client import REGISTRY, CollectorRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_or_create_metric(
    metric_factory: Callable[[], T],
    metric_name: str,
    registry: CollectorRegistry = REGISTRY,
) -> T:
    """
    Create a metric, or return the already-registered one on re-import.

    Args:
        metric_factory: Callable that creates the metric (e.g., lambda: Counter(...))
        metric_name: Name of the metric for lookup if already registered
        registry: Prometheus registry to use (default: global REGISTRY)

    Returns:
        The metric instance (either newly created or existing)

    Example:
        WRITES_TOTAL = get_or_create_metric(
            lambda: Counter("apply_writes_total", "Writes", ["operation"]),
            "apply_writes_total"
        )
    """
    try:
        return metric_factory()
    except ValueError:
        existing = registry._names_to_collectors.get(metric_name)
        if existing is not None:
            return existing
        raise


from .sync import SyncMetrics, get_sync_metrics  # noqa: E402

__all__ = [
    "SyncMetrics",
    "get_sync_metrics",
    "get_or_create_metric",
]
