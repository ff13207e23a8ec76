"""Logging and metrics for CleanRead."""

from __future__ import annotations

from typing import Any, Dict, Optional

from .logging import configure_logging
from .metrics import METRICS, MetricsManager, process_rss_bytes

__all__ = ["configure_logging", "MetricsManager", "METRICS", "increment", "gauge", "histogram", "process_rss_bytes"]


# Convenience functions for metrics
def increment(name: str, value: float = 1.0, labels: Optional[Dict[str, Any]] = None) -> None:
    """Increment a counter metric."""
    if name in METRICS:
        metric = METRICS[name]
        if labels is not None:
            metric.labels(**labels).inc(value)
        else:
            metric.inc(value)


def gauge(name: str, value: float, labels: Optional[Dict[str, Any]] = None) -> None:
    """Set a gauge metric."""
    if name in METRICS:
        metric = METRICS[name]
        if labels is not None:
            metric.labels(**labels).set(value)
        else:
            metric.set(value)


def histogram(name: str, value: float, labels: Optional[Dict[str, Any]] = None) -> None:
    """Observe a histogram metric."""
    if name in METRICS:
        metric = METRICS[name]
        if labels is not None:
            metric.labels(**labels).observe(value)
        else:
            metric.observe(value)
