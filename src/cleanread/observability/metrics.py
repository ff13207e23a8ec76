"""
Defines and manages Prometheus metrics for the application.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

import psutil
from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Gauge as _OrigGauge
from prometheus_client import Histogram as _OrigHistogram
from prometheus_client import start_http_server

if TYPE_CHECKING:
    from cleanread.config.config import MonitoringConfig

# ---------------------------------------------------------------------------
# Duplicate-safe Prometheus metric wrappers
# ---------------------------------------------------------------------------
# The module may be imported more than once under the test runner; reuse a
# collector already present in the registry instead of failing registration.


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):  # type: ignore[override]
        existing = _PROM_REGISTRY._names_to_collectors.get(name)
        if existing is not None:
            return existing  # type: ignore[return-value]

        try:
            return metric_cls(name, documentation, *args, **kwargs)  # type: ignore[call-arg]
        except ValueError:
            # Registration lost the race, fall back to the now-existing collector.
            return _PROM_REGISTRY._names_to_collectors[name]  # type: ignore[return-value]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)  # type: ignore[assignment]
Gauge = _duplicate_safe_factory(_OrigGauge)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]


def _create_metrics() -> Dict[str, Any]:
    return {
        "worker_requests": Counter(
            "cleanread_worker_requests_total",
            "Extraction requests sent to the worker, by outcome",
            ["outcome"],
        ),
        "worker_request_seconds": Histogram(
            "cleanread_worker_request_seconds",
            "Round-trip time of extraction requests to the worker",
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
        ),
        "worker_health_check_seconds": Histogram(
            "cleanread_worker_health_check_seconds",
            "Time from worker spawn until the first successful health probe",
            buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0],
        ),
        "worker_shutdowns": Counter(
            "cleanread_worker_shutdowns_total",
            "Worker shutdowns, by how they concluded",
            ["outcome"],
        ),
        "worker_rss_bytes": Gauge(
            "cleanread_worker_rss_bytes",
            "Resident memory of the supervised worker process",
        ),
        "nav_links_found": Counter(
            "cleanread_nav_links_found_total",
            "Navigation links selected by the inference engine",
            ["direction"],
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()


def process_rss_bytes(pid: int) -> Optional[int]:
    """Resident set size of a process, or None if it is gone."""
    try:
        return psutil.Process(pid).memory_info().rss
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return None


class MetricsManager:
    """Manages the lifecycle of metrics exporting."""

    def __init__(self, config: MonitoringConfig) -> None:
        self.config = config
        self._started = False

    def start(self) -> None:
        """Starts the Prometheus server if a port is configured."""
        if self.config.prometheus_port and not self._started:
            start_http_server(self.config.prometheus_port)
            self._started = True

    @property
    def started(self) -> bool:
        return self._started
