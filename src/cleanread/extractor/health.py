"""
Startup readiness probing for the extraction worker.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional, Protocol

import structlog

from .errors import CleanReadError, HealthCheckError
from .models import ExtractionResult

logger = structlog.get_logger(__name__)

HEALTH_CHECK_HTML = "<html><body>health check</body></html>"
HEALTH_CHECK_URL = "http://health.check/local"


class Probe(Protocol):
    def __call__(self, html: str, document_url: str, *, timeout: Optional[float] = None) -> Awaitable[ExtractionResult]:
        ...


class HealthChecker:
    """Polls the worker with a fixed document until it answers or a deadline passes.

    Any well-formed answer, including "no article", counts as ready.
    """

    def __init__(self, probe: Probe, *, retry_interval: float = 0.2, attempt_timeout: float = 0.1) -> None:
        self.probe = probe
        self.retry_interval = retry_interval
        self.attempt_timeout = attempt_timeout

    async def wait_until_ready(self, deadline: float, *, is_alive: Optional[Callable[[], bool]] = None) -> float:
        """Block until a probe succeeds.

        Args:
            deadline: Overall budget in seconds
            is_alive: Optional liveness check; a dead worker ends probing early

        Returns:
            Seconds elapsed until the worker answered

        Raises:
            HealthCheckError: the deadline elapsed or the worker exited
        """
        started = time.monotonic()
        attempts = 0
        last_error: Optional[CleanReadError] = None

        while True:
            remaining = deadline - (time.monotonic() - started)
            if remaining <= 0:
                break

            attempts += 1
            try:
                await self.probe(HEALTH_CHECK_HTML, HEALTH_CHECK_URL, timeout=min(self.attempt_timeout, remaining))
            except CleanReadError as e:
                last_error = e
                logger.debug("Health probe failed", attempt=attempts, error=str(e))
            else:
                elapsed = time.monotonic() - started
                logger.debug("Worker is healthy", attempts=attempts, elapsed=round(elapsed, 3))
                return elapsed

            if is_alive is not None and not is_alive():
                raise HealthCheckError(
                    f"worker exited during startup after {attempts} health probe(s)",
                    last_error=last_error,
                    attempts=attempts,
                ) from last_error

            remaining = deadline - (time.monotonic() - started)
            if remaining <= 0:
                break
            await asyncio.sleep(min(self.retry_interval, remaining))

        raise HealthCheckError(
            f"worker not healthy after {deadline}s ({attempts} attempts): {last_error}",
            last_error=last_error,
            attempts=attempts,
        ) from last_error
