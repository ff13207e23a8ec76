"""
Error taxonomy for the extraction subsystem.

Every failure surfaced by the supervisor, its RPC client and the assembler
derives from :class:`CleanReadError` so callers can catch the whole family
at one seam.
"""

from __future__ import annotations

from typing import Literal, Optional

TransportReason = Literal["timeout", "cancelled", "connection"]


class CleanReadError(Exception):
    """Base class for all extraction subsystem errors."""


class StartupError(CleanReadError):
    """Raised when the worker cannot be launched (bad paths, spawn failure)."""


class HealthCheckError(CleanReadError):
    """Raised when no health probe succeeded before the startup deadline."""

    def __init__(self, message: str, *, last_error: Optional[BaseException] = None, attempts: int = 0) -> None:
        super().__init__(message)
        self.last_error = last_error
        self.attempts = attempts

    @property
    def worker_answered(self) -> bool:
        """True when the worker responded at least once, just not successfully."""
        return self.last_error is not None and not isinstance(self.last_error, TransportError)


class TransportError(CleanReadError):
    """Raised when a request could not complete over the local socket."""

    def __init__(self, message: str, *, reason: TransportReason = "connection") -> None:
        super().__init__(message)
        self.reason = reason

    @property
    def timed_out(self) -> bool:
        return self.reason == "timeout"

    @property
    def cancelled(self) -> bool:
        return self.reason == "cancelled"


class UpstreamError(CleanReadError):
    """The worker answered with a failure status."""

    def __init__(self, status: int, message: str, details: str = "") -> None:
        self.status = status
        self.message = message
        self.details = details
        suffix = f" ({details})" if details else ""
        super().__init__(f"worker returned status {status}: {message}{suffix}")


class InvalidInputError(CleanReadError):
    """The request was rejected as invalid (empty body, malformed URL)."""


class ClosedError(CleanReadError):
    """An operation was attempted on a supervisor that is not running."""


class ShutdownTimeoutError(CleanReadError):
    """Neither graceful nor forced termination was confirmed in time."""

    def __init__(self, message: str, *, pid: Optional[int] = None) -> None:
        super().__init__(message)
        self.pid = pid


class FetchError(CleanReadError):
    """Fetching a source document over HTTP failed."""

    def __init__(self, url: str, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(f"failed to fetch {url}: {message}")
        self.url = url
        self.status = status
