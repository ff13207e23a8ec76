"""
CleanRead article extraction.

Articles are extracted by a pluggable backend:
1. ProcessSupervisor: a supervised worker process reached over a Unix socket
2. ReadabilityBackend: readability-lxml running in-process

Features:
- Health-checked worker startup with bounded retries
- One connection, one in-flight request per worker
- Two-stage shutdown (SIGTERM, then SIGKILL) that always removes the socket
- Typed errors for startup, transport, upstream and shutdown failures
"""

from .errors import (
    CleanReadError,
    ClosedError,
    FetchError,
    HealthCheckError,
    InvalidInputError,
    ShutdownTimeoutError,
    StartupError,
    TransportError,
    UpstreamError,
)
from .health import HealthChecker
from .models import ExtractionRequest, ExtractionResult, ShutdownOutcome, WorkerHandle, WorkerState
from .protocols import ExtractionBackend
from .readability_backend import ReadabilityBackend, extract_article
from .rpc_client import WorkerRPCClient, interpret_response
from .supervisor import ProcessSupervisor

__all__ = [
    "CleanReadError",
    "ClosedError",
    "FetchError",
    "HealthCheckError",
    "InvalidInputError",
    "ShutdownTimeoutError",
    "StartupError",
    "TransportError",
    "UpstreamError",
    "HealthChecker",
    "ExtractionRequest",
    "ExtractionResult",
    "ShutdownOutcome",
    "WorkerHandle",
    "WorkerState",
    "ExtractionBackend",
    "ReadabilityBackend",
    "extract_article",
    "WorkerRPCClient",
    "interpret_response",
    "ProcessSupervisor",
]
