"""
Data models for extraction requests, results and worker lifecycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

# Wire key -> attribute name, in the order the worker emits them.
PAYLOAD_FIELDS: Dict[str, str] = {
    "title": "title",
    "textContent": "text_content",
    "content": "content",
    "excerpt": "excerpt",
    "siteName": "site_name",
    "publishedTime": "published_time",
}


def _as_text(value: Any) -> str:
    """Resolve a loosely-typed wire value (str, number, null) to a string."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


@dataclass(slots=True, frozen=True)
class ExtractionRequest:
    """A single document submitted for extraction."""

    html_body: bytes
    document_url: str

    @classmethod
    def from_text(cls, html: str | bytes, document_url: str) -> ExtractionRequest:
        body = html.encode("utf-8") if isinstance(html, str) else bytes(html)
        return cls(html_body=body, document_url=document_url)


@dataclass(slots=True, frozen=True)
class ExtractionResult:
    """Article extracted by a backend.

    ``article_found`` is False for the explicit "no article" outcome, which
    is a valid answer rather than an error.
    """

    title: str = ""
    text_content: str = ""
    content: str = ""
    excerpt: str = ""
    site_name: str = ""
    published_time: str = ""
    article_found: bool = True

    @classmethod
    def no_article(cls) -> ExtractionResult:
        return cls(article_found=False)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ExtractionResult:
        """Build a result from the worker's JSON article object."""
        values = {attr: _as_text(payload.get(key)) for key, attr in PAYLOAD_FIELDS.items()}
        return cls(**values)

    def to_payload(self) -> Dict[str, str]:
        """Inverse of :meth:`from_payload`."""
        return {key: getattr(self, attr) for key, attr in PAYLOAD_FIELDS.items()}


class WorkerState(Enum):
    """Lifecycle of a supervised worker process."""

    NOT_STARTED = "not_started"
    STARTING = "starting"
    READY = "ready"
    CLOSING = "closing"
    CLOSED = "closed"


class ShutdownOutcome(Enum):
    """How a supervisor's close() concluded."""

    GRACEFUL = "graceful"  # exited after SIGTERM
    ALREADY_EXITED = "already_exited"  # gone before SIGTERM could be delivered
    KILLED = "killed"  # exited after SIGKILL escalation
    ALREADY_CLOSED = "already_closed"  # no-op


@dataclass(slots=True, frozen=True)
class WorkerHandle:
    """Snapshot of the worker owned by a supervisor."""

    pid: Optional[int]
    socket_path: Optional[Path]
    state: WorkerState
