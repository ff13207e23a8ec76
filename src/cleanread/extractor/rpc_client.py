"""
HTTP-over-Unix-socket client for the extraction worker.
"""

from __future__ import annotations

import asyncio
import json
from http import HTTPStatus
from pathlib import Path
from typing import Any, Optional

import aiohttp
import async_timeout
import structlog

from .errors import InvalidInputError, TransportError, UpstreamError
from .models import ExtractionResult

logger = structlog.get_logger(__name__)

# Host and path are ignored by the worker; only the socket matters.
WORKER_ENDPOINT = "http://localhost/"

MAX_ERROR_BODY = 200


def _status_text(status: int, reason: Optional[str]) -> str:
    if reason:
        return reason
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return f"HTTP {status}"


def _error_fields(body: bytes) -> Optional[tuple[str, str]]:
    try:
        data: Any = json.loads(body)
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(data, dict) or not data.get("error"):
        return None
    details = data.get("details")
    return str(data["error"]), str(details) if details else ""


def interpret_response(status: int, reason: Optional[str], body: bytes) -> ExtractionResult:
    """Map a worker response onto a result or a typed error.

    Raises:
        InvalidInputError: the worker rejected the request (400)
        UpstreamError: any other failure status, or an unreadable 200 body
    """
    if status == 200:
        try:
            data: Any = json.loads(body)
        except (ValueError, UnicodeDecodeError) as e:
            raise UpstreamError(200, "malformed response from worker", str(e)) from e
        if data is None:
            return ExtractionResult.no_article()
        if not isinstance(data, dict):
            raise UpstreamError(200, "unexpected response shape from worker", type(data).__name__)
        return ExtractionResult.from_payload(data)

    fields = _error_fields(body)
    if status == 400:
        raise InvalidInputError(fields[0] if fields else _status_text(status, reason))
    if fields:
        raise UpstreamError(status, fields[0], fields[1])

    text = body.decode("utf-8", errors="replace").strip()
    if len(text) > MAX_ERROR_BODY:
        text = text[:MAX_ERROR_BODY] + "..."
    raise UpstreamError(status, text or _status_text(status, reason))


class WorkerRPCClient:
    """Posts documents to the worker over its Unix socket.

    The connector is capped at a single connection; callers are expected to
    serialize requests (the supervisor holds a lock around each call).
    """

    def __init__(self, socket_path: Path, *, request_timeout: float = 2.0) -> None:
        self.socket_path = Path(socket_path)
        self.request_timeout = request_timeout
        self._session: Optional[aiohttp.ClientSession] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _get_session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise TransportError("client is closed", reason="cancelled")
        if self._session is None:
            connector = aiohttp.UnixConnector(path=str(self.socket_path), limit=1)
            self._session = aiohttp.ClientSession(connector=connector)
        return self._session

    async def post_document(
        self,
        html: str | bytes,
        document_url: str,
        *,
        timeout: Optional[float] = None,
    ) -> ExtractionResult:
        """Send one document and interpret the worker's answer."""
        body = html.encode("utf-8") if isinstance(html, str) else html
        headers = {
            "X-Document-URL": document_url,
            "Content-Type": "text/html; charset=utf-8",
        }
        deadline = timeout if timeout is not None else self.request_timeout
        session = self._get_session()

        try:
            async with async_timeout.timeout(deadline):
                async with session.post(WORKER_ENDPOINT, data=body, headers=headers) as response:
                    payload = await response.read()
                    status, reason = response.status, response.reason
        except asyncio.TimeoutError as e:
            raise TransportError(f"worker request timed out after {deadline}s", reason="timeout") from e
        except (aiohttp.ClientError, RuntimeError) as e:
            # A session closed underneath an in-flight request surfaces as either.
            if self._closed:
                raise TransportError("worker request aborted by shutdown", reason="cancelled") from e
            if isinstance(e, RuntimeError):
                raise
            raise TransportError(f"worker connection failed: {e}", reason="connection") from e

        return interpret_response(status, reason, payload)

    async def close(self) -> None:
        self._closed = True
        if self._session is not None:
            session, self._session = self._session, None
            await session.close()
            logger.debug("Worker RPC session closed", socket=str(self.socket_path))
