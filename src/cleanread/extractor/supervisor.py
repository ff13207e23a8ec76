"""
Lifecycle management for the out-of-process extraction worker.

The supervisor launches one worker listening on a private Unix socket, waits
for it to become healthy, serializes extraction requests over a single
connection and shuts it down with SIGTERM, escalating to SIGKILL.
"""

from __future__ import annotations

import asyncio
import os
import signal
import time
from pathlib import Path
from typing import Any, Dict, Optional, Set
from uuid import uuid4

import structlog

from cleanread.config.config import WorkerConfig
from cleanread.observability import gauge, histogram, increment, process_rss_bytes

from .errors import (
    ClosedError,
    HealthCheckError,
    InvalidInputError,
    ShutdownTimeoutError,
    StartupError,
    TransportError,
    UpstreamError,
)
from .health import HealthChecker
from .models import ExtractionResult, ShutdownOutcome, WorkerHandle, WorkerState
from .rpc_client import WorkerRPCClient

logger = structlog.get_logger(__name__)
worker_output = structlog.get_logger("cleanread.worker")


class ProcessSupervisor:
    """Owns exactly one extraction worker process and its socket.

    Usage::

        async with ProcessSupervisor(config) as supervisor:
            await supervisor.start(binary, work_dir)
            result = await supervisor.parse(html, url)
    """

    name = "worker"

    def __init__(self, config: Optional[WorkerConfig] = None, *, uid: Optional[str] = None) -> None:
        self.config = config or WorkerConfig()
        self.uid = uid or uuid4().hex[:12]
        self.socket_path: Optional[Path] = None

        self._state = WorkerState.NOT_STARTED
        self._process: Optional[asyncio.subprocess.Process] = None
        self._client: Optional[WorkerRPCClient] = None
        self._lock = asyncio.Lock()
        self._output_task: Optional[asyncio.Task[None]] = None
        # Exit waiters outlive close() when escalation times out.
        self._background: Set[asyncio.Future[Any]] = set()

    # --- Introspection ---

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def handle(self) -> WorkerHandle:
        pid = self._process.pid if self._process is not None else None
        return WorkerHandle(pid=pid, socket_path=self.socket_path, state=self._state)

    def stats(self) -> Dict[str, Any]:
        """Current worker pid, state, socket and resident memory."""
        handle = self.handle
        rss = process_rss_bytes(handle.pid) if handle.pid and self._state is WorkerState.READY else None
        if rss is not None:
            gauge("worker_rss_bytes", rss)
        return {
            "pid": handle.pid,
            "state": handle.state.value,
            "socket_path": str(handle.socket_path) if handle.socket_path else None,
            "rss_bytes": rss,
        }

    def _is_alive(self) -> bool:
        return self._process is not None and self._process.returncode is None

    # --- Startup ---

    async def start(
        self,
        binary_path: Path | str,
        work_dir: Path | str,
        *,
        timeout: Optional[float] = None,
    ) -> WorkerHandle:
        """Launch the worker and wait until it answers a health probe.

        Raises:
            StartupError: invalid paths, spawn failure, or already started
            HealthCheckError: the worker never became healthy; it has been shut down
            ClosedError: close() was called before the worker became ready
        """
        if self._state is not WorkerState.NOT_STARTED:
            raise StartupError(f"supervisor already started (state={self._state.value})")

        binary = Path(binary_path)
        directory = Path(work_dir)
        if not directory.is_dir():
            raise StartupError(f"work directory does not exist or is not a directory: {directory}")
        if not binary.exists():
            raise StartupError(f"worker binary not found: {binary}")

        self._state = WorkerState.STARTING
        self.socket_path = directory / f"{self.config.socket_prefix}-{self.uid}.sock"
        self._remove_socket(stale=True)

        try:
            self._process = await asyncio.create_subprocess_exec(
                str(binary),
                "--uds",
                str(self.socket_path),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE if self.config.forward_output else asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.STDOUT if self.config.forward_output else asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            self._state = WorkerState.CLOSED
            raise StartupError(f"failed to launch worker {binary}: {e}") from e

        log = logger.bind(pid=self._process.pid, socket=str(self.socket_path))
        if self.config.forward_output:
            self._output_task = asyncio.create_task(self._forward_output(self._process))
        else:
            log.warning("Worker output is not forwarded; worker logs are suppressed")
        log.info("Worker launched", binary=str(binary))

        self._client = WorkerRPCClient(self.socket_path, request_timeout=self.config.request_timeout)
        checker = HealthChecker(
            self._client.post_document,
            retry_interval=self.config.health_retry_interval,
            attempt_timeout=self.config.health_attempt_timeout,
        )

        try:
            elapsed = await checker.wait_until_ready(timeout or self.config.startup_timeout, is_alive=self._is_alive)
        except HealthCheckError as e:
            log.error("Worker failed health check", attempts=e.attempts, error=str(e.last_error))
            try:
                await self.close(timeout=self.config.startup_close_timeout)
            except ShutdownTimeoutError as close_error:
                log.error("Failed to stop unhealthy worker", error=str(close_error))
            raise

        # close() may have run while the health check was in flight.
        if self._state is not WorkerState.STARTING:
            log.warning("Worker closed during startup", state=self._state.value)
            raise ClosedError(f"worker was closed during startup (state={self._state.value})")

        histogram("worker_health_check_seconds", elapsed)
        self._state = WorkerState.READY
        log.info("Worker ready", startup_seconds=round(elapsed, 3))
        return self.handle

    async def _forward_output(self, process: asyncio.subprocess.Process) -> None:
        assert process.stdout is not None
        log = worker_output.bind(pid=process.pid)
        async for raw in process.stdout:
            line = raw.decode("utf-8", errors="replace").rstrip()
            if line:
                log.info(line)

    # --- Requests ---

    async def parse(
        self,
        html: str | bytes,
        document_url: str,
        *,
        timeout: Optional[float] = None,
    ) -> ExtractionResult:
        """Extract an article through the worker.

        One request is in flight at a time; concurrent callers queue on a lock.
        """
        if self._state is not WorkerState.READY:
            raise ClosedError(f"worker is not running (state={self._state.value})")

        async with self._lock:
            # close() may have begun while this call waited for the lock.
            if self._state is not WorkerState.READY or self._client is None:
                raise ClosedError(f"worker is not running (state={self._state.value})")

            started = time.monotonic()
            try:
                result = await self._client.post_document(html, document_url, timeout=timeout)
            except TransportError as e:
                increment("worker_requests", labels={"outcome": e.reason})
                raise
            except InvalidInputError:
                increment("worker_requests", labels={"outcome": "invalid"})
                raise
            except UpstreamError:
                increment("worker_requests", labels={"outcome": "upstream_error"})
                raise

            histogram("worker_request_seconds", time.monotonic() - started)
            increment("worker_requests", labels={"outcome": "ok" if result.article_found else "no_article"})
            return result

    # --- Shutdown ---

    async def close(self, timeout: Optional[float] = None) -> ShutdownOutcome:
        """Stop the worker: SIGTERM, then SIGKILL once ``timeout`` elapses.

        Safe to call more than once; later calls return ``ALREADY_CLOSED``.

        Raises:
            ShutdownTimeoutError: the process did not exit even after SIGKILL
        """
        if self._state in (WorkerState.CLOSING, WorkerState.CLOSED) or self._process is None:
            if self._state is WorkerState.NOT_STARTED:
                self._state = WorkerState.CLOSED
            return ShutdownOutcome.ALREADY_CLOSED

        self._state = WorkerState.CLOSING
        process = self._process
        log = logger.bind(pid=process.pid, socket=str(self.socket_path))
        grace = timeout if timeout is not None else self.config.shutdown_timeout
        outcome: Optional[ShutdownOutcome] = None

        wait_task = asyncio.ensure_future(process.wait())
        self._background.add(wait_task)
        wait_task.add_done_callback(self._background.discard)

        try:
            try:
                process.send_signal(signal.SIGTERM)
            except ProcessLookupError:
                done, _ = await asyncio.wait({wait_task}, timeout=self.config.kill_wait)
                if not done:
                    raise ShutdownTimeoutError("worker vanished but its exit was not observed", pid=process.pid)
                outcome = ShutdownOutcome.ALREADY_EXITED
                log.info("Worker had already exited", returncode=process.returncode)
                return outcome

            done, _ = await asyncio.wait({wait_task}, timeout=grace)
            if done:
                outcome = ShutdownOutcome.GRACEFUL
                log.info("Worker stopped gracefully", returncode=process.returncode)
                return outcome

            log.warning("Worker ignored SIGTERM, sending SIGKILL", grace=grace)
            try:
                process.kill()
            except ProcessLookupError:
                pass
            done, _ = await asyncio.wait({wait_task}, timeout=self.config.kill_wait)
            if not done:
                raise ShutdownTimeoutError(
                    f"worker did not exit within {self.config.kill_wait}s of SIGKILL", pid=process.pid
                )
            outcome = ShutdownOutcome.KILLED
            log.warning("Worker killed", returncode=process.returncode)
            return outcome
        finally:
            await self._release(log)
            increment("worker_shutdowns", labels={"outcome": outcome.value if outcome else "timeout"})

    async def _release(self, log: Any) -> None:
        if self._client is not None:
            await self._client.close()
        if self._output_task is not None and not self._output_task.done():
            self._output_task.cancel()
        self._remove_socket()
        self._state = WorkerState.CLOSED
        log.debug("Worker resources released")

    def _remove_socket(self, *, stale: bool = False) -> None:
        if self.socket_path is None:
            return
        try:
            os.unlink(self.socket_path)
        except FileNotFoundError:
            return
        except OSError as e:
            logger.warning("Failed to remove worker socket", socket=str(self.socket_path), error=str(e))
            return
        if stale:
            logger.debug("Removed stale worker socket", socket=str(self.socket_path))

    # --- Context manager ---

    async def __aenter__(self) -> "ProcessSupervisor":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        try:
            await self.close()
        except ShutdownTimeoutError as e:
            logger.error("Worker shutdown timed out", pid=e.pid)
