"""
Integration tests for ProcessSupervisor against real worker subprocesses.

Each test launches ``cleanread.tests.dummy_worker`` through a generated
wrapper script, so the full spawn / health check / RPC / shutdown path runs
over a real Unix socket.
"""

import asyncio
import time

import psutil
import pytest

from cleanread.extractor.errors import (
    ClosedError,
    HealthCheckError,
    InvalidInputError,
    StartupError,
    TransportError,
    UpstreamError,
)
from cleanread.extractor.models import ShutdownOutcome, WorkerState
from cleanread.extractor.supervisor import ProcessSupervisor
from cleanread.observability import METRICS
from tests.helpers import histogram_observes, metric_delta

URL = "https://stories.example/ch1"


def page(title):
    return f"<html><head><title>{title}</title></head><body><p>{title} body</p></body></html>"


def is_running(pid):
    try:
        return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False


def assert_process_gone(pid):
    assert not is_running(pid)


@pytest.mark.integration
class TestSupervisorLifecycle:
    @pytest.mark.asyncio
    async def test_start_parse_close(self, worker_script, worker_config, short_tmp):
        supervisor = ProcessSupervisor(worker_config)
        with histogram_observes(METRICS["worker_health_check_seconds"]):
            handle = await supervisor.start(worker_script(), short_tmp)

        assert handle.state is WorkerState.READY
        assert handle.pid is not None
        assert handle.socket_path.exists()
        assert supervisor.stats()["rss_bytes"] > 0

        html = page("Chapter One")
        result = await supervisor.parse(html, URL)
        assert result.article_found
        assert result.to_payload() == {
            "title": "Chapter One",
            "textContent": html,
            "content": f"<div>{html}</div>",
            "excerpt": URL,
            "siteName": "dummy",
            "publishedTime": "",
        }

        with metric_delta(METRICS["worker_shutdowns"].labels(outcome="graceful")):
            outcome = await supervisor.close()

        assert outcome is ShutdownOutcome.GRACEFUL
        assert supervisor.state is WorkerState.CLOSED
        assert not handle.socket_path.exists()
        assert_process_gone(handle.pid)

    @pytest.mark.asyncio
    async def test_worker_responses(self, worker_script, worker_config, short_tmp):
        async with ProcessSupervisor(worker_config) as supervisor:
            await supervisor.start(worker_script(), short_tmp)

            no_article = await supervisor.parse("<p>NO_ARTICLE</p>", URL)
            assert no_article.article_found is False

            with pytest.raises(UpstreamError) as exc_info:
                await supervisor.parse("<p>FAIL</p>", URL)
            assert exc_info.value.status == 500
            assert exc_info.value.details == "forced failure"

            with pytest.raises(UpstreamError) as exc_info:
                await supervisor.parse("<p>RAW_ERROR</p>", URL)
            assert exc_info.value.status == 502
            assert len(exc_info.value.message) == 203

            with pytest.raises(InvalidInputError):
                await supervisor.parse("", URL)

            # The worker is still usable after error responses.
            assert (await supervisor.parse(page("Still here"), URL)).title == "Still here"

        assert supervisor.state is WorkerState.CLOSED

    @pytest.mark.asyncio
    async def test_never_answering_worker(self, worker_script, worker_config, short_tmp):
        worker_config.startup_timeout = 1.0
        supervisor = ProcessSupervisor(worker_config)

        with pytest.raises(HealthCheckError) as exc_info:
            await supervisor.start(worker_script("--mode", "silent"), short_tmp)

        assert exc_info.value.worker_answered is False
        assert exc_info.value.attempts >= 1
        assert supervisor.state is WorkerState.CLOSED
        assert not supervisor.socket_path.exists()
        assert_process_gone(supervisor.handle.pid)

    @pytest.mark.asyncio
    async def test_sigterm_ignored_forces_kill(self, worker_script, worker_config, short_tmp):
        supervisor = ProcessSupervisor(worker_config)
        handle = await supervisor.start(worker_script("--ignore-sigterm"), short_tmp)

        with metric_delta(METRICS["worker_shutdowns"].labels(outcome="killed")):
            outcome = await supervisor.close(timeout=0.3)

        assert outcome is ShutdownOutcome.KILLED
        assert not handle.socket_path.exists()
        assert_process_gone(handle.pid)

    @pytest.mark.asyncio
    async def test_slow_shutdown_past_deadline_is_killed(self, worker_script, worker_config, short_tmp):
        supervisor = ProcessSupervisor(worker_config)
        handle = await supervisor.start(worker_script("--shutdown-delay", "5"), short_tmp)

        started = time.monotonic()
        outcome = await supervisor.close(timeout=0.3)

        assert outcome is ShutdownOutcome.KILLED
        assert time.monotonic() - started < 3.0
        assert not handle.socket_path.exists()

    @pytest.mark.asyncio
    async def test_slow_shutdown_within_deadline_is_graceful(self, worker_script, worker_config, short_tmp):
        supervisor = ProcessSupervisor(worker_config)
        await supervisor.start(worker_script("--shutdown-delay", "0.2"), short_tmp)

        assert await supervisor.close(timeout=3.0) is ShutdownOutcome.GRACEFUL

    @pytest.mark.asyncio
    async def test_worker_exits_on_its_own(self, worker_script, worker_config, short_tmp):
        supervisor = ProcessSupervisor(worker_config)
        handle = await supervisor.start(worker_script("--exit-after", "0.3"), short_tmp)

        deadline = time.monotonic() + 5.0
        while is_running(handle.pid):
            assert time.monotonic() < deadline, "worker did not exit"
            await asyncio.sleep(0.05)

        started = time.monotonic()
        outcome = await supervisor.close()

        assert outcome in (ShutdownOutcome.ALREADY_EXITED, ShutdownOutcome.GRACEFUL)
        assert time.monotonic() - started < worker_config.kill_wait
        assert not handle.socket_path.exists()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, worker_script, worker_config, short_tmp):
        supervisor = ProcessSupervisor(worker_config)
        await supervisor.start(worker_script(), short_tmp)

        assert await supervisor.close() is ShutdownOutcome.GRACEFUL
        assert await supervisor.close() is ShutdownOutcome.ALREADY_CLOSED

        with pytest.raises(ClosedError):
            await supervisor.parse(page("Late"), URL)

    @pytest.mark.asyncio
    async def test_parse_rejected_once_close_begins(self, worker_script, worker_config, short_tmp):
        supervisor = ProcessSupervisor(worker_config)
        await supervisor.start(worker_script(), short_tmp)

        closing = asyncio.create_task(supervisor.close())
        await asyncio.sleep(0)

        with pytest.raises(ClosedError):
            await supervisor.parse(page("Too late"), URL)
        assert await closing is ShutdownOutcome.GRACEFUL

    @pytest.mark.asyncio
    async def test_start_twice(self, worker_script, worker_config, short_tmp):
        async with ProcessSupervisor(worker_config) as supervisor:
            await supervisor.start(worker_script(), short_tmp)
            with pytest.raises(StartupError):
                await supervisor.start(worker_script(), short_tmp)


@pytest.mark.integration
class TestSupervisorRequests:
    @pytest.mark.asyncio
    async def test_concurrent_parses_never_overlap(self, worker_script, worker_config, short_tmp):
        async with ProcessSupervisor(worker_config) as supervisor:
            await supervisor.start(worker_script("--delay", "0.1"), short_tmp)

            titles = [f"Part {i}" for i in range(4)]
            results = await asyncio.gather(*(supervisor.parse(page(t), URL) for t in titles))

        # The dummy worker answers 500 whenever two requests overlap.
        assert [r.title for r in results] == titles

    @pytest.mark.asyncio
    async def test_request_timeout(self, worker_script, worker_config, short_tmp):
        async with ProcessSupervisor(worker_config) as supervisor:
            await supervisor.start(worker_script("--delay", "1.0"), short_tmp)

            with metric_delta(METRICS["worker_requests"].labels(outcome="timeout")):
                with pytest.raises(TransportError) as exc_info:
                    await supervisor.parse(page("Slow"), URL, timeout=0.2)

        assert exc_info.value.timed_out

    @pytest.mark.asyncio
    async def test_cancelled_parse_releases_lock(self, worker_script, worker_config, short_tmp):
        async with ProcessSupervisor(worker_config) as supervisor:
            await supervisor.start(worker_script("--delay", "1.0"), short_tmp)

            task = asyncio.create_task(supervisor.parse(page("Cancelled"), URL))
            await asyncio.sleep(0.2)
            task.cancel()

            with pytest.raises(asyncio.CancelledError):
                await task
            assert not supervisor._lock.locked()
