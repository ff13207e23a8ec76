"""
Test configuration for CleanRead.

Provides short-lived socket directories, dummy worker launch scripts and
worker configurations tuned for fast test runs.
"""

# Standard library imports
import shlex
import sys
import tempfile
from pathlib import Path
from typing import Callable, Iterator
from uuid import uuid4

# Third-party imports
import pytest

# Local imports
from cleanread.config import WorkerConfig

SRC_DIR = Path(__file__).resolve().parent.parent / "src"

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests across modules")
    config.addinivalue_line("markers", "slow: Tests that take >10 seconds")


# ============================================================================
# Worker Fixtures
# ============================================================================


@pytest.fixture
def short_tmp() -> Iterator[Path]:
    """A temp directory with a short path; Unix socket paths are capped near 100 bytes."""
    with tempfile.TemporaryDirectory(prefix="cr-") as directory:
        yield Path(directory)


@pytest.fixture
def worker_script(short_tmp: Path) -> Callable[..., Path]:
    """Factory for executables that launch the dummy worker with the given flags.

    The supervisor appends ``--uds <path>`` when it runs the script.
    """

    def _make(*args: str) -> Path:
        script = short_tmp / f"worker-{uuid4().hex[:6]}.sh"
        flags = " ".join(shlex.quote(arg) for arg in args)
        script.write_text(
            "#!/bin/sh\n"
            f"PYTHONPATH={shlex.quote(str(SRC_DIR))}${{PYTHONPATH:+:$PYTHONPATH}}\n"
            "export PYTHONPATH\n"
            f'exec {shlex.quote(sys.executable)} -u -m cleanread.tests.dummy_worker {flags} "$@"\n'
        )
        script.chmod(0o755)
        return script

    return _make


@pytest.fixture
def worker_config(short_tmp: Path) -> WorkerConfig:
    """Worker settings with generous per-probe timeouts for slow CI interpreters."""
    return WorkerConfig(
        work_dir=short_tmp,
        startup_timeout=10.0,
        health_retry_interval=0.1,
        health_attempt_timeout=0.5,
        request_timeout=2.0,
        shutdown_timeout=2.0,
        kill_wait=2.0,
        startup_close_timeout=3.0,
    )
