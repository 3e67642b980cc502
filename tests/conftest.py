"""Shared fixtures for pidcheck tests."""

import subprocess
import sys

import psutil
import pytest

from pidcheck.handles import get_handle_backend


@pytest.fixture
def dead_pid() -> int:
    """Identifier of a child process that has already exited and been reaped."""
    proc = subprocess.Popen([sys.executable, "-c", "pass"])
    proc.wait()
    return proc.pid


@pytest.fixture
def unused_pid() -> int:
    """A large identifier that is not allocated to any process."""
    pid = 999999
    while psutil.pid_exists(pid):
        pid += 1
    return pid


@pytest.fixture
def messages() -> list[str]:
    """Collects lines written to the reporting channel."""
    return []


@pytest.fixture(autouse=True)
def fresh_handle_backend():
    """Re-run the native handle capability check for every test."""
    get_handle_backend.cache_clear()
    yield
    get_handle_backend.cache_clear()
