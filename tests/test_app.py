"""Tests for the pidcheck Textual application."""

import os
import threading

import pytest
from textual.widgets import DataTable

from pidcheck.app import PidcheckApp, SnapshotPanel, StrategyTable
from pidcheck.checker import STRATEGY_PROCESS, ProcessLivenessQuery
from pidcheck.models import QueryOutcome, QueryStatus


async def wait_for_checks(pilot) -> None:
    """Wait until the background check has finished and redrawn the widgets."""
    await pilot.app.workers.wait_for_complete()
    await pilot.pause()


@pytest.mark.asyncio
async def test_app_creation():
    """Test PidcheckApp can be instantiated."""
    app = PidcheckApp(os.getpid())
    assert app.title == "pidcheck"
    assert app.sub_title == f"Process ID {os.getpid()}"
    assert app.report is None


@pytest.mark.asyncio
async def test_app_compose():
    """Test PidcheckApp composes its widgets and runs the first check."""
    app = PidcheckApp(os.getpid())
    async with app.run_test() as pilot:
        await wait_for_checks(pilot)

        assert pilot.app.query_one("#snapshot", SnapshotPanel) is not None
        assert pilot.app.query_one(StrategyTable) is not None

        table = pilot.app.query_one("#strategy-table", DataTable)
        assert table.row_count == 3

        assert pilot.app.report is not None
        assert pilot.app.report.snapshot.is_running


@pytest.mark.asyncio
async def test_app_not_running(unused_pid):
    """Test the app reports a missing process without failing."""
    app = PidcheckApp(unused_pid)
    async with app.run_test() as pilot:
        await wait_for_checks(pilot)

        report = pilot.app.report
        assert report is not None
        assert not report.snapshot.is_running
        assert not any(outcome.is_running for outcome in report.outcomes)


@pytest.mark.asyncio
async def test_app_refresh_binding():
    """Test that 'r' runs a fresh query."""
    app = PidcheckApp(os.getpid())
    async with app.run_test() as pilot:
        await wait_for_checks(pilot)
        first = pilot.app.report
        assert first is not None

        await pilot.press("r")
        await wait_for_checks(pilot)

        assert pilot.app.report is not first
        assert pilot.app.report.outcomes[0].is_running
        assert pilot.app.query_one("#strategy-table", DataTable).row_count == 3


@pytest.mark.asyncio
async def test_app_quit_binding():
    """Test that 'q' binding triggers quit."""
    app = PidcheckApp(os.getpid())
    async with app.run_test() as pilot:
        await wait_for_checks(pilot)
        await pilot.press("q")
        assert pilot.app._exit


@pytest.mark.asyncio
async def test_strategy_table_replaces_rows():
    """Test updating the table replaces previous rows."""
    app = PidcheckApp(os.getpid())
    async with app.run_test() as pilot:
        await wait_for_checks(pilot)

        strategy_table = pilot.app.query_one(StrategyTable)
        strategy_table.update_outcomes(
            (QueryOutcome(STRATEGY_PROCESS, 1, QueryStatus.FAILED, reason="[boom]"),)
        )

        table = pilot.app.query_one("#strategy-table", DataTable)
        assert table.row_count == 1


def test_strategy_detail():
    """Test the detail column prefers the failure reason."""
    failed = QueryOutcome(STRATEGY_PROCESS, 1, QueryStatus.FAILED, reason="denied")
    missing = QueryOutcome(STRATEGY_PROCESS, 1, QueryStatus.NOT_FOUND)

    assert StrategyTable._detail(failed) == "denied"
    assert StrategyTable._detail(missing) == ""


@pytest.mark.asyncio
async def test_checks_run_off_the_ui_thread(monkeypatch):
    """Test the OS queries run in a worker thread, not on the event loop."""
    original = ProcessLivenessQuery.check_all
    threads: list[threading.Thread] = []

    def recording_check_all(self, pid):
        threads.append(threading.current_thread())
        return original(self, pid)

    monkeypatch.setattr(ProcessLivenessQuery, "check_all", recording_check_all)

    app = PidcheckApp(os.getpid())
    async with app.run_test() as pilot:
        await wait_for_checks(pilot)

        assert len(threads) == 1
        assert threads[0] is not threading.main_thread()
        assert pilot.app.report is not None
