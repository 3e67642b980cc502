"""Command line entry point for pidcheck."""

import logging
import os
import sys
from importlib.metadata import PackageNotFoundError, version

import click

from pidcheck.checker import LivenessReport, ProcessLivenessQuery

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]

METHODS = [
    ("Method 1: Process table lookup", "lookup_by_handle"),
    ("Method 2: Native process handle", "lookup_by_open_handle"),
    ("Method 3: Process inventory query", "lookup_by_management_service"),
]


def _package_version() -> str:
    try:
        return version("pidcheck")
    except PackageNotFoundError:
        return "unknown"


def resolve_pid(value: str | None) -> tuple[int, bool]:
    """
    Parse the PID argument.

    Returns the identifier and whether it came from the argument. Missing or
    unparseable input falls back to the current process.
    """
    if value is not None:
        try:
            return int(value.strip()), True
        except ValueError:
            pass
    return os.getpid(), False


def run_checks(query: ProcessLivenessQuery, pid: int) -> LivenessReport:
    """Run the strategies in order, printing a section header before each one."""
    outcomes = []
    for title, method in METHODS:
        click.echo()
        click.secho(title, bold=True)
        outcomes.append(getattr(query, method)(pid))

    click.echo()
    click.secho("Method 4: Detailed process info", bold=True)
    snapshot = query.get_snapshot(pid)
    click.echo(str(snapshot))

    return LivenessReport(pid=pid, outcomes=tuple(outcomes), snapshot=snapshot)


def print_summary(report: LivenessReport) -> None:
    click.echo()
    click.secho("Summary:", bold=True)
    for outcome in report.outcomes:
        colour = {"RUNNING": "green", "NOT RUNNING": "yellow"}.get(outcome.status.label, "red")
        click.echo(f"{outcome.strategy} Result: {click.style(outcome.status.label, fg=colour)}")


@click.command()
@click.argument("pid", required=False)
@click.option("--tui", is_flag=True, help="Show the report in an interactive window")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    envvar="PIDCHECK_LOG_LEVEL",
    show_default=True,
    help="Log level for diagnostics written to stderr",
)
@click.version_option(_package_version(), prog_name="pidcheck")
def cli(pid: str | None, tui: bool, log_level: str) -> None:
    """Check whether process PID is running (defaults to this process)."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    target, explicit = resolve_pid(pid)

    if tui:
        from pidcheck.app import PidcheckApp

        PidcheckApp(target).run()
        return

    click.secho("Process ID Checker", bold=True)
    click.echo("=" * 50)
    if explicit:
        click.echo(f"Checking Process ID: {target}")
    else:
        if pid is not None:
            click.echo(f"Could not parse process ID {pid!r}.")
        click.echo(f"No process ID provided. Using current process ID: {target}")

    report = run_checks(ProcessLivenessQuery(report=click.echo), target)
    print_summary(report)

    if not report.executed:
        raise click.ClickException("no query strategy could be executed on this platform")


def main() -> None:
    """Entry point for the pidcheck command."""
    cli()


if __name__ == "__main__":
    main()
