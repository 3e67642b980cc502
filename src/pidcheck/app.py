"""pidcheck - interactive Textual report."""

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Static

from pidcheck.checker import LivenessReport, ProcessLivenessQuery
from pidcheck.models import QueryOutcome, QueryStatus


class SnapshotPanel(Static):
    """Header widget showing the detailed process snapshot."""

    DEFAULT_CSS = """
    SnapshotPanel {
        height: auto;
        min-height: 6;
        padding: 1;
        background: $surface;
    }
    """

    def show_report(self, report: LivenessReport) -> None:
        """Render the snapshot from a liveness report."""
        self.update(Text(str(report.snapshot)))


class StrategyTable(Container):
    """Container for the per-strategy result table."""

    DEFAULT_CSS = """
    StrategyTable {
        height: auto;
        border: solid $primary;
    }
    """

    STATUS_STYLE = {
        QueryStatus.FOUND: "green",
        QueryStatus.NOT_FOUND: "yellow",
        QueryStatus.FAILED: "red",
        QueryStatus.UNSUPPORTED: "dim",
    }

    def compose(self) -> ComposeResult:
        """Compose the strategy table."""
        yield DataTable(id="strategy-table")

    def on_mount(self) -> None:
        """Initialize the data table columns."""
        table = self.query_one("#strategy-table", DataTable)
        table.cursor_type = "row"
        table.add_column("Strategy", key="strategy", width=20)
        table.add_column("Result", key="result", width=14)
        table.add_column("Detail", key="detail")

    def update_outcomes(self, outcomes: tuple[QueryOutcome, ...]) -> None:
        """Replace the table rows with fresh outcomes."""
        table = self.query_one("#strategy-table", DataTable)
        table.clear()
        for outcome in outcomes:
            style = self.STATUS_STYLE[outcome.status]
            table.add_row(
                outcome.strategy,
                Text(outcome.status.label, style=style),
                Text(self._detail(outcome)),
                key=outcome.strategy,
            )

    @staticmethod
    def _detail(outcome: QueryOutcome) -> str:
        if outcome.reason:
            return outcome.reason
        if outcome.records:
            record = outcome.records[0]
            return record.command_line or record.name or ""
        if outcome.snapshot is not None:
            return outcome.snapshot.process_path or outcome.snapshot.process_name or ""
        return ""


class PidcheckApp(App):
    """Interactive liveness report for one process identifier."""

    TITLE = "pidcheck"

    CSS = """
    Screen {
        layout: vertical;
    }

    #messages {
        height: 1fr;
        padding: 0 1;
        color: $text-muted;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "recheck", "Re-check"),
    ]

    def __init__(self, pid: int) -> None:
        """Initialize the PidcheckApp for a process identifier."""
        super().__init__()
        self.pid = pid
        self.sub_title = f"Process ID {pid}"
        self.report: LivenessReport | None = None

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield SnapshotPanel("Checking...", id="snapshot")
        yield StrategyTable()
        yield Static(id="messages")
        yield Footer()

    def on_mount(self) -> None:
        """Run the first check when the app is mounted."""
        self.action_recheck()

    def action_recheck(self) -> None:
        """Query the OS again in a background thread."""
        self.run_worker(self._run_checks, thread=True, exclusive=True, group="checks")

    def _run_checks(self) -> None:
        """Run every strategy off the UI thread and hand the result back."""
        messages: list[str] = []
        report = ProcessLivenessQuery(report=messages.append).check_all(self.pid)
        self.call_from_thread(self._show_report, report, messages)

    def _show_report(self, report: LivenessReport, messages: list[str]) -> None:
        """Redraw every widget from a finished report."""
        self.report = report
        self.query_one("#snapshot", SnapshotPanel).show_report(report)
        self.query_one(StrategyTable).update_outcomes(report.outcomes)
        self.query_one("#messages", Static).update(Text("\n".join(messages)))
