"""Data models for pidcheck."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum


def format_megabytes(size: int) -> str:
    """Format a byte count as megabytes with two decimals."""
    return f"{size / (1024 * 1024):.2f} MB"


@dataclass(slots=True, frozen=True)
class ProcessSnapshot:
    """Immutable snapshot of a process state at query time."""

    pid: int
    is_running: bool
    process_name: str | None = None
    process_path: str | None = None
    start_time: datetime | None = None
    cpu_time: timedelta | None = None  # user + system
    memory_usage_bytes: int | None = None  # RSS / working set

    @classmethod
    def not_running(cls, pid: int) -> "ProcessSnapshot":
        """Build the snapshot for a process that does not exist or has exited."""
        return cls(pid=pid, is_running=False)

    def __str__(self) -> str:
        if not self.is_running:
            return f"Process ID {self.pid} is not running"

        memory = (
            format_megabytes(self.memory_usage_bytes)
            if self.memory_usage_bytes is not None
            else "N/A"
        )
        return (
            f"Process: {self.process_name or 'N/A'} (ID: {self.pid})\n"
            f"Path: {self.process_path or 'N/A'}\n"
            f"Start Time: {self.start_time if self.start_time is not None else 'N/A'}\n"
            f"CPU Time: {self.cpu_time if self.cpu_time is not None else 'N/A'}\n"
            f"Memory: {memory}"
        )


@dataclass(slots=True, frozen=True)
class ManagementRecord:
    """One process record returned by the management-service query."""

    pid: int
    name: str | None
    command_line: str | None
    creation_date: datetime | None


class QueryStatus(Enum):
    """Outcome of a single liveness query."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"
    UNSUPPORTED = "unsupported"

    @property
    def label(self) -> str:
        """Summary label shown in reports."""
        return {
            QueryStatus.FOUND: "RUNNING",
            QueryStatus.NOT_FOUND: "NOT RUNNING",
            QueryStatus.FAILED: "ERROR",
            QueryStatus.UNSUPPORTED: "UNSUPPORTED",
        }[self]


@dataclass(slots=True, frozen=True)
class QueryOutcome:
    """
    Tagged result of one query strategy.

    ``snapshot`` is set by the primary lookup, ``records`` by the
    management-service lookup and ``reason`` carries the failure text for
    FAILED and UNSUPPORTED outcomes.
    """

    strategy: str
    pid: int
    status: QueryStatus
    snapshot: ProcessSnapshot | None = None
    records: tuple[ManagementRecord, ...] = field(default_factory=tuple)
    reason: str = ""

    @property
    def is_running(self) -> bool:
        """True only when the process was found alive."""
        return self.status is QueryStatus.FOUND

    @property
    def executed(self) -> bool:
        """True when the strategy actually got an answer from the OS."""
        return self.status in (QueryStatus.FOUND, QueryStatus.NOT_FOUND)
