"""Process liveness queries for pidcheck."""

import logging
from collections.abc import Callable
from contextlib import closing
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import psutil

from pidcheck.handles import HandleBackend, get_handle_backend
from pidcheck.models import (
    ManagementRecord,
    ProcessSnapshot,
    QueryOutcome,
    QueryStatus,
    format_megabytes,
)

log = logging.getLogger(__name__)

STRATEGY_PROCESS = "Process lookup"
STRATEGY_HANDLE = "Native handle"
STRATEGY_INVENTORY = "Process inventory"

Reporter = Callable[[str], None]


def _log_report(message: str) -> None:
    log.info(message)


def _from_timestamp(value: float | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc).astimezone()


def _optional(getter: Callable[[], object]) -> object | None:
    """Call a psutil getter, returning None when access is denied."""
    try:
        return getter()
    except psutil.AccessDenied:
        return None


@dataclass(slots=True, frozen=True)
class LivenessReport:
    """Results of all three strategies plus the snapshot for one identifier."""

    pid: int
    outcomes: tuple[QueryOutcome, ...]
    snapshot: ProcessSnapshot

    @property
    def executed(self) -> bool:
        """True when at least one strategy got an answer from the OS."""
        return any(outcome.executed for outcome in self.outcomes)


class ProcessLivenessQuery:
    """
    Answers "is process P running?" three independent ways.

    Holds no state besides the reporting channel, so one instance may be shared
    between threads. Every public method returns a value and never raises:
    missing processes, permission problems and platform failures are all
    folded into the result and described on the reporting channel.
    """

    def __init__(
        self,
        report: Reporter | None = None,
        handle_backend: HandleBackend | None = None,
    ) -> None:
        """
        Initialize the query service.

        Args:
            report: Callable receiving one human-readable line at a time.
                Defaults to the module logger at INFO level.
            handle_backend: Native handle backend override. Defaults to the
                one detected for the running platform.
        """
        self._report = report or _log_report
        self._handle_backend = handle_backend

    # Primary process-table lookup

    def _lookup_process(self, pid: int) -> QueryOutcome:
        """Query the process table without reporting anything."""
        if pid < 0:
            return QueryOutcome(STRATEGY_PROCESS, pid, QueryStatus.NOT_FOUND)

        try:
            proc = psutil.Process(pid)
            with proc.oneshot():
                if not proc.is_running() or _optional(proc.status) == psutil.STATUS_ZOMBIE:
                    return QueryOutcome(STRATEGY_PROCESS, pid, QueryStatus.NOT_FOUND)

                cpu_times = _optional(proc.cpu_times)
                mem_info = _optional(proc.memory_info)
                snapshot = ProcessSnapshot(
                    pid=pid,
                    is_running=True,
                    process_name=_optional(proc.name) or None,
                    # Kernel threads report an empty executable path
                    process_path=_optional(proc.exe) or None,
                    start_time=_from_timestamp(_optional(proc.create_time)),
                    cpu_time=(
                        timedelta(seconds=cpu_times.user + cpu_times.system)
                        if cpu_times is not None
                        else None
                    ),
                    memory_usage_bytes=mem_info.rss if mem_info is not None else None,
                )
        except psutil.NoSuchProcess:
            return QueryOutcome(STRATEGY_PROCESS, pid, QueryStatus.NOT_FOUND)
        except Exception as exc:
            log.warning("Process lookup for %d failed: %s", pid, exc)
            return QueryOutcome(STRATEGY_PROCESS, pid, QueryStatus.FAILED, reason=str(exc))

        return QueryOutcome(STRATEGY_PROCESS, pid, QueryStatus.FOUND, snapshot=snapshot)

    def lookup_by_handle(self, pid: int) -> QueryOutcome:
        """Look the identifier up in the process table and report what was found."""
        outcome = self._lookup_process(pid)

        if outcome.status is QueryStatus.FOUND:
            snapshot = outcome.snapshot
            self._report(f"Process ID {pid} is RUNNING")
            self._report(f"Process Name: {snapshot.process_name or 'N/A'}")
            self._report(f"Process Path: {snapshot.process_path or 'N/A'}")
            self._report(f"Start Time: {snapshot.start_time or 'N/A'}")
            cpu_time = snapshot.cpu_time if snapshot.cpu_time is not None else "N/A"
            self._report(f"CPU Time: {cpu_time}")
            if snapshot.memory_usage_bytes is not None:
                self._report(f"Memory Usage: {format_megabytes(snapshot.memory_usage_bytes)}")
            else:
                self._report("Memory Usage: N/A")
        elif outcome.status is QueryStatus.NOT_FOUND:
            self._report(f"Process ID {pid} is NOT RUNNING (Process not found)")
        else:
            self._report(f"Error checking process: {outcome.reason}")

        return outcome

    def query_by_handle(self, pid: int) -> bool:
        """Return True if the process table holds a live process with this identifier."""
        return self.lookup_by_handle(pid).is_running

    # Native handle

    def lookup_by_open_handle(self, pid: int) -> QueryOutcome:
        """Open and immediately release a query-only native handle to the process."""
        backend = self._handle_backend or get_handle_backend()
        if backend is None:
            self._report("Native process handles are not supported on this platform")
            return QueryOutcome(
                STRATEGY_HANDLE,
                pid,
                QueryStatus.UNSUPPORTED,
                reason="no native handle API on this platform",
            )

        try:
            with backend.opened(pid):
                log.debug("Opened %s handle for %d", backend.name, pid)
        except ProcessLookupError:
            self._report(f"Process ID {pid} is NOT RUNNING ({backend.name})")
            return QueryOutcome(STRATEGY_HANDLE, pid, QueryStatus.NOT_FOUND)
        except Exception as exc:
            log.warning("%s for %d failed: %s", backend.name, pid, exc)
            self._report(f"API Error: {exc}")
            return QueryOutcome(STRATEGY_HANDLE, pid, QueryStatus.FAILED, reason=str(exc))

        self._report(f"Process ID {pid} is RUNNING ({backend.name})")
        return QueryOutcome(STRATEGY_HANDLE, pid, QueryStatus.FOUND)

    def query_by_open_handle(self, pid: int) -> bool:
        """Return True if a native query handle to the process could be opened."""
        return self.lookup_by_open_handle(pid).is_running

    # Process inventory

    def _inventory_records(self, pid: int) -> list[ManagementRecord]:
        attrs = ["name", "cmdline", "create_time"]
        records: list[ManagementRecord] = []

        with closing(psutil.process_iter()) as procs:
            for proc in procs:
                if proc.pid != pid:
                    continue
                try:
                    info = proc.as_dict(attrs=attrs, ad_value=None)
                except psutil.NoSuchProcess:
                    # Exited while being enumerated
                    continue
                cmdline = info.get("cmdline")
                records.append(
                    ManagementRecord(
                        pid=proc.pid,
                        name=info.get("name"),
                        command_line=" ".join(cmdline) if cmdline else None,
                        creation_date=_from_timestamp(info.get("create_time")),
                    )
                )

        return records

    def lookup_by_management_service(self, pid: int) -> QueryOutcome:
        """Enumerate the process inventory for records matching the identifier."""
        try:
            records = self._inventory_records(pid)
        except Exception as exc:
            log.warning("Process inventory query for %d failed: %s", pid, exc)
            self._report(f"Inventory Error: {exc}")
            return QueryOutcome(STRATEGY_INVENTORY, pid, QueryStatus.FAILED, reason=str(exc))

        if not records:
            self._report(f"Process ID {pid} is NOT RUNNING (inventory)")
            return QueryOutcome(STRATEGY_INVENTORY, pid, QueryStatus.NOT_FOUND)

        record = records[0]
        self._report(f"Process ID {pid} is RUNNING (inventory)")
        self._report(f"Process Name: {record.name or 'N/A'}")
        self._report(f"Command Line: {record.command_line or 'N/A'}")
        self._report(f"Creation Date: {record.creation_date or 'N/A'}")
        return QueryOutcome(
            STRATEGY_INVENTORY, pid, QueryStatus.FOUND, records=tuple(records)
        )

    def query_by_management_service(self, pid: int) -> bool:
        """Return True if the process inventory lists at least one matching process."""
        return self.lookup_by_management_service(pid).is_running

    # Snapshot

    def get_snapshot(self, pid: int) -> ProcessSnapshot:
        """
        Return a snapshot of the process.

        Never raises. A missing, exited or unreadable process yields a snapshot
        with ``is_running`` False and no descriptive fields.
        """
        outcome = self._lookup_process(pid)
        if outcome.status is QueryStatus.FOUND:
            return outcome.snapshot
        if outcome.status is QueryStatus.FAILED:
            self._report(f"Error getting process info: {outcome.reason}")
        return ProcessSnapshot.not_running(pid)

    def check_all(self, pid: int) -> LivenessReport:
        """Run every strategy and the snapshot, in order, without reconciling them."""
        outcomes = (
            self.lookup_by_handle(pid),
            self.lookup_by_open_handle(pid),
            self.lookup_by_management_service(pid),
        )
        return LivenessReport(pid=pid, outcomes=outcomes, snapshot=self.get_snapshot(pid))
