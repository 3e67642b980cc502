"""Native process-handle backends.

Each backend opens a query-only reference to a process by identifier and
releases it again. ``get_handle_backend`` picks the variant for the running
platform, or returns None when the platform has no handle-based process table.
"""

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache

log = logging.getLogger(__name__)

PROCESS_QUERY_INFORMATION = 0x0400

ERROR_ACCESS_DENIED = 5
ERROR_INVALID_PARAMETER = 87

# Largest identifier each native API can represent (DWORD, pid_t)
MAX_WINDOWS_PID = 2**32 - 1
MAX_POSIX_PID = 2**31 - 1


class HandleBackend:
    """
    Base class for native handle backends.

    ``open`` raises ProcessLookupError when the identifier does not resolve,
    PermissionError when access is refused and OSError for anything else.
    """

    name = "native"

    def open(self, pid: int) -> int:
        raise NotImplementedError

    def close(self, handle: int) -> None:
        raise NotImplementedError

    @contextmanager
    def opened(self, pid: int) -> Iterator[int]:
        """Open a handle for the duration of the block, then release it."""
        handle = self.open(pid)
        try:
            yield handle
        finally:
            self.close(handle)


class WindowsHandleBackend(HandleBackend):
    """OpenProcess/CloseHandle from kernel32 with query-information rights only."""

    name = "OpenProcess"

    def __init__(self) -> None:
        import ctypes
        from ctypes import wintypes

        self._ctypes = ctypes
        self._kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)
        self._kernel32.OpenProcess.argtypes = (wintypes.DWORD, wintypes.BOOL, wintypes.DWORD)
        self._kernel32.OpenProcess.restype = wintypes.HANDLE
        self._kernel32.CloseHandle.argtypes = (wintypes.HANDLE,)
        self._kernel32.CloseHandle.restype = wintypes.BOOL

    def open(self, pid: int) -> int:
        if not 0 <= pid <= MAX_WINDOWS_PID:
            raise ProcessLookupError(f"invalid process id {pid}")
        handle = self._kernel32.OpenProcess(PROCESS_QUERY_INFORMATION, False, pid)
        if handle:
            return handle

        error = self._ctypes.get_last_error()
        if error == ERROR_INVALID_PARAMETER:
            raise ProcessLookupError(f"no process with id {pid}")
        if error == ERROR_ACCESS_DENIED:
            raise PermissionError(f"access denied opening process {pid}")
        raise self._ctypes.WinError(error)

    def close(self, handle: int) -> None:
        if not self._kernel32.CloseHandle(handle):
            log.warning("CloseHandle failed for handle %s", handle)


class PidfdHandleBackend(HandleBackend):
    """Linux process file descriptors via pidfd_open."""

    name = "pidfd_open"

    def open(self, pid: int) -> int:
        if not 0 < pid <= MAX_POSIX_PID:
            raise ProcessLookupError(f"invalid process id {pid}")
        return os.pidfd_open(pid)

    def close(self, handle: int) -> None:
        os.close(handle)


def _probe(backend: HandleBackend) -> bool:
    """Check the backend works by opening a handle to the current process."""
    try:
        with backend.opened(os.getpid()):
            return True
    except OSError as exc:
        log.debug("Handle backend %s unavailable: %s", backend.name, exc)
        return False


@lru_cache(maxsize=1)
def get_handle_backend() -> HandleBackend | None:
    """Return the native handle backend for this platform, or None if unsupported."""
    if sys.platform == "win32":
        backend: HandleBackend = WindowsHandleBackend()
    elif sys.platform.startswith("linux") and hasattr(os, "pidfd_open"):
        backend = PidfdHandleBackend()
    else:
        return None

    return backend if _probe(backend) else None
