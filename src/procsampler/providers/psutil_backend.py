"""Process providers backed by psutil.

``PsutilProvider`` covers every platform psutil supports and fills only
what psutil reports portably.  ``LinuxProvider`` adds shared memory,
process group from /proc/<pid>/stat, per-namespace network counters,
and honours an alternate host filesystem root.
"""

from __future__ import annotations

import contextlib
import logging
import os
import time
from typing import TYPE_CHECKING, Any

import psutil  # type: ignore[import-untyped]

from procsampler.providers import procfs
from procsampler.providers.base import (
    DEAD,
    DISK_SLEEP,
    EnumerationError,
    IDLE,
    LOCKED,
    PARKED,
    ProcessAccessError,
    ProcessGoneError,
    ProcessIdentity,
    ProcessInfo,
    ProcessProvider,
    ProcessSample,
    RUNNING,
    SLEEPING,
    STOPPED,
    UNKNOWN,
    WAKING,
    ZOMBIE,
)
from procsampler.resolve import HostFSResolver

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = logging.getLogger(__name__)

_STATUS_MAP = {
    psutil.STATUS_RUNNING: RUNNING,
    psutil.STATUS_SLEEPING: SLEEPING,
    psutil.STATUS_DISK_SLEEP: DISK_SLEEP,
    psutil.STATUS_STOPPED: STOPPED,
    psutil.STATUS_TRACING_STOP: STOPPED,
    psutil.STATUS_ZOMBIE: ZOMBIE,
    psutil.STATUS_DEAD: DEAD,
    psutil.STATUS_WAKING: WAKING,
    psutil.STATUS_IDLE: IDLE,
    psutil.STATUS_LOCKED: LOCKED,
    psutil.STATUS_PARKED: PARKED,
}


def to_ticks(seconds: float) -> int:
    """Convert psutil CPU seconds to millisecond ticks."""
    return int(round(seconds * 1000))


def map_status(status: str) -> str:
    return _STATUS_MAP.get(status, UNKNOWN)


@contextlib.contextmanager
def _translate_errors(pid: int) -> Iterator[None]:
    """Map psutil per-process errors onto our exception hierarchy."""
    try:
        yield
    except psutil.ZombieProcess as exc:
        raise ProcessGoneError(pid, "zombie process") from exc
    except psutil.NoSuchProcess as exc:
        raise ProcessGoneError(pid) from exc
    except psutil.AccessDenied as exc:
        raise ProcessAccessError(pid) from exc
    except (FileNotFoundError, ProcessLookupError) as exc:
        raise ProcessGoneError(pid) from exc
    except PermissionError as exc:
        raise ProcessAccessError(pid) from exc


def _optional(func: Callable[[], Any], pid: int, what: str) -> Any:
    """Call an identity getter, returning None if the platform refuses it.

    A vanished process still propagates as NoSuchProcess.
    """
    try:
        return func()
    except (psutil.AccessDenied, psutil.ZombieProcess, PermissionError, NotImplementedError):
        logger.debug("Cannot read %s for pid=%d", what, pid)
        return None


class PsutilProvider(ProcessProvider):
    """Portable provider using psutil only."""

    def __init__(self, resolver: HostFSResolver | None = None) -> None:
        self._resolver = resolver or HostFSResolver()

    @property
    def resolver(self) -> HostFSResolver:
        return self._resolver

    def pids(self) -> list[int]:
        try:
            return psutil.pids()
        except (OSError, RuntimeError) as exc:
            raise EnumerationError(f"Cannot list processes: {exc}") from exc

    def info(self, pid: int) -> ProcessInfo:
        with _translate_errors(pid):
            proc = psutil.Process(pid)
            with proc.oneshot():
                name = proc.name()
                ppid = proc.ppid()
                status = proc.status()
                start_time = proc.create_time()
        return ProcessInfo(
            pid=pid,
            name=name,
            state=map_status(status),
            ppid=ppid,
            pgid=self._pgid(pid),
            start_time=start_time,
        )

    def sample(self, pid: int) -> ProcessSample:
        with _translate_errors(pid):
            proc = psutil.Process(pid)
            with proc.oneshot():
                times = proc.cpu_times()
                mem = proc.memory_info()
        user = to_ticks(times.user)
        system = to_ticks(times.system)
        return ProcessSample(
            timestamp=time.time(),
            cpu_user_ticks=user,
            cpu_system_ticks=system,
            cpu_total_ticks=user + system,
            memory_rss=mem.rss,
            memory_size=mem.vms,
            memory_share=self._memory_share(mem),
        )

    def identity(self, pid: int, *, include_env: bool = False) -> ProcessIdentity:
        with _translate_errors(pid):
            proc = psutil.Process(pid)
            with proc.oneshot():
                start_time = proc.create_time()
                username = _optional(proc.username, pid, "username")
                exe = _optional(proc.exe, pid, "exe")
                args = _optional(proc.cmdline, pid, "cmdline") or []
                cwd = _optional(proc.cwd, pid, "cwd")
                env = _optional(proc.environ, pid, "environ") if include_env else None
        return ProcessIdentity(
            pid=pid,
            start_time=start_time,
            username=username,
            exe=exe or None,
            cmdline=" ".join(args) if args else None,
            args=tuple(args),
            cwd=cwd or None,
            env=env,
        )

    def cpu_count(self) -> int:
        return psutil.cpu_count(logical=True) or 1

    def total_memory(self) -> int | None:
        try:
            return psutil.virtual_memory().total
        except (OSError, RuntimeError):
            logger.debug("Cannot read total physical memory", exc_info=True)
            return None

    # -- platform hooks --

    def _pgid(self, pid: int) -> int | None:
        getpgid = getattr(os, "getpgid", None)
        if getpgid is None:
            return None
        try:
            return getpgid(pid)
        except (ProcessLookupError, PermissionError):
            return None

    def _memory_share(self, mem: Any) -> int | None:
        return None


class LinuxProvider(PsutilProvider):
    """psutil plus /proc reads, rooted at the configured host filesystem.

    psutil reads procfs through the module-global ``psutil.PROCFS_PATH``,
    so there is one procfs root per interpreter.  Every provider sets it
    from its own resolver, and the most recently built provider wins.
    """

    def __init__(self, resolver: HostFSResolver | None = None) -> None:
        super().__init__(resolver)
        procfs_path = self._resolver.resolve("/proc")
        current = getattr(psutil, "PROCFS_PATH", "/proc")
        if current != procfs_path:
            logger.warning(
                "Switching psutil procfs root from %s to %s for the whole process",
                current,
                procfs_path,
            )
        psutil.PROCFS_PATH = procfs_path
        if self._resolver.is_set():
            logger.info("Reading process data from %s", procfs_path)

    def network(self, pid: int) -> dict[str, dict[str, int]] | None:
        return procfs.read_network_counters(self._resolver, pid)

    def _pgid(self, pid: int) -> int | None:
        stat = procfs.read_proc_stat(self._resolver, pid)
        return stat.pgrp if stat is not None else None

    def _memory_share(self, mem: Any) -> int | None:
        return getattr(mem, "shared", None)
