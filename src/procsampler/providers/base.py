"""Core data types, provider ABC, and exception hierarchy."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

# --- Exceptions ---


class ProcsamplerError(Exception):
    """Base exception for all procsampler errors."""


class ConfigError(ProcsamplerError):
    """Configuration loading or validation failure."""


class EnumerationError(ProcsamplerError):
    """The process list itself could not be read."""


class ProcessUnavailableError(ProcsamplerError):
    """A single process could not be read this cycle."""

    def __init__(self, pid: int, reason: str = "unavailable") -> None:
        self.pid = pid
        self.reason = reason
        super().__init__(f"pid {pid}: {reason}")


class ProcessGoneError(ProcessUnavailableError):
    """Process exited (or never existed) between enumeration and read."""

    def __init__(self, pid: int, reason: str = "no such process") -> None:
        super().__init__(pid, reason)


class ProcessAccessError(ProcessUnavailableError):
    """Permission denied while reading process counters."""

    def __init__(self, pid: int, reason: str = "access denied") -> None:
        super().__init__(pid, reason)


# --- Run states ---

RUNNING = "running"
SLEEPING = "sleeping"
IDLE = "idle"
DISK_SLEEP = "disk_sleep"
STOPPED = "stopped"
ZOMBIE = "zombie"
DEAD = "dead"
WAKING = "waking"
PARKED = "parked"
LOCKED = "locked"
UNKNOWN = "unknown"


# --- Data Types (frozen, slotted) ---


@dataclass(frozen=True, slots=True)
class ProcessInfo:
    """Cheap per-cycle facts read before any filtering is applied."""

    pid: int
    name: str
    state: str = UNKNOWN
    ppid: int | None = None
    pgid: int | None = None
    start_time: float | None = None  # epoch seconds


@dataclass(frozen=True, slots=True)
class ProcessIdentity:
    """Fields assumed invariant for a process lifetime, cached across cycles.

    ``start_time`` is carried along so a recycled PID can be told apart
    from the process the identity was originally read for.
    """

    pid: int
    start_time: float | None = None
    username: str | None = None
    exe: str | None = None
    cmdline: str | None = None
    args: tuple[str, ...] = ()
    cwd: str | None = None
    env: Mapping[str, str] | None = None


@dataclass(frozen=True, slots=True)
class ProcessSample:
    """Raw counters for one process at one point in time.

    CPU ticks are cumulative milliseconds of CPU time.
    """

    timestamp: float  # time.time()
    cpu_user_ticks: int | None = None
    cpu_system_ticks: int | None = None
    cpu_total_ticks: int | None = None
    memory_rss: int | None = None
    memory_size: int | None = None
    memory_share: int | None = None
    network: Mapping[str, Mapping[str, int]] | None = None
    cgroup: Mapping[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class CPUPercentages:
    """CPU usage over one sampling interval.

    ``*_pct`` is relative to one logical core (2.0 == two busy cores);
    ``*_norm_pct`` is relative to the whole machine.
    """

    total_pct: float | None = None
    total_norm_pct: float | None = None
    user_pct: float | None = None
    user_norm_pct: float | None = None
    system_pct: float | None = None
    system_norm_pct: float | None = None


@dataclass(frozen=True, slots=True)
class DerivedMetrics:
    cpu: CPUPercentages | None = None
    memory_rss_pct: float | None = None

    @property
    def cpu_pct(self) -> float | None:
        return self.cpu.total_pct if self.cpu is not None else None


@dataclass(slots=True)
class ProcState:
    """Everything known about one process after a sampling pass."""

    pid: int
    name: str
    state: str = UNKNOWN
    ppid: int | None = None
    pgid: int | None = None
    start_time: float | None = None
    identity: ProcessIdentity | None = None
    sample: ProcessSample | None = None
    metrics: DerivedMetrics = field(default_factory=DerivedMetrics)

    @classmethod
    def from_info(cls, info: ProcessInfo) -> ProcState:
        return cls(
            pid=info.pid,
            name=info.name,
            state=info.state,
            ppid=info.ppid,
            pgid=info.pgid,
            start_time=info.start_time,
        )

    @property
    def memory_rss(self) -> int | None:
        return self.sample.memory_rss if self.sample is not None else None


# --- Provider ABC ---


class ProcessProvider(ABC):
    """Source of raw OS process data.

    Per-process methods raise :class:`ProcessUnavailableError` subclasses
    when the process is gone or unreadable; :meth:`pids` raises
    :class:`EnumerationError` when the process list cannot be read.
    Optional fields a platform cannot report are left as ``None``.
    """

    @abstractmethod
    def pids(self) -> Iterable[int]:
        """Return the PIDs of all live processes."""

    @abstractmethod
    def info(self, pid: int) -> ProcessInfo:
        """Return name, run state and parentage for *pid*."""

    @abstractmethod
    def sample(self, pid: int) -> ProcessSample:
        """Return current CPU and memory counters for *pid*."""

    @abstractmethod
    def identity(self, pid: int, *, include_env: bool = False) -> ProcessIdentity:
        """Return command line, user, cwd and (optionally) the full environment."""

    @abstractmethod
    def cpu_count(self) -> int:
        """Return the number of logical CPUs."""

    @abstractmethod
    def total_memory(self) -> int | None:
        """Return total physical memory in bytes, or None if unknown."""

    def network(self, pid: int) -> dict[str, dict[str, int]] | None:
        """Return per-process network counters grouped by protocol.

        Platforms without per-process network statistics return None.
        """
        return None
