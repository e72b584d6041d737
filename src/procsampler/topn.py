"""Top-N process selection by CPU and by resident memory."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from procsampler.config import IncludeTopConfig
    from procsampler.providers.base import ProcState


def _cpu_key(proc: ProcState) -> tuple[bool, float]:
    pct = proc.metrics.cpu_pct
    return (pct is None, -(pct or 0.0))


def _memory_key(proc: ProcState) -> tuple[bool, int]:
    rss = proc.memory_rss
    return (rss is None, -(rss or 0))


def _top(
    processes: Sequence[ProcState],
    key: Callable[[ProcState], tuple[bool, float]],
    count: int,
) -> list[ProcState]:
    # sorted() is stable, so equal values keep their input order.
    return sorted(processes, key=key)[:count]


def include_top_processes(
    processes: list[ProcState], config: IncludeTopConfig
) -> list[ProcState]:
    """Return the union of the top ``by_cpu`` and top ``by_memory`` processes.

    Processes without a CPU percentage (first sample) or RSS rank last.
    With selection disabled, or both counts zero, *processes* is returned
    as-is.  The result keeps the input order and lists each PID once.
    """
    if not config.enabled or (config.by_cpu <= 0 and config.by_memory <= 0):
        return processes

    selected: set[int] = set()
    if config.by_cpu > 0:
        selected.update(p.pid for p in _top(processes, _cpu_key, config.by_cpu))
    if config.by_memory > 0:
        selected.update(p.pid for p in _top(processes, _memory_key, config.by_memory))

    result: list[ProcState] = []
    for proc in processes:
        if proc.pid in selected:
            result.append(proc)
            selected.discard(proc.pid)
    return result
