"""Render ProcState as nested event mappings for downstream encoders.

Fields that were never measured are omitted rather than written as zero.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from procsampler.providers.base import ProcState


def _put(event: dict[str, Any], dotted: str, value: Any) -> None:
    """Set ``event["a"]["b"]["c"] = value`` for ``"a.b.c"``, skipping None."""
    if value is None:
        return
    *parents, leaf = dotted.split(".")
    node = event
    for key in parents:
        node = node.setdefault(key, {})
    node[leaf] = value


def format_time(epoch: float | None) -> str | None:
    """ISO-8601 UTC with millisecond precision."""
    if epoch is None:
        return None
    dt = datetime.fromtimestamp(epoch, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_event(state: ProcState, *, cpu_ticks: bool = False) -> dict[str, Any]:
    """Nested event for one process.

    Tick counters are included only when *cpu_ticks* is set;
    ``cpu.total.value`` (total CPU time in ms) is always present.
    """
    event: dict[str, Any] = {}
    _put(event, "pid", state.pid)
    _put(event, "ppid", state.ppid)
    _put(event, "pgid", state.pgid)
    _put(event, "name", state.name)
    _put(event, "state", state.state)
    _put(event, "cpu.start_time", format_time(state.start_time))

    ident = state.identity
    if ident is not None:
        _put(event, "username", ident.username)
        _put(event, "exe", ident.exe)
        _put(event, "cmdline", ident.cmdline)
        if ident.args:
            event["args"] = list(ident.args)
        _put(event, "cwd", ident.cwd)
        if ident.env:
            event["env"] = dict(ident.env)

    sample = state.sample
    if sample is not None:
        _put(event, "sample_time", format_time(sample.timestamp))
        _put(event, "cpu.total.value", sample.cpu_total_ticks)
        if cpu_ticks:
            _put(event, "cpu.total.ticks", sample.cpu_total_ticks)
            _put(event, "cpu.user.ticks", sample.cpu_user_ticks)
            _put(event, "cpu.system.ticks", sample.cpu_system_ticks)
        _put(event, "memory.size", sample.memory_size)
        _put(event, "memory.rss.bytes", sample.memory_rss)
        _put(event, "memory.share", sample.memory_share)
        if sample.network is not None:
            event["network"] = {k: dict(v) for k, v in sample.network.items()}
        if sample.cgroup is not None:
            event["cgroup"] = dict(sample.cgroup)

    cpu = state.metrics.cpu
    if cpu is not None:
        _put(event, "cpu.total.pct", cpu.total_pct)
        _put(event, "cpu.total.norm.pct", cpu.total_norm_pct)
        _put(event, "cpu.user.pct", cpu.user_pct)
        _put(event, "cpu.user.norm.pct", cpu.user_norm_pct)
        _put(event, "cpu.system.pct", cpu.system_pct)
        _put(event, "cpu.system.norm.pct", cpu.system_norm_pct)
    _put(event, "memory.rss.pct", state.metrics.memory_rss_pct)

    return event


def to_root_fields(state: ProcState) -> dict[str, Any]:
    """ECS-style ``process.*`` / ``user.*`` fields for the event root."""
    root: dict[str, Any] = {}
    _put(root, "process.pid", state.pid)
    _put(root, "process.parent.pid", state.ppid)
    _put(root, "process.pgid", state.pgid)
    _put(root, "process.name", state.name)
    _put(root, "process.start_time", format_time(state.start_time))
    _put(root, "process.cpu.start_time", format_time(state.start_time))

    ident = state.identity
    if ident is not None:
        _put(root, "process.executable", ident.exe)
        if ident.args:
            root["process"]["args"] = list(ident.args)
        _put(root, "process.command_line", ident.cmdline)
        _put(root, "process.working_directory", ident.cwd)
        _put(root, "user.name", ident.username)

    _put(root, "process.cpu.pct", state.metrics.cpu.total_norm_pct if state.metrics.cpu else None)
    _put(root, "process.memory.pct", state.metrics.memory_rss_pct)
    return root
