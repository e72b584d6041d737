"""CPU and memory percentages from raw process counters.

Ticks are milliseconds of CPU time, so dividing a tick delta by the
elapsed wall-clock milliseconds gives a ratio where 1.0 is one fully
busy logical core.
"""

from __future__ import annotations

from procsampler.providers.base import CPUPercentages, ProcessSample

_PRECISION = 4


def round_metric(value: float) -> float:
    """Round a derived metric to four decimal places."""
    return round(value, _PRECISION)


def _tick_ratio(prev: int | None, curr: int | None, elapsed_ms: float) -> float | None:
    if prev is None or curr is None:
        return None
    # Counter went backwards (wrap or undetected PID reuse): report idle.
    delta = max(curr - prev, 0)
    return delta / elapsed_ms


def _normalize(pct: float | None, num_cpu: int) -> float | None:
    if pct is None or num_cpu <= 0:
        return None
    return round_metric(pct / num_cpu)


def _rounded(pct: float | None) -> float | None:
    return round_metric(pct) if pct is not None else None


def cpu_percentage(
    prev: ProcessSample, curr: ProcessSample, num_cpu: int
) -> CPUPercentages | None:
    """Compute CPU usage between two samples of the same process.

    Returns None when no time has passed between the samples (or the clock
    went backwards); a rate over a non-positive interval is meaningless.
    """
    elapsed_ms = (curr.timestamp - prev.timestamp) * 1000.0
    if elapsed_ms <= 0:
        return None

    total = _tick_ratio(prev.cpu_total_ticks, curr.cpu_total_ticks, elapsed_ms)
    user = _tick_ratio(prev.cpu_user_ticks, curr.cpu_user_ticks, elapsed_ms)
    system = _tick_ratio(prev.cpu_system_ticks, curr.cpu_system_ticks, elapsed_ms)

    return CPUPercentages(
        total_pct=_rounded(total),
        total_norm_pct=_normalize(total, num_cpu),
        user_pct=_rounded(user),
        user_norm_pct=_normalize(user, num_cpu),
        system_pct=_rounded(system),
        system_norm_pct=_normalize(system, num_cpu),
    )


def memory_percentage(rss_bytes: int | None, total_bytes: int | None) -> float | None:
    """Resident memory as a fraction of physical memory."""
    if rss_bytes is None or not total_bytes or total_bytes <= 0:
        return None
    return round_metric(rss_bytes / total_bytes)
