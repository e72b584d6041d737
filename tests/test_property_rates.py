"""Hypothesis property-based tests for rate computation."""

from __future__ import annotations

import pytest
from hypothesis import assume, given, strategies as st

from procsampler.providers.base import ProcessSample
from procsampler.rates import cpu_percentage, memory_percentage

ticks = st.integers(min_value=0, max_value=2**48)
timestamps = st.floats(min_value=0, max_value=4e9, allow_nan=False, allow_infinity=False)
cpus = st.integers(min_value=1, max_value=512)


def _sample(ts: float, user: int, system: int) -> ProcessSample:
    return ProcessSample(
        timestamp=ts,
        cpu_user_ticks=user,
        cpu_system_ticks=system,
        cpu_total_ticks=user + system,
    )


@given(ts=timestamps, dt=st.floats(min_value=0.001, max_value=3600), u1=ticks, s1=ticks,
       du=ticks, ds=ticks, num_cpu=cpus)
def test_pct_is_delta_over_elapsed(
    ts: float, dt: float, u1: int, s1: int, du: int, ds: int, num_cpu: int
) -> None:
    prev = _sample(ts, u1, s1)
    curr = _sample(ts + dt, u1 + du, s1 + ds)
    elapsed_ms = (curr.timestamp - prev.timestamp) * 1000.0
    assume(elapsed_ms > 0)
    cpu = cpu_percentage(prev, curr, num_cpu)
    assert cpu is not None
    expected = (du + ds) / elapsed_ms
    assert cpu.total_pct == pytest.approx(expected, abs=5e-5, rel=1e-9)
    assert cpu.total_norm_pct == pytest.approx(expected / num_cpu, abs=5e-5, rel=1e-9)


@given(ts=timestamps, dt=st.floats(min_value=0.001, max_value=3600), a=ticks, b=ticks,
       num_cpu=cpus)
def test_never_negative(ts: float, dt: float, a: int, b: int, num_cpu: int) -> None:
    cpu = cpu_percentage(_sample(ts, a, a), _sample(ts + dt, b, b), num_cpu)
    if cpu is None:
        return
    for value in (cpu.total_pct, cpu.total_norm_pct, cpu.user_pct, cpu.system_pct):
        assert value is not None
        assert value >= 0


@given(ts=timestamps, back=st.floats(min_value=0, max_value=1e6), a=ticks, b=ticks)
def test_non_positive_elapsed_is_absent(ts: float, back: float, a: int, b: int) -> None:
    assert cpu_percentage(_sample(ts, a, a), _sample(ts - back, b, b), 4) is None


@given(rss=st.integers(min_value=0, max_value=2**50), total=st.integers(min_value=1, max_value=2**50))
def test_memory_pct_is_ratio(rss: int, total: int) -> None:
    assert memory_percentage(rss, total) == pytest.approx(rss / total, abs=5e-5)
