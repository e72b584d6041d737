"""Unit tests for CPU and memory percentage computation."""

from __future__ import annotations

import pytest

from procsampler.providers.base import ProcessSample
from procsampler.rates import cpu_percentage, memory_percentage, round_metric


def _sample(ts: float, user: int | None, system: int | None, total: int | None = None) -> ProcessSample:
    if total is None and user is not None and system is not None:
        total = user + system
    return ProcessSample(
        timestamp=ts,
        cpu_user_ticks=user,
        cpu_system_ticks=system,
        cpu_total_ticks=total,
    )


class TestCPUPercentage:
    def test_known_values(self) -> None:
        p1 = _sample(1000.0, 11345, 37)
        p2 = _sample(1001.0, 14794, 47)
        cpu = cpu_percentage(p1, p2, num_cpu=48)
        assert cpu is not None
        assert cpu.total_pct == 3.459
        assert cpu.total_norm_pct == 0.0721
        assert cpu.user_pct == 3.449
        assert cpu.system_pct == 0.01

    def test_two_busy_cores(self) -> None:
        cpu = cpu_percentage(_sample(0.0, 0, 0), _sample(2.0, 3000, 1000), num_cpu=4)
        assert cpu is not None
        assert cpu.total_pct == 2.0
        assert cpu.total_norm_pct == 0.5

    def test_zero_elapsed_is_absent(self) -> None:
        s = _sample(5.0, 100, 100)
        assert cpu_percentage(s, _sample(5.0, 200, 200), num_cpu=2) is None

    def test_clock_backwards_is_absent(self) -> None:
        assert cpu_percentage(_sample(10.0, 0, 0), _sample(9.0, 10, 10), num_cpu=2) is None

    def test_counter_decrease_clamps_to_zero(self) -> None:
        cpu = cpu_percentage(_sample(0.0, 5000, 5000), _sample(1.0, 10, 10), num_cpu=2)
        assert cpu is not None
        assert cpu.total_pct == 0.0
        assert cpu.user_pct == 0.0
        assert cpu.total_norm_pct == 0.0

    def test_missing_ticks_leave_field_absent(self) -> None:
        prev = _sample(0.0, None, 10, total=10)
        curr = _sample(1.0, None, 20, total=20)
        cpu = cpu_percentage(prev, curr, num_cpu=1)
        assert cpu is not None
        assert cpu.user_pct is None
        assert cpu.user_norm_pct is None
        assert cpu.system_pct == 0.01

    def test_unknown_cpu_count(self) -> None:
        cpu = cpu_percentage(_sample(0.0, 0, 0), _sample(1.0, 500, 0), num_cpu=0)
        assert cpu is not None
        assert cpu.total_pct == 0.5
        assert cpu.total_norm_pct is None


class TestMemoryPercentage:
    def test_known_value(self) -> None:
        assert memory_percentage(1416, 10000) == 0.1416

    @pytest.mark.parametrize("total", [0, None, -5])
    def test_unknown_total(self, total: int | None) -> None:
        assert memory_percentage(1416, total) is None

    def test_unknown_rss(self) -> None:
        assert memory_percentage(None, 10000) is None


def test_round_metric() -> None:
    assert round_metric(0.07206250) == 0.0721
    assert round_metric(3.459) == 3.459
