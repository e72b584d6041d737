"""Unit tests for top-N process selection."""

from __future__ import annotations

import pytest

from procsampler.config import IncludeTopConfig
from procsampler.providers.base import (
    CPUPercentages,
    DerivedMetrics,
    ProcessSample,
    ProcState,
)
from procsampler.topn import include_top_processes

_CPU = [10, 5, 7, 5, 12, 5, 80, 50, 15, 60]
_MEM = [3000, 4000, 2000, 8000, 9000, 7000, 11000, 13000, 1000, 500]


def make_proc(pid: int, cpu: float | None, rss: int | None) -> ProcState:
    return ProcState(
        pid=pid,
        name=f"p{pid}",
        sample=ProcessSample(timestamp=0.0, memory_rss=rss),
        metrics=DerivedMetrics(cpu=CPUPercentages(total_pct=cpu) if cpu is not None else None),
    )


@pytest.fixture()
def processes() -> list[ProcState]:
    return [make_proc(i + 1, cpu, mem) for i, (cpu, mem) in enumerate(zip(_CPU, _MEM))]


ALL = list(range(1, 11))


@pytest.mark.parametrize(
    ("cfg", "expected"),
    [
        pytest.param(IncludeTopConfig(by_cpu=2), [7, 10], id="top 2 by cpu"),
        pytest.param(IncludeTopConfig(by_cpu=4), [7, 10, 8, 9], id="top 4 by cpu"),
        pytest.param(IncludeTopConfig(by_memory=2), [8, 7], id="top 2 by memory"),
        pytest.param(IncludeTopConfig(by_memory=4), [8, 7, 5, 4], id="top 4 by memory"),
        pytest.param(IncludeTopConfig(by_cpu=2, by_memory=2), [7, 10, 8], id="2 cpu + 2 memory"),
        pytest.param(
            IncludeTopConfig(by_cpu=4, by_memory=4), [7, 10, 8, 9, 5, 4], id="4 cpu + 4 memory"
        ),
        pytest.param(
            IncludeTopConfig(enabled=False, by_cpu=4, by_memory=4), ALL, id="disabled"
        ),
        pytest.param(IncludeTopConfig(), ALL, id="enabled without counts"),
        pytest.param(IncludeTopConfig(by_cpu=12), ALL, id="12 cpu of 10"),
        pytest.param(IncludeTopConfig(by_cpu=12, by_memory=14), ALL, id="12 cpu + 14 memory of 10"),
        pytest.param(IncludeTopConfig(by_cpu=14, by_memory=12), ALL, id="14 cpu + 12 memory of 10"),
        pytest.param(IncludeTopConfig(by_cpu=1, by_memory=3), [5, 7, 8], id="1 cpu + 3 memory"),
        pytest.param(IncludeTopConfig(by_cpu=3, by_memory=1), [7, 8, 10], id="3 cpu + 1 memory"),
    ],
)
def test_include_top_processes(
    processes: list[ProcState], cfg: IncludeTopConfig, expected: list[int]
) -> None:
    result = include_top_processes(processes, cfg)
    assert sorted(p.pid for p in result) == sorted(expected)


class TestSelectionDetails:
    def test_disabled_returns_same_list(self, processes: list[ProcState]) -> None:
        cfg = IncludeTopConfig(enabled=False, by_cpu=1)
        assert include_top_processes(processes, cfg) is processes

    def test_no_counts_returns_same_list(self, processes: list[ProcState]) -> None:
        assert include_top_processes(processes, IncludeTopConfig()) is processes

    def test_preserves_input_order(self, processes: list[ProcState]) -> None:
        result = include_top_processes(processes, IncludeTopConfig(by_cpu=4, by_memory=4))
        assert [p.pid for p in result] == [4, 5, 7, 8, 9, 10]

    def test_no_duplicates(self, processes: list[ProcState]) -> None:
        result = include_top_processes(processes, IncludeTopConfig(by_cpu=10, by_memory=10))
        assert len(result) == len({p.pid for p in result}) == 10

    def test_absent_cpu_sorts_last(self) -> None:
        procs = [make_proc(1, None, 0), make_proc(2, 0.0, 0), make_proc(3, 0.5, 0)]
        result = include_top_processes(procs, IncludeTopConfig(by_cpu=2))
        assert {p.pid for p in result} == {2, 3}

    def test_absent_memory_sorts_last(self) -> None:
        procs = [make_proc(1, 1.0, None), make_proc(2, 1.0, 10)]
        result = include_top_processes(procs, IncludeTopConfig(by_memory=1))
        assert [p.pid for p in result] == [2]

    def test_ties_keep_input_order(self) -> None:
        procs = [make_proc(pid, 5.0, 100) for pid in (9, 3, 6)]
        result = include_top_processes(procs, IncludeTopConfig(by_cpu=2))
        assert [p.pid for p in result] == [9, 3]

    def test_empty_input(self) -> None:
        assert include_top_processes([], IncludeTopConfig(by_cpu=3)) == []
