"""Shared test fixtures for procsampler tests."""

from __future__ import annotations

from typing import Any

import pytest

from procsampler.sampler import ProcessSampler
from tests.fixtures.fake_os import FakeProcess, FakeProvider, build_config


@pytest.fixture()
def provider() -> FakeProvider:
    """Fake process table with three processes."""
    return FakeProvider(
        [
            FakeProcess(pid=1, name="init", user_ticks=500, system_ticks=100, rss=1000),
            FakeProcess(
                pid=42,
                name="postgres",
                user_ticks=10_000,
                system_ticks=2_000,
                rss=4000,
                args=("postgres", "-D", "/var/lib/pg"),
                env={"PGDATA": "/var/lib/pg", "HOME": "/root", "SECRET_TOKEN": "x"},
            ),
            FakeProcess(pid=77, name="nginx", user_ticks=300, system_ticks=50, rss=2000),
        ]
    )


@pytest.fixture()
def make_sampler(provider: FakeProvider):
    """Factory: ``make_sampler(processes={"env_whitelist": [...]})``."""

    def _make(**sections: dict[str, Any]) -> ProcessSampler:
        return ProcessSampler(build_config(**sections), provider=provider)

    return _make


@pytest.fixture()
def proc_root(tmp_path):
    """Create a fake host /proc tree under tmp_path.

    Returns a helper with ``root`` (the fake filesystem root) and writers
    for per-PID stat, cgroup and network files.
    """
    root = tmp_path / "hostfs"
    proc_dir = root / "proc"
    proc_dir.mkdir(parents=True)

    def _pid_dir(pid: int):
        pid_dir = proc_dir / str(pid)
        pid_dir.mkdir(exist_ok=True)
        return pid_dir

    def create_stat(pid: int, comm: str = "python", *, ppid: int = 1, pgrp: int | None = None,
                    starttime: int = 12345) -> None:
        # Fields after comm: state, ppid, pgrp, session, tty_nr, tpgid,
        #   flags, minflt, cminflt, majflt, cmajflt, utime, stime, cutime,
        #   cstime, priority, nice, num_threads, itrealvalue, starttime
        pgrp = pid if pgrp is None else pgrp
        fields = ["S", str(ppid), str(pgrp)] + ["0"] * 16 + [str(starttime)]
        (_pid_dir(pid) / "stat").write_text(f"{pid} ({comm}) {' '.join(fields)} 0 0\n")

    def create_cgroup(pid: int, content: str) -> None:
        (_pid_dir(pid) / "cgroup").write_text(content)

    def create_net(pid: int, snmp: str | None = None, netstat: str | None = None) -> None:
        net_dir = _pid_dir(pid) / "net"
        net_dir.mkdir(exist_ok=True)
        if snmp is not None:
            (net_dir / "snmp").write_text(snmp)
        if netstat is not None:
            (net_dir / "netstat").write_text(netstat)

    return type("ProcRoot", (), {
        "root": root,
        "proc_dir": proc_dir,
        "create_stat": staticmethod(create_stat),
        "create_cgroup": staticmethod(create_cgroup),
        "create_net": staticmethod(create_net),
    })
