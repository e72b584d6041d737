"""CSV export: one row per selected process per sampling pass."""

from __future__ import annotations

import csv
import logging
import threading
from typing import TYPE_CHECKING

from procsampler.events import format_time

if TYPE_CHECKING:
    import io
    from collections.abc import Iterable
    from pathlib import Path

    from procsampler.providers.base import ProcState

logger = logging.getLogger(__name__)

_CSV_COLUMNS = [
    "timestamp",
    "pid",
    "ppid",
    "name",
    "username",
    "state",
    "cpu_pct",
    "cpu_norm_pct",
    "memory_rss_bytes",
    "memory_rss_pct",
    "memory_size",
]


def _cell(value: object) -> object:
    """Unmeasured values become empty cells, never zero."""
    return "" if value is None else value


def state_row(state: ProcState) -> dict[str, object]:
    sample = state.sample
    cpu = state.metrics.cpu
    return {
        "timestamp": _cell(format_time(sample.timestamp) if sample else None),
        "pid": state.pid,
        "ppid": _cell(state.ppid),
        "name": state.name,
        "username": _cell(state.identity.username if state.identity else None),
        "state": state.state,
        "cpu_pct": _cell(cpu.total_pct if cpu else None),
        "cpu_norm_pct": _cell(cpu.total_norm_pct if cpu else None),
        "memory_rss_bytes": _cell(sample.memory_rss if sample else None),
        "memory_rss_pct": _cell(state.metrics.memory_rss_pct),
        "memory_size": _cell(sample.memory_size if sample else None),
    }


class CSVLogger:
    """Appends process rows to a CSV file after each sampling pass.

    Thread-safe: writes are guarded by a lock.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._file: io.TextIOWrapper | None = None
        self._writer: csv.DictWriter[str] | None = None

    # -- lifecycle --

    def start(self) -> None:
        """Open the CSV file and write the header row."""
        with self._lock:
            if self._file is not None:
                return
            self._file = self._path.open("a", newline="", encoding="utf-8")
            self._writer = csv.DictWriter(self._file, fieldnames=_CSV_COLUMNS)
            # Write header only if file is empty / newly created.
            if self._file.tell() == 0:
                self._writer.writeheader()
                self._file.flush()

    def stop(self) -> None:
        """Flush and close the file."""
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None
                self._writer = None

    # -- data --

    def write_states(self, states: Iterable[ProcState]) -> None:
        """Append one row per process in *states*."""
        with self._lock:
            if self._writer is None or self._file is None:
                return
            for state in states:
                self._writer.writerow(state_row(state))
            self._file.flush()
