"""Per-PID store of the previous sample, used for rate computation."""

from __future__ import annotations

import dataclasses
import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from procsampler.providers.base import ProcessIdentity, ProcState

logger = logging.getLogger(__name__)


def same_process(stored: ProcState, current: ProcState) -> bool:
    """False when *current* is a different process that reused the PID.

    Only detectable when both sides report a start time.
    """
    if stored.start_time is None or current.start_time is None:
        return True
    return stored.start_time == current.start_time


class ProcessRegistry:
    """Holds at most one ProcState per PID.

    Thread-safe: one lock guards the map, held only for dictionary access
    and the pure rate computation in :meth:`exchange`, never for OS reads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[int, ProcState] = {}

    def get(self, pid: int) -> ProcState | None:
        with self._lock:
            return self._entries.get(pid)

    def set(self, pid: int, state: ProcState) -> None:
        with self._lock:
            self._entries[pid] = state

    def remove(self, pid: int) -> bool:
        with self._lock:
            return self._entries.pop(pid, None) is not None

    def pids(self) -> set[int]:
        with self._lock:
            return set(self._entries)

    def exchange(
        self,
        pid: int,
        state: ProcState,
        derive: Callable[[ProcState | None, ProcState], ProcState],
    ) -> ProcState:
        """Read the stored state, derive the new one from it, store the result.

        All three steps happen under the lock so two concurrent samples of
        the same PID cannot both diff against the same predecessor.  A
        stored entry belonging to an earlier process with this PID is
        passed to *derive* as None.
        """
        with self._lock:
            prev = self._entries.get(pid)
            if prev is not None and not same_process(prev, state):
                logger.debug("pid %d reused (start time changed), discarding old sample", pid)
                prev = None
            result = derive(prev, state)
            self._entries[pid] = result
            return result

    def cached_identity(self, pid: int, start_time: float | None) -> ProcessIdentity | None:
        """Return the cached identity for *pid* if it belongs to the same process."""
        with self._lock:
            entry = self._entries.get(pid)
        if entry is None or entry.identity is None:
            return None
        cached_start = entry.identity.start_time
        if cached_start is not None and start_time is not None and cached_start != start_time:
            return None
        return entry.identity

    def drop_identities(self) -> int:
        """Forget cached identities, keeping previous samples. Returns count dropped.

        Entries are replaced, not mutated, so states already handed out keep
        their identity.
        """
        with self._lock:
            cached = [pid for pid, entry in self._entries.items() if entry.identity is not None]
            for pid in cached:
                self._entries[pid] = dataclasses.replace(self._entries[pid], identity=None)
        return len(cached)

    def prune(self, alive: Iterable[int]) -> int:
        """Drop entries whose PID is not in *alive*. Returns count removed."""
        alive_set = set(alive)
        with self._lock:
            dead = [pid for pid in self._entries if pid not in alive_set]
            for pid in dead:
                del self._entries[pid]
        if dead:
            logger.debug("Pruned %d exited processes from registry", len(dead))
        return len(dead)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, pid: object) -> bool:
        with self._lock:
            return pid in self._entries
