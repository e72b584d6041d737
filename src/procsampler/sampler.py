"""Sampling engine: one pass over the process table per call to :meth:`get`.

Each pass enumerates PIDs, drops processes whose name does not match the
configured patterns before any expensive read, samples the rest, diffs
every sample against the one stored for that PID on the previous pass,
and finally applies top-N selection.  Identity fields (command line,
environment, cwd, user) are read once per process and reused until the
PID is recycled.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from typing import TYPE_CHECKING, Any

from procsampler.cgroup import CgroupReader, ProcCgroupReader, ReaderOptions
from procsampler.config import SamplerConfig
from procsampler.matcher import PatternMatcher
from procsampler.providers import get_provider
from procsampler.providers.base import (
    ConfigError,
    DerivedMetrics,
    ProcessInfo,
    ProcessUnavailableError,
    ProcState,
)
from procsampler.rates import cpu_percentage, memory_percentage
from procsampler.registry import ProcessRegistry
from procsampler.resolve import HostFSResolver
from procsampler.topn import include_top_processes

if TYPE_CHECKING:
    from collections.abc import Mapping

    from procsampler.providers.base import ProcessIdentity, ProcessProvider

logger = logging.getLogger(__name__)


class ProcessSampler:
    """Stateful process sampler.

    Holds its own :class:`ProcessRegistry`, so independent samplers never
    see each other's history.  :meth:`get_one` and :meth:`get_pid_state`
    may be called from other threads while :meth:`get` is running.
    """

    def __init__(
        self,
        config: SamplerConfig | None = None,
        *,
        provider: ProcessProvider | None = None,
        cgroup_reader: CgroupReader | None = None,
        registry: ProcessRegistry | None = None,
    ) -> None:
        config = config or SamplerConfig()
        self._resolver = HostFSResolver(config.general.hostfs)
        self._provider = provider or get_provider(self._resolver)
        self._registry = registry or ProcessRegistry()
        self._explicit_cgroup_reader = cgroup_reader
        self._cgroups: CgroupReader | None = None
        self._config = config
        self.apply_config(config)

    # -- configuration --

    def apply_config(self, config: SamplerConfig) -> None:
        """Rebuild matchers and options from *config*.

        Raises :class:`ConfigError` if any pattern fails to compile or
        ``general.hostfs`` differs from the root the sampler was built with;
        the previous settings stay in effect in that case.  Cached identities
        are dropped when the environment whitelist or identity caching
        changes; previous samples are kept so rates stay continuous.
        """
        if HostFSResolver(config.general.hostfs).root != self._resolver.root:
            raise ConfigError(
                f"hostfs cannot change at runtime "
                f"(running with {self._resolver.root!r}, got {config.general.hostfs!r})"
            )
        proc_matcher = PatternMatcher(config.processes.procs)
        env_matcher = PatternMatcher(config.processes.env_whitelist)
        network_matcher = PatternMatcher(config.network.metrics)

        previous = self._config.processes
        identity_changed = (
            previous.env_whitelist != config.processes.env_whitelist
            or previous.cache_cmdline != config.processes.cache_cmdline
        )

        self._config = config
        self._proc_matcher = proc_matcher
        self._env_matcher = env_matcher
        self._network_matcher = network_matcher
        self._num_cpu = self._provider.cpu_count()

        if identity_changed:
            dropped = self._registry.drop_identities()
            logger.info("Identity settings changed; refetching %d cached identities", dropped)

        if not config.cgroups.enabled:
            self._cgroups = None
        elif self._explicit_cgroup_reader is not None:
            self._cgroups = self._explicit_cgroup_reader
        else:
            self._cgroups = ProcCgroupReader(
                ReaderOptions(
                    rootfs=self._resolver,
                    ignore_root_cgroups=config.cgroups.ignore_root_cgroups,
                )
            )

    @property
    def config(self) -> SamplerConfig:
        return self._config

    @property
    def registry(self) -> ProcessRegistry:
        return self._registry

    @property
    def provider(self) -> ProcessProvider:
        return self._provider

    # -- public fetches --

    def get(self) -> list[ProcState]:
        """Run one full sampling pass and return the selected processes.

        Raises :class:`EnumerationError` if the process list cannot be read.
        Processes that vanish or deny access mid-pass are left out.
        """
        pids = list(self._provider.pids())
        total_memory = self._provider.total_memory()

        states: list[ProcState] = []
        for pid in pids:
            try:
                info = self._provider.info(pid)
                if not self._match_process(info.name):
                    continue
                states.append(self._sample_process(info, total_memory))
            except ProcessUnavailableError as exc:
                logger.debug("Skipping %s", exc)

        self._registry.prune(pids)
        return include_top_processes(states, self._config.include_top)

    def get_one(self, pid: int) -> ProcState:
        """Sample a single process regardless of name filters or top-N.

        Rates are computed against, and stored into, the same registry as
        :meth:`get`.  Raises :class:`ProcessUnavailableError` on failure.
        """
        info = self._provider.info(pid)
        return self._sample_process(info, self._provider.total_memory())

    def get_self(self) -> ProcState:
        return self.get_one(os.getpid())

    def list_states(self) -> list[ProcState]:
        """Return pid, name and run state for every matched process.

        No counters are read and the registry is not touched.
        """
        states: list[ProcState] = []
        for pid in self._provider.pids():
            try:
                info = self._provider.info(pid)
            except ProcessUnavailableError as exc:
                logger.debug("Skipping %s", exc)
                continue
            if self._match_process(info.name):
                states.append(ProcState.from_info(info))
        return states

    def get_pid_state(self, pid: int) -> str:
        return self._provider.info(pid).state

    # -- per-process work --

    def _match_process(self, name: str) -> bool:
        if not self._proc_matcher.configured:
            return True
        return self._proc_matcher.matches(name)

    def _sample_process(self, info: ProcessInfo, total_memory: int | None) -> ProcState:
        sample = self._provider.sample(info.pid)

        network = None
        if self._config.network.enabled:
            network = self._fetch_network(info.pid)
        cgroup = None
        if self._cgroups is not None:
            cgroup = self._fetch_cgroup(info.pid)
        if network is not None or cgroup is not None:
            sample = dataclasses.replace(sample, network=network, cgroup=cgroup)

        state = ProcState.from_info(info)
        state.sample = sample
        state.identity = self._identity_for(info)

        def derive(prev: ProcState | None, current: ProcState) -> ProcState:
            return self._derive(prev, current, total_memory)

        return self._registry.exchange(info.pid, state, derive)

    def _derive(
        self, prev: ProcState | None, current: ProcState, total_memory: int | None
    ) -> ProcState:
        if prev is None or prev.sample is None or current.sample is None:
            return current
        current.metrics = DerivedMetrics(
            cpu=cpu_percentage(prev.sample, current.sample, self._num_cpu),
            memory_rss_pct=memory_percentage(current.sample.memory_rss, total_memory),
        )
        return current

    def _identity_for(self, info: ProcessInfo) -> ProcessIdentity:
        if self._config.processes.cache_cmdline:
            cached = self._registry.cached_identity(info.pid, info.start_time)
            if cached is not None:
                return cached

        identity = self._provider.identity(info.pid, include_env=self._env_matcher.configured)
        return dataclasses.replace(identity, env=self._filter_env(identity.env))

    def _filter_env(self, env: Mapping[str, str] | None) -> dict[str, str] | None:
        if not env or not self._env_matcher.configured:
            return None
        return {k: v for k, v in env.items() if self._env_matcher.matches(k)}

    def _fetch_network(self, pid: int) -> dict[str, dict[str, int]] | None:
        try:
            counters = self._provider.network(pid)
        except (OSError, ProcessUnavailableError):
            logger.debug("Network counters unavailable for pid=%d", pid, exc_info=True)
            return None
        if counters is None or not self._network_matcher.configured:
            return counters

        filtered: dict[str, dict[str, int]] = {}
        for group, metrics in counters.items():
            kept = {k: v for k, v in metrics.items() if self._network_matcher.matches(k)}
            if kept:
                filtered[group] = kept
        return filtered

    def _fetch_cgroup(self, pid: int) -> dict[str, Any] | None:
        if self._cgroups is None:
            return None
        try:
            return self._cgroups.get_stats_for_pid(pid)
        except OSError:
            logger.debug("Cgroup read failed for pid=%d", pid, exc_info=True)
            return None
