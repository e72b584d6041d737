"""Per-process cgroup membership.

The sampler treats cgroup data as opaque: it asks a :class:`CgroupReader`
for a mapping and attaches it to the sample.  The bundled
:class:`ProcCgroupReader` reports membership only (hierarchy version,
controller paths, and the container runtime/ID encoded in the path), read
from ``/proc/<pid>/cgroup`` under the host filesystem root.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from procsampler.resolve import HostFSResolver


@dataclass(frozen=True, slots=True)
class ReaderOptions:
    """Where to find cgroup data and whether to report the root cgroup."""

    rootfs: HostFSResolver = field(default_factory=HostFSResolver)
    ignore_root_cgroups: bool = True


@dataclass(frozen=True, slots=True)
class ContainerInfo:
    """Container runtime information."""

    runtime: str
    container_id: str | None


class CgroupReader(ABC):
    """Source of cgroup data for a process."""

    @abstractmethod
    def get_stats_for_pid(self, pid: int) -> dict[str, Any] | None:
        """Return cgroup data for *pid*, or None if there is nothing to report."""


# cgroupv1: /docker/<id>, /podman/<id>, /containerd/<id>
_CGROUP_V1_RE = re.compile(
    r"(?:/docker/|/podman/|/containerd/)([a-f0-9]{12,64})"
)

# cgroupv2: docker-<id>.scope, podman-<id>.scope, cri-containerd-<id>.scope
_CGROUP_V2_RE = re.compile(
    r"(?:docker-|podman-|cri-containerd-)([a-f0-9]{12,64})\.scope"
)

_V1_RUNTIMES = {"/docker/": "docker", "/podman/": "podman", "/containerd/": "containerd"}
_V2_RUNTIMES = {"docker-": "docker", "podman-": "podman", "cri-containerd-": "containerd"}


def parse_container(path: str) -> ContainerInfo | None:
    """Extract runtime and short (12-char) container ID from a cgroup path."""
    match = _CGROUP_V1_RE.search(path)
    if match:
        for marker, runtime in _V1_RUNTIMES.items():
            if marker in match.group(0):
                return ContainerInfo(runtime=runtime, container_id=match.group(1)[:12])

    match = _CGROUP_V2_RE.search(path)
    if match:
        for prefix, runtime in _V2_RUNTIMES.items():
            if match.group(0).startswith(prefix):
                return ContainerInfo(runtime=runtime, container_id=match.group(1)[:12])

    return None


def parse_cgroup_file(content: str) -> dict[str, str]:
    """Map controller names to cgroup paths from /proc/<pid>/cgroup content.

    Lines are ``hierarchy-id:controllers:path``.  The cgroup v2 unified
    hierarchy has an empty controller list and is keyed as ``""``.
    """
    paths: dict[str, str] = {}
    for line in content.splitlines():
        parts = line.strip().split(":", 2)
        if len(parts) != 3:
            continue
        _, controllers, path = parts
        if controllers.startswith("name="):
            continue
        paths[controllers] = path
    return paths


class ProcCgroupReader(CgroupReader):
    """Membership-only reader over /proc/<pid>/cgroup."""

    def __init__(self, options: ReaderOptions | None = None) -> None:
        self._options = options or ReaderOptions()

    @property
    def options(self) -> ReaderOptions:
        return self._options

    def get_stats_for_pid(self, pid: int) -> dict[str, Any] | None:
        path = self._options.rootfs.resolve(f"/proc/{pid}/cgroup")
        try:
            with open(path) as f:
                content = f.read(8192)
        except (FileNotFoundError, PermissionError, ProcessLookupError):
            return None
        return self.from_content(content)

    def from_content(self, content: str) -> dict[str, Any] | None:
        paths = parse_cgroup_file(content)
        if not paths:
            return None
        if self._options.ignore_root_cgroups and all(p == "/" for p in paths.values()):
            return None

        unified = "" in paths and len(paths) == 1
        primary = paths.get("") if unified else _pick_v1_path(paths)
        result: dict[str, Any] = {
            "version": 2 if unified else 1,
            "path": primary,
        }
        if not unified:
            result["controllers"] = {k: v for k, v in paths.items() if k}
        container = parse_container(primary or "")
        if container is not None:
            result["container"] = {
                "runtime": container.runtime,
                "id": container.container_id,
            }
        return result


def _pick_v1_path(paths: dict[str, str]) -> str | None:
    for controllers, path in paths.items():
        if "cpu" in controllers.split(","):
            return path
    return next(iter(paths.values()), None)
