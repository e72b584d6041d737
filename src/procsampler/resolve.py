"""Host filesystem path resolution for containerized deployments.

When the sampler runs inside a container with the host's root mounted
elsewhere (e.g. ``/hostfs``), every inspection path such as ``/proc``
must be looked up under that mount instead.
"""

from __future__ import annotations

import os


class HostFSResolver:
    """Map logical inspection paths onto an alternate filesystem root."""

    def __init__(self, root: str | os.PathLike[str] = "/") -> None:
        root = os.fspath(root) or "/"
        self._root = os.path.normpath(root)

    @property
    def root(self) -> str:
        return self._root

    def is_set(self) -> bool:
        """True when a non-default root is configured."""
        return self._root != "/"

    def resolve(self, path: str) -> str:
        """Return *path* rebased under the configured root.

        ``resolve("/proc")`` with root ``/hostfs`` gives ``/hostfs/proc``.
        """
        if not self.is_set():
            return path
        return os.path.join(self._root, path.lstrip("/"))

    def __repr__(self) -> str:
        return f"HostFSResolver({self._root!r})"
