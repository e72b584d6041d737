"""Process data providers and factory."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from procsampler.providers.base import (
    ConfigError,
    CPUPercentages,
    DerivedMetrics,
    EnumerationError,
    ProcessAccessError,
    ProcessGoneError,
    ProcessIdentity,
    ProcessInfo,
    ProcessProvider,
    ProcessSample,
    ProcessUnavailableError,
    ProcsamplerError,
    ProcState,
)

if TYPE_CHECKING:
    from procsampler.resolve import HostFSResolver

__all__ = [
    "CPUPercentages",
    "ConfigError",
    "DerivedMetrics",
    "EnumerationError",
    "ProcState",
    "ProcessAccessError",
    "ProcessGoneError",
    "ProcessIdentity",
    "ProcessInfo",
    "ProcessProvider",
    "ProcessSample",
    "ProcessUnavailableError",
    "ProcsamplerError",
    "get_provider",
]


def get_provider(resolver: HostFSResolver | None = None) -> ProcessProvider:
    """Create the provider for the running platform."""
    from procsampler.providers.psutil_backend import LinuxProvider, PsutilProvider

    if sys.platform.startswith("linux"):
        return LinuxProvider(resolver)
    return PsutilProvider(resolver)
