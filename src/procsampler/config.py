"""Pydantic-validated config with SIGHUP-triggered hot-reload.

TOML loading uses ``tomllib`` (3.11+) with ``tomli`` fallback.  Every
regex list is compiled during validation so a bad pattern fails at load
time, never in the middle of a sampling cycle.
"""

from __future__ import annotations

import logging
import re
import signal
import sys
import threading
from pathlib import Path

from pydantic import BaseModel, ConfigDict, field_validator

from procsampler.providers.base import ConfigError

if sys.version_info >= (3, 11):
    import tomllib  # type: ignore[import-not-found]
else:
    try:
        import tomllib  # type: ignore[import-not-found]
    except ModuleNotFoundError:
        import tomli as tomllib

logger = logging.getLogger(__name__)

_CONFIG_DIR = Path("~/.config/procsampler").expanduser()
_DEFAULT_CONFIG_PATH = _CONFIG_DIR / "config.toml"


def _check_patterns(patterns: list[str]) -> list[str]:
    for pattern in patterns:
        try:
            re.compile(pattern)
        except re.error as exc:
            msg = f"invalid regular expression {pattern!r}: {exc}"
            raise ValueError(msg) from exc
    return patterns


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class GeneralConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    period: float = 10.0
    hostfs: str = "/"

    @field_validator("period")
    @classmethod
    def _check_period(cls, v: float) -> float:
        if v < 0.1 or v > 3600:
            msg = "period must be between 0.1 and 3600"
            raise ValueError(msg)
        return v


class ProcessesConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    procs: list[str] = [".*"]
    cpu_ticks: bool = False
    cache_cmdline: bool = True
    env_whitelist: list[str] = []

    @field_validator("procs", "env_whitelist")
    @classmethod
    def _check_regexes(cls, v: list[str]) -> list[str]:
        return _check_patterns(v)


class IncludeTopConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    by_cpu: int = 0
    by_memory: int = 0

    @field_validator("by_cpu", "by_memory")
    @classmethod
    def _check_count(cls, v: int) -> int:
        if v < 0:
            msg = "include_top counts must be non-negative"
            raise ValueError(msg)
        return v


class NetworkConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    metrics: list[str] = []

    @field_validator("metrics")
    @classmethod
    def _check_regexes(cls, v: list[str]) -> list[str]:
        return _check_patterns(v)


class CgroupsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    ignore_root_cgroups: bool = True


class SamplerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    general: GeneralConfig = GeneralConfig()
    processes: ProcessesConfig = ProcessesConfig()
    include_top: IncludeTopConfig = IncludeTopConfig()
    network: NetworkConfig = NetworkConfig()
    cgroups: CgroupsConfig = CgroupsConfig()


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_config(path: Path | None = None) -> SamplerConfig:
    """Load config from *path*, default locations, or built-in defaults.

    Resolution order:
    1. Explicit *path* (error if missing or invalid).
    2. ``~/.config/procsampler/config.toml`` (skip silently if absent).
    3. Built-in defaults.

    Raises :class:`ConfigError` on parse/validation failure.
    """
    if path is not None:
        return _load_from_path(path)

    if _DEFAULT_CONFIG_PATH.is_file():
        return _load_from_path(_DEFAULT_CONFIG_PATH)

    return SamplerConfig()


def _load_from_path(path: Path) -> SamplerConfig:
    """Parse a TOML file and return a validated config."""
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc

    try:
        data = tomllib.loads(raw.decode())
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc

    try:
        return SamplerConfig(**data)
    except Exception as exc:
        raise ConfigError(f"Config validation error in {path}: {exc}") from exc


# ---------------------------------------------------------------------------
# ConfigHolder: runtime config with SIGHUP reload
# ---------------------------------------------------------------------------


class ConfigHolder:
    """Config container with signal-triggered reload.

    Usage::

        holder = ConfigHolder(path)
        holder.install_signal_handler()

        # Once per sampling cycle:
        if holder.check_reload():
            sampler.apply_config(holder.config)
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._config = load_config(path)
        self._reload_flag = threading.Event()

    @property
    def config(self) -> SamplerConfig:
        return self._config

    def override(self, config: SamplerConfig) -> None:
        """Replace the active config (used for command-line overrides)."""
        self._config = config

    def reload(self) -> bool:
        """Reload config from disk.  On failure, keep the old config."""
        try:
            self._config = load_config(self._path)
        except ConfigError:
            logger.warning("Config reload failed; keeping previous config", exc_info=True)
            return False
        logger.info("Config reloaded successfully")
        return True

    def install_signal_handler(self) -> None:
        """Register SIGHUP to set the reload flag (Unix only)."""
        if not hasattr(signal, "SIGHUP"):
            return
        signal.signal(signal.SIGHUP, self._on_sighup)

    def check_reload(self) -> bool:
        """Poll the reload flag; returns True if a new config was loaded."""
        if self._reload_flag.is_set():
            self._reload_flag.clear()
            return self.reload()
        return False

    # ------------------------------------------------------------------

    def _on_sighup(self, signum: int, frame: object) -> None:
        self._reload_flag.set()
