"""CLI entry point for procsampler."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

from procsampler import __version__

if TYPE_CHECKING:
    from procsampler.config import ConfigHolder, SamplerConfig
    from procsampler.export import ExportManager
    from procsampler.sampler import ProcessSampler

logger = logging.getLogger(__name__)

_EXIT_FAILURE = 1
_EXIT_CONFIG = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="procsampler",
        description="Sample per-process CPU and memory usage as JSON lines.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"procsampler {__version__}",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to config TOML file",
    )
    parser.add_argument(
        "--hostfs",
        default=None,
        metavar="PATH",
        help="Root of the host filesystem (when running in a container)",
    )
    parser.add_argument(
        "--period",
        type=float,
        default=None,
        metavar="FLOAT",
        help="Seconds between sampling passes",
    )
    parser.add_argument(
        "--top-cpu",
        type=int,
        default=None,
        metavar="N",
        help="Report only the N busiest processes by CPU",
    )
    parser.add_argument(
        "--top-memory",
        type=int,
        default=None,
        metavar="N",
        help="Report only the N largest processes by resident memory",
    )
    parser.add_argument(
        "--export-csv",
        type=Path,
        default=None,
        metavar="FILE",
        help="Also append sampled processes to a CSV file",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (logs go to stderr)",
    )

    subparsers = parser.add_subparsers(dest="command")

    sample = subparsers.add_parser("sample", help="Sample processes periodically (default)")
    sample.add_argument("--once", action="store_true", help="Run a single pass and exit")
    sample.add_argument(
        "--count", type=int, default=0, metavar="N", help="Stop after N passes"
    )

    subparsers.add_parser("list", help="List matched processes and their run state")

    pid = subparsers.add_parser("pid", help="Sample one process")
    pid.add_argument("pid", type=int)
    pid.add_argument(
        "--interval",
        type=float,
        default=1.0,
        metavar="FLOAT",
        help="Seconds between the two samples used to compute rates",
    )

    return parser


def _apply_overrides(config: SamplerConfig, args: argparse.Namespace) -> SamplerConfig:
    """Return *config* with command-line overrides, re-validated."""
    from procsampler.config import SamplerConfig
    from procsampler.providers.base import ConfigError

    data = config.model_dump()
    if args.hostfs is not None:
        data["general"]["hostfs"] = args.hostfs
    if args.period is not None:
        data["general"]["period"] = args.period
    if args.top_cpu is not None:
        data["include_top"]["by_cpu"] = args.top_cpu
    if args.top_memory is not None:
        data["include_top"]["by_memory"] = args.top_memory
    try:
        return SamplerConfig(**data)
    except Exception as exc:
        raise ConfigError(f"Invalid command-line option: {exc}") from exc


def _emit(record: dict[str, Any]) -> None:
    sys.stdout.write(json.dumps(record, separators=(",", ":")) + "\n")
    sys.stdout.flush()


def _run_sample(
    args: argparse.Namespace,
    holder: ConfigHolder,
    sampler: ProcessSampler,
    exporter: ExportManager,
) -> None:
    from procsampler.events import to_event
    from procsampler.providers.base import ConfigError, EnumerationError

    once = getattr(args, "once", False)
    count = getattr(args, "count", 0)
    passes = 0

    while True:
        if holder.check_reload():
            try:
                sampler.apply_config(_apply_overrides(holder.config, args))
            except ConfigError:
                logger.warning("Reloaded config rejected; keeping previous", exc_info=True)

        try:
            states = sampler.get()
        except EnumerationError as exc:
            logger.error("Sampling pass failed: %s", exc)
            if once:
                raise SystemExit(_EXIT_FAILURE) from None
        else:
            cpu_ticks = sampler.config.processes.cpu_ticks
            for state in states:
                _emit(to_event(state, cpu_ticks=cpu_ticks))
            exporter.update_states(states)

        passes += 1
        if once or (count and passes >= count):
            return
        time.sleep(sampler.config.general.period)


def _run_list(sampler: ProcessSampler) -> None:
    from procsampler.providers.base import EnumerationError

    try:
        states = sampler.list_states()
    except EnumerationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(_EXIT_FAILURE) from None
    for state in states:
        _emit({"pid": state.pid, "name": state.name, "state": state.state})


def _run_pid(args: argparse.Namespace, sampler: ProcessSampler) -> None:
    from procsampler.events import to_event
    from procsampler.providers.base import ProcessUnavailableError

    try:
        sampler.get_one(args.pid)
        time.sleep(max(args.interval, 0.0))
        state = sampler.get_one(args.pid)
    except ProcessUnavailableError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(_EXIT_FAILURE) from None
    _emit(to_event(state, cpu_ticks=sampler.config.processes.cpu_ticks))


def main() -> None:
    """Entry point for the procsampler CLI."""
    parser = _build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    from procsampler.config import ConfigHolder
    from procsampler.export import ExportManager
    from procsampler.providers.base import ConfigError
    from procsampler.sampler import ProcessSampler

    try:
        holder = ConfigHolder(path=args.config)
        holder.override(_apply_overrides(holder.config, args))
        sampler = ProcessSampler(holder.config)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(_EXIT_CONFIG) from None

    if args.command == "list":
        _run_list(sampler)
        return
    if args.command == "pid":
        _run_pid(args, sampler)
        return

    # Default to sample (both "sample" subcommand and no subcommand)
    holder.install_signal_handler()
    exporter = ExportManager(csv_path=args.export_csv)
    exporter.start()
    try:
        _run_sample(args, holder, sampler, exporter)
    except KeyboardInterrupt:
        pass
    finally:
        exporter.stop()
