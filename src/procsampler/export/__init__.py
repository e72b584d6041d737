"""Export backends (CSV)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from procsampler.providers.base import ProcState

from procsampler.export.csv_logger import CSVLogger

logger = logging.getLogger(__name__)


class ExportManager:
    """Manages export backends.

    Currently supports CSV logging.  Call ``update_states`` after each
    sampling pass to push data to all active exporters.
    """

    def __init__(self, csv_path: Path | None = None) -> None:
        self._csv: CSVLogger | None = None
        if csv_path is not None:
            self._csv = CSVLogger(csv_path)

    @property
    def active(self) -> bool:
        return self._csv is not None

    def start(self) -> None:
        if self._csv is not None:
            self._csv.start()

    def stop(self) -> None:
        if self._csv is not None:
            self._csv.stop()

    def update_states(self, states: Sequence[ProcState]) -> None:
        if self._csv is None:
            return
        try:
            self._csv.write_states(states)
        except OSError:
            logger.warning("CSV export failed", exc_info=True)


__all__ = ["CSVLogger", "ExportManager"]
