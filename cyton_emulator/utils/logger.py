"""
Light‑weight CSV logger for decoded samples, plus diagnostic log setup.
"""

from __future__ import annotations
from pathlib import Path
from datetime import datetime, timezone
import csv
import logging
from typing import Iterable

PACKAGE_LOGGER = "cyton_emulator"


def configure_logging(verbose: bool = False) -> logging.Logger:
    """
    Attach a console handler (once) and pick the package log level.
    DEBUG when *verbose*, INFO otherwise.
    """
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s %(message)s")
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return logger


class CsvLogger:
    """
    Appends one row per sample to a CSV file.
    Filename prefix tells emulated ('sim') and bridged ('bridge') captures apart.
    """

    def __init__(
        self, prefix: str, n_channels: int, directory: str | Path = "logs"
    ) -> None:
        self._base_dir = Path(directory)
        self._base_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
        self._file_path = self._base_dir / f"{prefix}_{n_channels}ch_samples_{timestamp}.csv"

        with self._file_path.open("w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(
                ["timestamp_utc", "sample_number"]
                + [f"ch{i + 1}_uV" for i in range(n_channels)]
                + ["aux_x_g", "aux_y_g", "aux_z_g"]
            )

    @property
    def file_path(self) -> Path:
        return self._file_path

    def append(self, row: Iterable) -> None:
        with self._file_path.open("a", newline="") as f:
            csv.writer(f).writerow(row)
