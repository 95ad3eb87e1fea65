"""
Light‑weight CSV logger for command records.
"""

from __future__ import annotations
from pathlib import Path
from datetime import datetime, timezone
import csv
import threading

from .command_log import CommandRecord

HEADER = ["timestamp_utc", "raw_input", "recognized", "response_sent"]


class CsvLogger:
    """
    Appends one row per CommandRecord to a CSV file.
    Filename prefix indicates the port side, e.g. 'serial' or 'virtual'.
    Subscribe `append` to a CommandLog to persist every record.
    """

    def __init__(self, prefix: str, directory: str | Path = "logs") -> None:
        self._base_dir = Path(directory)
        self._base_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        self._file_path = self._base_dir / f"{prefix}_commands_{timestamp}.csv"
        self._lock = threading.Lock()

        with self._file_path.open("w", newline="") as f:
            csv.writer(f).writerow(HEADER)

    @property
    def file_path(self) -> Path:
        return self._file_path

    def append(self, record: CommandRecord) -> None:
        row = [
            record.timestamp.isoformat(timespec="milliseconds"),
            record.raw_input,
            int(record.recognized),
            record.response_sent,
        ]
        with self._lock, self._file_path.open("a", newline="") as f:
            csv.writer(f).writerow(row)
