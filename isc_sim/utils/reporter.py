"""
Periodic console printer for the command log.
"""

from __future__ import annotations
import threading
from typing import Callable, Optional

from .command_log import CommandLog


class LogReporter:
    """Every `interval` seconds, print the newest records since last tick."""

    def __init__(
        self,
        command_log: CommandLog,
        interval: float = 5.0,
        tail: int = 5,
        out: Callable[[str], None] = print,
    ) -> None:
        self.command_log = command_log
        self.interval = interval
        self.tail = tail
        self._out = out
        self._cursor = 0
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join()

    def report(self) -> int:
        """Print what arrived since the previous call; returns that count."""
        records, self._cursor = self.command_log.read_since(self._cursor)
        if not records:
            return 0
        shown = records[-self.tail:]
        self._out(f"\nCommand log (last {len(shown)} of {self._cursor} commands):")
        first = self._cursor - len(shown) + 1
        for number, record in enumerate(shown, start=first):
            self._out(f"  {number}: {record}")
        return len(records)

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            self.report()
