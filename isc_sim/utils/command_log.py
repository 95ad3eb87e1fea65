"""
Append‑only, thread‑safe history of every line the simulator answered.
"""

from __future__ import annotations
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Tuple

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandRecord:
    raw_input: str
    recognized: bool
    response_sent: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __str__(self) -> str:
        mark = "" if self.recognized else " (unrecognized)"
        return f"{self.raw_input!r} -> {self.response_sent!r}{mark}"


_CALLBACK = Callable[[CommandRecord], None]


class CommandLog:
    """
    Ordered record store shared between the session loop (writer) and any
    number of readers. Records are never removed or reordered.
    """

    def __init__(self) -> None:
        self._records: List[CommandRecord] = []
        self._lock = threading.Lock()
        self._callbacks: list[_CALLBACK] = []

    # -------- Writer -------- #

    def append(self, record: CommandRecord) -> int:
        """Store `record` and return its index."""
        with self._lock:
            self._records.append(record)
            index = len(self._records) - 1
            callbacks = list(self._callbacks)
        # Outside the lock so a slow subscriber never blocks readers.
        for cb in callbacks:
            try:
                cb(record)
            except Exception:
                log.exception("Command log subscriber %r failed", cb)
        return index

    def subscribe(self, cb: _CALLBACK) -> None:
        """
        Register a callback executed on every appended record. A callback
        that raises is logged and skipped; the record is still stored.
        """
        with self._lock:
            self._callbacks.append(cb)

    # -------- Readers -------- #

    def read_all(self) -> List[CommandRecord]:
        with self._lock:
            return list(self._records)

    def read_since(self, index: int) -> Tuple[List[CommandRecord], int]:
        """
        Records appended at or after `index`, plus the index to pass next
        time. Poll with the returned cursor to see each record exactly once.
        """
        with self._lock:
            start = max(0, index)
            return self._records[start:], len(self._records)

    def tail(self, n: int) -> List[CommandRecord]:
        with self._lock:
            return self._records[-n:] if n > 0 else []

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
