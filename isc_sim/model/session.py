"""
Read‑dispatch‑write loop over one open transport.
"""

from __future__ import annotations
import logging
import threading
from dataclasses import dataclass
from typing import Optional

from ..devices.base import BaseTransport, TransportClosed, TransportError
from ..devices.simulated_device import SimulatedDevice
from ..utils.command_log import CommandLog, CommandRecord

log = logging.getLogger(__name__)

CLOSED = "closed"
TRANSPORT_ERROR = "transport_error"
STOPPED = "stopped"


@dataclass(frozen=True)
class SessionResult:
    """Why a session ended. Ending is always a normal outcome."""

    reason: str
    commands: int
    error: Optional[str] = None


class SessionLoop:
    """
    Serves one connection: one line in, one reply out, one log record.
    Commands are handled strictly one after another.
    """

    def __init__(
        self,
        transport: BaseTransport,
        device: SimulatedDevice,
        command_log: CommandLog,
    ) -> None:
        self.transport = transport
        self.device = device
        self.command_log = command_log
        self.result: Optional[SessionResult] = None
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._count = 0

    # -------- Public API -------- #

    def run(self) -> SessionResult:
        """Serve until the stream closes, fails, or `stop` is requested."""
        self._count = 0
        try:
            self.result = self._loop()
        except TransportError as ex:
            if self._stop.is_set():
                # Transport was torn down to unblock a pending read.
                self.result = SessionResult(STOPPED, self._count)
            elif isinstance(ex, TransportClosed):
                self.result = SessionResult(CLOSED, self._count)
            else:
                log.error("Transport failure: %s", ex)
                self.result = SessionResult(TRANSPORT_ERROR, self._count, str(ex))
        log.info(
            "Session ended (%s) after %d command(s)",
            self.result.reason,
            self.result.commands,
        )
        return self.result

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """
        Ask the loop to finish. It notices between reads, so transports must
        time out their reads (RS232Transport does) or be disconnected.
        """
        self._stop.set()

    def join(self, timeout: Optional[float] = None) -> Optional[SessionResult]:
        if self._thread:
            self._thread.join(timeout)
        return self.result

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -------- Internal -------- #

    def _loop(self) -> SessionResult:
        while not self._stop.is_set():
            line = self.transport.read_line()
            if line is None or not line.strip():
                # Read timeout or a bare terminator.
                continue
            self.handle_line(line)
        return SessionResult(STOPPED, self._count)

    def handle_line(self, line: str) -> CommandRecord:
        """
        Answer one line. Every line that reached the device is recorded,
        including when its reply could not be written.
        """
        command, response = self.device.execute(line)
        record = CommandRecord(
            raw_input=line.strip(),
            recognized=command.recognized,
            response_sent=response,
        )
        try:
            self.transport.write_line(response)
        finally:
            self.command_log.append(record)
            self._count += 1
        return record
