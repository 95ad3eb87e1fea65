"""
Wires transport, device, session loop and logs together for the CLI and UI.
"""

from __future__ import annotations
import logging
import socket
from queue import Queue
from typing import BinaryIO, Callable, Optional

from ..devices.base import BaseTransport
from ..devices.rs232_transport import RS232Transport
from ..devices.simulated_device import SimulatedDevice
from ..devices.stream_transport import StreamTransport
from ..model.session import SessionLoop, SessionResult
from ..model.state import DeviceLimits
from ..utils.command_log import CommandLog, CommandRecord
from ..utils.logger import CsvLogger
from ..utils.ports import VirtualPortPair, create_virtual_pair

log = logging.getLogger(__name__)


class Controller:
    """
    The Controller is intentionally very thin; it builds the session for
    whichever transport was asked for. With `ui_queue` set it also
    republishes every command record on a thread‑safe queue for the UI,
    which must then drain it.

    The device and the command log outlive individual sessions: stopping and
    restarting keeps the board state and history, like a real unit that was
    only unplugged.
    """

    def __init__(
        self,
        limits: Optional[DeviceLimits] = None,
        log_dir: Optional[str] = "logs",
        ui_queue: bool = False,
    ) -> None:
        self.device = SimulatedDevice(limits)
        self.command_log = CommandLog()
        self._queue: "Queue[CommandRecord]" = Queue()
        if ui_queue:
            self.command_log.subscribe(self._queue.put)
        self._log_dir = log_dir
        self._csv: Optional[CsvLogger] = None
        self._session: Optional[SessionLoop] = None
        self._pair: Optional[VirtualPortPair] = None

    # -------- Lifecycle -------- #

    def start_serial(
        self, port: str, baudrate: int = 115200, timeout: float = 1.0
    ) -> None:
        transport = RS232Transport(port=port, baudrate=baudrate, timeout=timeout)
        self._start_session(transport, log_prefix="serial")

    def start_stream(
        self, stream: BinaryIO, unblock: Optional[Callable[[], None]] = None
    ) -> None:
        """
        Serve an already-open duplex stream (socket file, pty, ...).
        Without `unblock`, `stop` only takes effect once the stream yields
        data or closes.
        """
        transport = StreamTransport(stream, unblock=unblock)
        self._start_session(transport, log_prefix="stream")

    def start_socket(self, sock: socket.socket) -> None:
        """Serve a connected socket. `stop` shuts it down to end the session."""

        def unblock() -> None:
            sock.shutdown(socket.SHUT_RDWR)

        transport = StreamTransport(
            sock.makefile("rwb"), close_stream=True, unblock=unblock
        )
        self._start_session(transport, log_prefix="socket")

    def start_virtual(self, baudrate: int = 115200, timeout: float = 1.0) -> str:
        """Create a virtual pair, serve its device side, return the client port."""
        self.stop()
        self._pair = create_virtual_pair()
        transport = RS232Transport(
            port=self._pair.device, baudrate=baudrate, timeout=timeout
        )
        self._start_session(transport, log_prefix="virtual")
        return self._pair.client

    def stop(self) -> Optional[SessionResult]:
        result = self._stop_session_only()
        if self._pair:
            self._pair.close()
            self._pair = None
        return result

    def wait(self, timeout: Optional[float] = None) -> Optional[SessionResult]:
        return self._session.join(timeout) if self._session else None

    # -------- Public getters -------- #

    @property
    def queue(self) -> "Queue[CommandRecord]":
        return self._queue

    @property
    def running(self) -> bool:
        return self._session is not None and self._session.is_running()

    @property
    def client_port(self) -> Optional[str]:
        return self._pair.client if self._pair else None

    @property
    def csv_path(self):
        return self._csv.file_path if self._csv else None

    # -------- Private helpers -------- #

    def _start_session(self, transport: BaseTransport, log_prefix: str) -> None:
        if self._session:
            self._stop_session_only()
        transport.connect()
        if self._log_dir and self._csv is None:
            self._csv = CsvLogger(prefix=log_prefix, directory=self._log_dir)
            self.command_log.subscribe(self._csv.append)
        self._session = SessionLoop(transport, self.device, self.command_log)
        self._session.start()
        log.info("Simulator session started")

    def _stop_session_only(self) -> Optional[SessionResult]:
        if self._session is None:
            return None
        self._session.stop()
        self._session.transport.disconnect()
        result = self._session.join(timeout=5)
        self._session = None
        return result
