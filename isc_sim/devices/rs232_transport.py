"""
RS‑232 transport for the device side of a (virtual) serial port.
"""

from __future__ import annotations
import serial
from typing import Optional

from .base import TransportError
from .stream_transport import StreamTransport


class RS232Transport(StreamTransport):
    """
    A very thin synchronous wrapper over pySerial, matching the
    BaseTransport interface. `port` may be a device path or any pySerial
    URL (`socket://host:port`, `loop://`, ...). Reads time out after
    `timeout` seconds so the session loop can notice a stop request.
    """

    def __init__(
        self,
        port: str,
        baudrate: int = 115200,
        timeout: float = 1.0,
    ) -> None:
        super().__init__(stream=None, close_stream=True)  # type: ignore[arg-type]
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self._ser: Optional[serial.Serial] = None

    # ---------- Private helpers ---------- #

    def _read_chunk(self) -> bytes:
        if not self._ser:
            raise TransportError("Serial port not open.")
        return self._ser.read(self._ser.in_waiting or 1)

    def _timed_out(self) -> bool:
        # pySerial returns b"" when the read timeout expires.
        return True

    # ---------- Public API ---------- #

    def connect(self) -> None:
        try:
            self._ser = serial.serial_for_url(
                self.port,
                baudrate=self.baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self.timeout,
            )
        except serial.SerialException as ex:
            raise TransportError(f"Failed to open port {self.port}: {ex}") from ex
        self._stream = self._ser
        self._eof = False

    def disconnect(self) -> None:
        if self._ser:
            if self._ser.is_open:
                try:
                    self._ser.close()
                except (OSError, serial.SerialException):
                    # Port was yanked (USB unplug / socat killed) – ignore.
                    pass
            self._ser = None
        self._stream = None

    def is_connected(self) -> bool:
        return self._ser is not None and self._ser.is_open
