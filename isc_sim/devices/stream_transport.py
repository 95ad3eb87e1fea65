"""
Transport over any already-open binary duplex stream.
"""

from __future__ import annotations
import threading
from typing import BinaryIO, Callable, Optional

from .base import BaseTransport, TransportClosed, TransportError

TERMINATOR = "\r\n"
_LINE_ENDS = (b"\r", b"\n")
_CHUNK = 256


class StreamTransport(BaseTransport):
    """
    Wraps a binary file-like object (socket makefile, pty, pipe pair).

    The stream is owned by the caller; `disconnect` only closes it when
    `close_stream` is set. `unblock`, if given, is called first on
    `disconnect` to wake a reader blocked in the stream (for a socket,
    `sock.shutdown(socket.SHUT_RDWR)`).
    """

    def __init__(
        self,
        stream: BinaryIO,
        close_stream: bool = False,
        unblock: Optional[Callable[[], None]] = None,
    ) -> None:
        self._stream: Optional[BinaryIO] = stream
        self._close_stream = close_stream
        self._unblock = unblock
        self._buffer = bytearray()
        self._lock = threading.Lock()
        self._eof = False

    # ---------- Private helpers ---------- #

    def _read_chunk(self) -> bytes:
        """Return whatever bytes are available. b'' means end of stream."""
        stream = self._stream
        if stream is None:
            raise TransportError("Stream not open.")
        read1 = getattr(stream, "read1", None)
        if read1 is not None:
            return read1(_CHUNK)
        return stream.read(1)

    def _timed_out(self) -> bool:
        """Whether an empty read means "nothing yet" rather than end of stream."""
        return False

    def _pop_line(self) -> Optional[str]:
        cut = [i for i in (self._buffer.find(end) for end in _LINE_ENDS) if i >= 0]
        if not cut:
            return None
        idx = min(cut)
        line = bytes(self._buffer[:idx])
        del self._buffer[: idx + 1]
        return line.decode("ascii", errors="replace")

    # ---------- Public API ---------- #

    def connect(self) -> None:
        if self._stream is None:
            raise TransportError("Stream already closed.")

    def disconnect(self) -> None:
        if self._unblock is not None and self._stream is not None:
            try:
                self._unblock()
            except OSError:
                pass
        stream, self._stream = self._stream, None
        if stream is not None and self._close_stream:
            try:
                stream.close()
            except OSError:
                # Peer already gone.
                pass

    def is_connected(self) -> bool:
        return self._stream is not None and not self._eof

    def read_line(self) -> Optional[str]:
        while True:
            line = self._pop_line()
            if line is not None:
                return line
            if self._eof:
                if self._buffer:
                    # Unterminated trailing command before close.
                    line = bytes(self._buffer).decode("ascii", errors="replace")
                    self._buffer.clear()
                    return line
                raise TransportClosed("End of stream.")
            try:
                chunk = self._read_chunk()
            except (OSError, ValueError) as ex:
                raise TransportError(f"Read failed: {ex}") from ex
            if chunk:
                self._buffer.extend(chunk)
                continue
            if self._timed_out():
                return None
            self._eof = True

    def write_line(self, line: str) -> None:
        if self._stream is None:
            raise TransportError("Stream not open.")
        data = f"{line}{TERMINATOR}".encode("ascii", errors="replace")
        with self._lock:
            try:
                self._stream.write(data)
                self._stream.flush()
            except (OSError, ValueError) as ex:
                raise TransportError(f"Write failed: {ex}") from ex
