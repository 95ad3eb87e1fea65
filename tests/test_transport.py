import io
import socket
import threading

import pytest

from isc_sim.devices.base import TransportClosed, TransportError
from isc_sim.devices.rs232_transport import RS232Transport
from isc_sim.devices.stream_transport import StreamTransport


def test_reads_lines_with_any_terminator():
    stream = io.BytesIO(b"$FCG\r\n$ECG\r$PCG\n$IDN")
    transport = StreamTransport(stream)
    got = []
    with pytest.raises(TransportClosed):
        while True:
            got.append(transport.read_line())
    assert [line for line in got if line] == ["$FCG", "$ECG", "$PCG", "$IDN"]
    assert not transport.is_connected()


def test_write_line_appends_crlf():
    sock_a, sock_b = socket.socketpair()
    with sock_a, sock_b:
        transport = StreamTransport(sock_a.makefile("rwb"))
        transport.write_line("$FCG,1,2450000000")
        sock_b.settimeout(5)
        assert sock_b.recv(64) == b"$FCG,1,2450000000\r\n"


def test_disconnect_closes_only_owned_streams():
    stream = io.BytesIO()
    StreamTransport(stream).disconnect()
    assert not stream.closed
    owned = StreamTransport(stream, close_stream=True)
    with owned:
        pass
    assert stream.closed


def test_io_after_disconnect_is_a_transport_error():
    transport = StreamTransport(io.BytesIO(b"$FCG\r\n"))
    transport.disconnect()
    with pytest.raises(TransportError):
        transport.read_line()
    with pytest.raises(TransportError):
        transport.write_line("x")


def test_serial_loopback_round_trip():
    # pySerial's loop:// echoes writes back to the reader.
    transport = RS232Transport(port="loop://", timeout=0.1)
    transport.connect()
    assert transport.is_connected()
    assert transport.read_line() is None
    transport.write_line("$ECG,1,0")
    assert transport.read_line() == "$ECG,1,0"
    transport.disconnect()
    assert not transport.is_connected()


def test_serial_open_failure_is_a_transport_error():
    transport = RS232Transport(port="/dev/does-not-exist-isc")
    with pytest.raises(TransportError):
        transport.connect()


def test_disconnect_wakes_a_blocked_reader():
    sock_a, sock_b = socket.socketpair()
    with sock_a, sock_b:
        transport = StreamTransport(
            sock_a.makefile("rwb"),
            close_stream=True,
            unblock=lambda: sock_a.shutdown(socket.SHUT_RDWR),
        )
        outcome = []

        def reader():
            try:
                transport.read_line()
            except TransportError as ex:
                outcome.append(ex)

        thread = threading.Thread(target=reader, daemon=True)
        thread.start()
        thread.join(timeout=0.2)
        assert thread.is_alive()

        transport.disconnect()
        thread.join(timeout=5)
        assert not thread.is_alive()
        assert len(outcome) == 1
        assert not transport.is_connected()
