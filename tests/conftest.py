import socket

import pytest

from isc_sim.devices.simulated_device import SimulatedDevice
from isc_sim.devices.stream_transport import StreamTransport
from isc_sim.model.session import SessionLoop
from isc_sim.utils.command_log import CommandLog


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Wire:
    """Client end of a socketpair whose other end is served by a SessionLoop."""

    def __init__(self, device: SimulatedDevice) -> None:
        self._dev_sock, self._client_sock = socket.socketpair()
        self._client_sock.settimeout(5.0)
        self.device = device
        self.command_log = CommandLog()
        self.transport = StreamTransport(self._dev_sock.makefile("rwb"))
        self.loop = SessionLoop(self.transport, device, self.command_log)
        self._client = self._client_sock.makefile("rwb")

    def send(self, line: str) -> None:
        self._client.write(f"{line}\r\n".encode("ascii"))
        self._client.flush()

    def send_raw(self, data: bytes) -> None:
        self._client.write(data)
        self._client.flush()

    def receive(self) -> str:
        return self._client.readline().decode("ascii").rstrip("\r\n")

    def ask(self, line: str) -> str:
        self.send(line)
        return self.receive()

    def hang_up(self):
        self._client_sock.shutdown(socket.SHUT_WR)
        return self.loop.join(timeout=5)

    def close(self) -> None:
        self._client.close()
        self._client_sock.close()
        self._dev_sock.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def device(clock):
    return SimulatedDevice(clock=clock)


@pytest.fixture
def wire(device):
    w = Wire(device)
    w.loop.start()
    try:
        yield w
    finally:
        w.close()
