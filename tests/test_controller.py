import socket

import pytest

from isc_sim.config.settings import get_settings
from isc_sim.controller.controller import Controller
from isc_sim.model.session import CLOSED, STOPPED
from isc_sim.utils import ports
from isc_sim.utils.ports import PortSetupError, parse_socat_ports


def test_controller_serves_a_stream(tmp_path):
    dev_sock, client_sock = socket.socketpair()
    client_sock.settimeout(5)
    ctrl = Controller(log_dir=str(tmp_path), ui_queue=True)
    ctrl.start_stream(dev_sock.makefile("rwb"))
    assert ctrl.running

    client = client_sock.makefile("rwb")
    client.write(b"$PCS,1,120\r\n$PCG\r\n")
    client.flush()
    assert client.readline() == b"$PCS,1,OK\r\n"
    assert client.readline() == b"$PCG,1,120\r\n"

    client_sock.shutdown(socket.SHUT_WR)
    result = ctrl.wait(timeout=5)
    assert result.reason == CLOSED
    assert ctrl.queue.qsize() == 2
    assert ctrl.queue.get_nowait().raw_input == "$PCS,1,120"
    assert ctrl.csv_path is not None and ctrl.csv_path.exists()
    assert ctrl.device.state.phase == 120

    ctrl.stop()
    assert not ctrl.running
    client.close()
    client_sock.close()
    dev_sock.close()


def test_queue_is_only_fed_for_the_ui():
    dev_sock, client_sock = socket.socketpair()
    client_sock.settimeout(5)
    ctrl = Controller(log_dir=None)
    ctrl.start_socket(dev_sock)
    client = client_sock.makefile("rwb")
    client.write(b"$ECG\r\n")
    client.flush()
    assert client.readline() == b"$ECG,1,0\r\n"

    client_sock.shutdown(socket.SHUT_WR)
    assert ctrl.wait(timeout=5).reason == CLOSED
    assert len(ctrl.command_log) == 1
    assert ctrl.queue.empty()
    assert ctrl.csv_path is None
    ctrl.stop()
    client.close()
    client_sock.close()
    dev_sock.close()


def test_stop_ends_an_idle_socket_session():
    dev_sock, client_sock = socket.socketpair()
    client_sock.settimeout(5)
    ctrl = Controller(log_dir=None)
    ctrl.start_socket(dev_sock)
    client = client_sock.makefile("rwb")
    client.write(b"$FCG\r\n")
    client.flush()
    assert client.readline() == b"$FCG,1,2450000000\r\n"

    # The session is now blocked waiting for the next line.
    result = ctrl.stop()
    assert result is not None
    assert result.reason == STOPPED
    assert result.commands == 1
    assert not ctrl.running
    client.close()
    client_sock.close()
    dev_sock.close()


def test_stop_without_a_session_is_harmless():
    ctrl = Controller(log_dir=None)
    assert ctrl.stop() is None
    assert ctrl.wait(timeout=0) is None
    assert not ctrl.running


def test_parse_socat_ports():
    stderr = [
        "2024/01/01 12:00:00 socat[1] N PTY is /dev/pts/3\n",
        "2024/01/01 12:00:00 socat[1] N PTY is /dev/pts/4\n",
        "2024/01/01 12:00:00 socat[1] N starting data transfer loop\n",
    ]
    assert parse_socat_ports(stderr) == ["/dev/pts/3", "/dev/pts/4"]
    assert parse_socat_ports(["nothing here"]) == []


def test_missing_socat_raises_port_setup_error(monkeypatch):
    def no_socat(*args, **kwargs):
        raise FileNotFoundError("socat")

    monkeypatch.setattr(ports.sys, "platform", "linux")
    monkeypatch.setattr(ports.subprocess, "Popen", no_socat)
    with pytest.raises(PortSetupError):
        ports.create_virtual_pair(settle_s=0)


def test_windows_uses_fixed_pair(monkeypatch):
    monkeypatch.setattr(ports.sys, "platform", "win32")
    pair = ports.create_virtual_pair()
    assert (pair.client, pair.device) == ("COM5", "COM6")
    pair.close()


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("ISC_SIM_PORT", "/dev/ttyS9")
    monkeypatch.setenv("ISC_SIM_BAUDRATE", "9600")
    monkeypatch.setenv("ISC_SIM_TEMPERATURE", "41.0")
    monkeypatch.setenv("ISC_SIM_CHANNEL", "2")
    monkeypatch.setenv("ISC_SIM_LOG_LEVEL", "debug")
    s = get_settings()
    assert s.port == "/dev/ttyS9"
    assert s.baudrate == 9600
    assert s.log_level == "DEBUG"
    limits = s.limits()
    assert (limits.temperature, limits.channel) == (41.0, 2)


def test_settings_defaults(monkeypatch):
    for name in ("ISC_SIM_PORT", "ISC_SIM_BAUDRATE", "ISC_SIM_TEMPERATURE"):
        monkeypatch.delenv(name, raising=False)
    s = get_settings()
    assert s.port is None
    assert s.baudrate == 115200
    assert s.limits().temperature == 35.5
