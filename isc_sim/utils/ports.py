"""
Virtual serial port pair for running the simulator without hardware.

On Unix a `socat` child links two pseudo terminals; on Windows a com0com
pair must already exist and the fixed COM5/COM6 names are used.
"""

from __future__ import annotations
import logging
import re
import subprocess
import sys
import time
from dataclasses import dataclass
from typing import List, Optional

from serial.tools import list_ports

from ..devices.base import SimulatorError

log = logging.getLogger(__name__)

DEFAULT_WINDOWS_CLIENT_PORT = "COM5"
DEFAULT_WINDOWS_DEVICE_PORT = "COM6"

_PTY_RE = re.compile(r"PTY is (\S+)")
_SOCAT_ARGS = ["socat", "-d", "-d", "pty,raw,echo=0", "pty,raw,echo=0"]


class PortSetupError(SimulatorError):
    """Raised when the virtual port pair could not be created."""


@dataclass
class VirtualPortPair:
    client: str
    device: str
    process: Optional[subprocess.Popen] = None

    def close(self) -> None:
        if self.process is None:
            return
        self.process.terminate()
        try:
            self.process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            self.process.kill()
        self.process = None


def parse_socat_ports(lines) -> List[str]:
    """Collect PTY paths from socat's `-d -d` stderr, stopping at two."""
    ports: List[str] = []
    for line in lines:
        match = _PTY_RE.search(line)
        if match:
            ports.append(match.group(1))
            if len(ports) == 2:
                break
    return ports


def create_virtual_pair(settle_s: float = 1.0) -> VirtualPortPair:
    """Create the pair. The first port is for the client, the second for us."""
    if sys.platform.startswith("win"):
        return VirtualPortPair(DEFAULT_WINDOWS_CLIENT_PORT, DEFAULT_WINDOWS_DEVICE_PORT)

    log.info("Setting up virtual serial ports with socat...")
    try:
        proc = subprocess.Popen(
            _SOCAT_ARGS, stderr=subprocess.PIPE, text=True, bufsize=1
        )
    except FileNotFoundError as ex:
        raise PortSetupError(
            "socat not found. On macOS run `brew install socat`, "
            "on Debian/Ubuntu `sudo apt-get install socat`."
        ) from ex

    assert proc.stderr is not None
    ports = parse_socat_ports(proc.stderr)
    if len(ports) != 2:
        proc.kill()
        raise PortSetupError("Could not find both PTY ports in socat output.")

    # Give socat a moment before the ports are opened.
    time.sleep(settle_s)
    return VirtualPortPair(client=ports[0], device=ports[1], process=proc)


def available_ports() -> List[str]:
    return [p.device for p in list_ports.comports()]
