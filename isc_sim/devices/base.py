"""
Exceptions and the abstract transport the session loop talks through.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional


class SimulatorError(Exception):
    """Base class for all simulator errors."""


class TransportError(SimulatorError):
    """Raised when the byte stream fails to read or write."""


class TransportClosed(TransportError):
    """Raised when the peer closed the stream (end of stream)."""


class DeviceStateError(SimulatorError):
    """A device-state field was observed outside its defined range."""


class BaseTransport(ABC):
    """Line-oriented duplex stream, already established by someone else."""

    @abstractmethod
    def connect(self) -> None: ...

    @abstractmethod
    def disconnect(self) -> None: ...

    @abstractmethod
    def is_connected(self) -> bool: ...

    @abstractmethod
    def read_line(self) -> Optional[str]:
        """
        Block until one terminated line arrives and return it without the
        terminator. Returns None if the read timed out with nothing pending.
        """

    @abstractmethod
    def write_line(self, line: str) -> None:
        """Write `line` followed by the CR-LF terminator."""

    # Context‑manager sugar
    def __enter__(self) -> "BaseTransport":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disconnect()
