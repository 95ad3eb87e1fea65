"""
The virtual ISC board: current state behind a lock, plus the clock.
"""

from __future__ import annotations
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

from ..model.state import DeviceLimits, DeviceState, StatusFlag
from ..protocol.dispatcher import dispatch
from ..protocol.grammar import ParseResult, parse_line

log = logging.getLogger(__name__)


class SimulatedDevice:
    """
    Owns the single DeviceState of the process. Every command goes through
    `send_command`, which parses, dispatches and swaps in the new state
    while holding the lock, so concurrent sessions are serialised.
    """

    def __init__(
        self,
        limits: Optional[DeviceLimits] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limits = limits or DeviceLimits()
        self._clock = clock
        self._lock = threading.Lock()
        self._state = DeviceState.initial(self.limits, self._clock())

    # ---- Behaviour ---- #

    def execute(self, line: str) -> tuple[ParseResult, str]:
        """Run one raw line; returns the parse result and the reply text."""
        command = parse_line(line)
        with self._lock:
            self._state, response = dispatch(
                self._state, command, self.limits, self._clock()
            )
        log.debug("%r -> %r", line, response)
        return command, response

    def send_command(self, line: str) -> str:
        """Answer `line` exactly as the board would."""
        return self.execute(line)[1]

    # ---- Inspection / test hooks ---- #

    @property
    def state(self) -> DeviceState:
        with self._lock:
            return self._state

    def raise_status(self, flags: StatusFlag) -> None:
        """Latch condition flags, e.g. to test a driver's error handling."""
        with self._lock:
            self._state = self._state.with_flags(self._state.status_flags | flags)

    def query(self) -> Dict[str, Any]:
        """Return the current state as a flat dict (for the dashboard)."""
        state = self.state
        return {
            "frequency": state.frequency,
            "rf_output_enabled": state.rf_output_enabled,
            "phase": state.phase,
            "temperature": state.temperature,
            "uptime": state.uptime(self._clock()),
            "status_flags": int(state.status_flags),
        }
