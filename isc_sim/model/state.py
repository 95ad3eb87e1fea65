"""
In‑memory state of the simulated ISC board.
"""

from __future__ import annotations
import enum
from dataclasses import dataclass, field, replace

from ..devices.base import DeviceStateError


class StatusFlag(enum.IntFlag):
    """Condition bits reported by `$ST`, same values as the real board."""

    UNSPECIFIED_ERROR = 0x000000001
    HIGH_PA_TEMPERATURE = 0x000000002
    SHUTDOWN_PA_TEMPERATURE = 0x000000004
    HIGH_REFLECTED_POWER = 0x000000008
    SHUTDOWN_REFLECTED_POWER = 0x000000010
    RESET_DETECTED = 0x000000020
    TEMPERATURE_READOUT_ERROR = 0x000000040
    POWER_MEASUREMENT_FAILURE = 0x000000080
    RF_ENABLE_FAILURE = 0x000000100
    MULTIPLEXER_FAILURE = 0x000000200
    EXTERNAL_SHUTDOWN_TRIGGERED = 0x000000400
    OUT_OF_MEMORY = 0x000000800
    I2C_COMMUNICATION_ERROR = 0x000001000
    SPI_COMMUNICATION_ERROR = 0x000002000
    SOA_MEASUREMENT_ERROR = 0x000008000
    EXTERNAL_WATCHDOG_TIMEOUT = 0x000010000
    CALIBRATION_MISSING = 0x000020000
    EXTERNAL_PROTECTION_TRIGGERED = 0x000040000
    SOA_HIGH_DISSIPATION = 0x000080000
    SOA_SHUTDOWN_DISSIPATION = 0x000100000
    CALIBRATION_EEPROM_OUTDATED = 0x000200000
    PA_ERROR = 0x000400000
    PA_RESET_FAILURE = 0x000800000
    PA_HIGH_CURRENT = 0x001000000
    ALARM_IN = 0x004000000
    SOA_HIGH_CURRENT = 0x010000000
    SOA_SHUTDOWN_CURRENT = 0x020000000
    SOA_HIGH_FORWARD_POWER = 0x040000000
    SOA_SHUTDOWN_FORWARD_POWER = 0x080000000
    SOA_SHUTDOWN_MINIMUM_VOLTAGE = 0x100000000
    SOA_LOW_VOLTAGE = 0x200000000
    SOA_HIGH_VOLTAGE = 0x400000000
    SOA_SHUTDOWN_MAXIMUM_VOLTAGE = 0x800000000


NO_FLAGS = StatusFlag(0)


@dataclass(frozen=True)
class DeviceLimits:
    """Fixed characteristics of the emulated unit (ISC‑2425‑25+)."""

    frequency_min: int = 2_400_000_000      # Hz
    frequency_max: int = 2_500_000_000      # Hz
    default_frequency: int = 2_450_000_000  # Hz
    phase_modulus: int = 360                # degrees, valid 0..359
    temperature: float = 35.5               # °C, read-only
    channel: int = 1
    manufacturer: str = "MiniCircuits"
    model: str = "ISC-2425-25+"
    serial_number: str = "SN12345678"

    def frequency_in_range(self, value: int) -> bool:
        return self.frequency_min <= value <= self.frequency_max

    def phase_in_range(self, value: int) -> bool:
        return 0 <= value < self.phase_modulus


@dataclass(frozen=True)
class DeviceState:
    """
    Snapshot of the board's settings and readings.

    Instances are immutable; every transition builds a new one, so a reader
    holding a snapshot never sees it change underneath.
    """

    frequency: int
    rf_output_enabled: bool
    phase: int
    temperature: float
    start_time: float
    status_flags: StatusFlag = field(default=NO_FLAGS)

    # -------- Construction -------- #

    @classmethod
    def initial(cls, limits: DeviceLimits, now: float) -> "DeviceState":
        """Power‑on defaults, with the uptime origin at `now`."""
        return cls(
            frequency=limits.default_frequency,
            rf_output_enabled=False,
            phase=0,
            temperature=limits.temperature,
            start_time=now,
            status_flags=NO_FLAGS,
        )

    # -------- Transitions -------- #

    def with_frequency(self, frequency: int) -> "DeviceState":
        return replace(self, frequency=frequency)

    def with_rf_output(self, enabled: bool) -> "DeviceState":
        return replace(self, rf_output_enabled=enabled)

    def with_phase(self, phase: int) -> "DeviceState":
        return replace(self, phase=phase)

    def with_flags(self, flags: StatusFlag) -> "DeviceState":
        return replace(self, status_flags=StatusFlag(flags))

    # -------- Readings -------- #

    def uptime(self, now: float) -> int:
        """Whole seconds since `start_time`, never negative."""
        return max(0, int(now - self.start_time))

    def validate(self, limits: DeviceLimits) -> None:
        """Raise DeviceStateError if any field left its defined range."""
        if not limits.frequency_in_range(self.frequency):
            raise DeviceStateError(f"frequency out of range: {self.frequency}")
        if not limits.phase_in_range(self.phase):
            raise DeviceStateError(f"phase out of range: {self.phase}")
        if not isinstance(self.rf_output_enabled, bool):
            raise DeviceStateError(
                f"rf_output_enabled is not a bool: {self.rf_output_enabled!r}"
            )
        if int(self.status_flags) < 0:
            raise DeviceStateError(f"negative status flags: {self.status_flags}")
