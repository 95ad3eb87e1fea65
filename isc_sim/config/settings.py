from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Optional

from ..model.state import DeviceLimits


@dataclass(frozen=True)
class Settings:
    port: Optional[str]
    baudrate: int
    timeout_s: float
    report_interval_s: float
    log_dir: str
    log_level: str
    temperature: float
    channel: int

    def limits(self) -> DeviceLimits:
        return DeviceLimits(temperature=self.temperature, channel=self.channel)


def get_settings() -> Settings:
    """
    Centralized configuration for the simulator.
    Values come from environment variables with safe defaults.
    """
    defaults = DeviceLimits()
    return Settings(
        port=os.getenv("ISC_SIM_PORT") or None,
        baudrate=int(os.getenv("ISC_SIM_BAUDRATE", "115200")),
        timeout_s=float(os.getenv("ISC_SIM_TIMEOUT", "1.0")),
        report_interval_s=float(os.getenv("ISC_SIM_REPORT_INTERVAL", "5.0")),
        log_dir=os.getenv("ISC_SIM_LOG_DIR", "logs"),
        log_level=os.getenv("ISC_SIM_LOG_LEVEL", "INFO").upper(),
        temperature=float(os.getenv("ISC_SIM_TEMPERATURE", str(defaults.temperature))),
        channel=int(os.getenv("ISC_SIM_CHANNEL", str(defaults.channel))),
    )
