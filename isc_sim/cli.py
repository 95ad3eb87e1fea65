"""
Command line entry point.

Usage:
    isc-sim --virtual                 # create a socat pair, print client port
    isc-sim --port /dev/ttyUSB0       # serve an existing port
    streamlit run isc_sim/ui/app.py   # dashboard instead of console
"""

from __future__ import annotations
import argparse
import logging
import sys
import time
from typing import List, Optional

from .config.settings import get_settings
from .controller.controller import Controller
from .devices.base import SimulatorError
from .utils.ports import available_ports
from .utils.reporter import LogReporter


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="isc-sim",
        description="Simulate a MiniCircuits ISC board on a serial port.",
    )
    target = parser.add_mutually_exclusive_group()
    target.add_argument("--port", default=settings.port,
                        help="Device-side serial port to serve")
    target.add_argument("--virtual", action="store_true",
                        help="Create a virtual port pair with socat (default)")
    parser.add_argument("--baudrate", type=int, default=settings.baudrate)
    parser.add_argument("--timeout", type=float, default=settings.timeout_s,
                        help="Serial read timeout in seconds")
    parser.add_argument("--report-interval", type=float,
                        default=settings.report_interval_s,
                        help="Seconds between command log printouts (0 = off)")
    parser.add_argument("--log-dir", default=settings.log_dir,
                        help="Directory for the CSV command log")
    parser.add_argument("--log-level", default=settings.log_level,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = get_settings()

    print("Starting MiniCircuit ISC simulator")
    ctrl = Controller(limits=settings.limits(), log_dir=args.log_dir)
    try:
        if args.port and not args.virtual:
            print(f"Available ports: {', '.join(available_ports()) or 'none'}")
            ctrl.start_serial(args.port, baudrate=args.baudrate, timeout=args.timeout)
            print(f"Serving device on {args.port}")
        else:
            client = ctrl.start_virtual(baudrate=args.baudrate, timeout=args.timeout)
            print(f"Connect your application to: {client}")
    except SimulatorError as ex:
        print(f"Error: {ex}", file=sys.stderr)
        return 1

    reporter = None
    if args.report_interval > 0:
        reporter = LogReporter(ctrl.command_log, interval=args.report_interval)
        reporter.start()

    print("Simulator is running. Press Ctrl+C to exit.")
    result = None
    try:
        while ctrl.running:
            time.sleep(0.5)
        result = ctrl.wait()
    except KeyboardInterrupt:
        pass
    finally:
        stopped = ctrl.stop()
        result = result or stopped
        if reporter:
            reporter.stop()
            reporter.report()

    if result and result.error:
        print(f"Session ended: {result.error}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
