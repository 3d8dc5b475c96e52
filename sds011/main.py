#!/usr/bin/env python3
"""
SDS011 - CLI Entry Point

Usage:
    sds011 --query /dev/ttyUSB0
    sds011 --listen /dev/ttyUSB0 --duration 30
    python -m sds011.main --listen COM3 -v
"""

import argparse
import logging
import sys
import threading
import time
from typing import List, Optional

from .client import SDS011
from .constants import DEFAULT_READ_TIMEOUT, Mode
from .exceptions import SDS011Error
from .measurement import Measurement

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sds011",
        description="Read particulate matter measurements from an SDS011 sensor."
    )
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--query", action="store_true",
                       help="query mode: read a single measurement, then sleep")
    group.add_argument("--listen", action="store_true",
                       help="listen mode: log streamed measurements")
    parser.add_argument("serial_port", help="name of the sensor's serial port")
    parser.add_argument("--duration", type=float, default=10.0,
                        help="seconds to listen for (default: %(default)s)")
    parser.add_argument("--warmup", type=float, default=10.0,
                        help="seconds to run the fan before querying (default: %(default)s)")
    parser.add_argument("--timeout", type=float, default=DEFAULT_READ_TIMEOUT,
                        help="response timeout in seconds (default: %(default)s)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="log frames sent and received")
    return parser


def query(sensor: SDS011, warmup: float) -> Measurement:
    """Read a single measurement in query mode and put the sensor to sleep."""
    sensor.set_mode(Mode.QUERY)

    logger.info("Warming up")
    time.sleep(warmup)
    logger.info("Querying")

    measurement = sensor.query_once()

    time.sleep(1)
    sensor.sleep()
    return measurement


def listen(sensor: SDS011, duration: float) -> None:
    """Log measurements streamed in active mode for duration seconds."""
    sensor.set_mode(Mode.ACTIVE)
    sensor.set_working_period(0)

    errors: List[SDS011Error] = []

    def run() -> None:
        try:
            sensor.start_listen(handler)
        except SDS011Error as e:
            errors.append(e)

    thread = threading.Thread(target=run, name="sds011-listen", daemon=True)
    logger.info("Listening")
    thread.start()

    # stop_listen is a no-op until start_listen has armed its stop signal
    while thread.is_alive() and not sensor.is_listening:
        thread.join(0.01)

    time.sleep(duration)
    sensor.stop_listen()
    thread.join()

    if errors:
        raise errors[0]


def handler(measurement: Measurement) -> None:
    logger.info(f"{measurement}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    try:
        with SDS011.open(args.serial_port, read_timeout=args.timeout) as sensor:
            sensor.wake()
            firmware = sensor.get_firmware_version()
            logger.info(f"Firmware version: 20{firmware[0]:02d}-{firmware[1]:02d}-{firmware[2]:02d}")

            if args.query:
                print(query(sensor, args.warmup))
            else:
                listen(sensor, args.duration)
    except SDS011Error as e:
        logger.error(f"{e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
