#!/usr/bin/env python3
"""
diskwatch - drive bay LED daemon

Tracks SCSI/SATA disks on the PCI bus and keeps one LED slot per bay in
sync with:
- disk presence (udev add/remove events)
- disk I/O activity (optional polling of per-disk stats)
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from diskwatch.domains.device_monitor.errors import DeviceMonitorError
from diskwatch.domains.device_monitor.monitor import DeviceMonitor
from diskwatch.domains.device_monitor.udev_source import UdevEventSource
from diskwatch.domains.indicators.leds import build_led_control
from diskwatch.utils.config import Settings
from diskwatch.utils.helpers import parse_slot_assignment

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str) -> None:
    """Send loguru output to stderr at ``level``."""
    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=level)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(
        description="Drive bay LEDs from disk presence and I/O activity.",
    )
    parser.add_argument(
        "--activity",
        action="store_true",
        default=None,
        help="Poll per-disk stats and light the activity LED while I/O is in flight.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=None,
        help="More output (can be repeated).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Trace every event and poll tick.",
    )
    parser.add_argument(
        "--slot",
        action="append",
        default=[],
        metavar="DEVNODE=SLOT",
        help="Map a device node to an LED slot, e.g. /dev/sda=0 (can be repeated; "
        "replaces the default mapping).",
    )
    parser.add_argument(
        "--led-driver",
        choices=("console", "sysfs"),
        default=None,
        help="LED backend (default: console).",
    )
    parser.add_argument(
        "--led-root",
        type=Path,
        default=None,
        help="LED class directory for the sysfs backend (default: /sys/class/leds).",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds between activity polls (default: 0.1).",
    )
    parser.add_argument(
        "--inflight-field",
        type=int,
        default=None,
        help="1-based field of the in-flight counter in the stats line (default: 8).",
    )

    return parser.parse_args(argv)


def settings_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Collect the options given on the command line as Settings fields."""
    overrides: Dict[str, Any] = {
        "activity": args.activity,
        "verbose": args.verbose,
        "debug": args.debug,
        "led_driver": args.led_driver,
        "led_root": args.led_root,
        "poll_interval": args.poll_interval,
        "inflight_field": args.inflight_field,
    }
    if args.slot:
        overrides["slot_map"] = dict(parse_slot_assignment(s) for s in args.slot)

    return {k: v for k, v in overrides.items() if v is not None}


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the daemon."""

    args = parse_args(argv)

    try:
        settings = Settings(**settings_overrides(args))
    except ValueError as e:
        configure_logging("ERROR")
        logger.error(f"Invalid configuration: {e}")
        return 1

    configure_logging(settings.effective_log_level())
    logger.info("diskwatch starting")
    logger.debug(f"Slot map: {settings.slot_map}")

    leds = build_led_control(settings)

    try:
        with UdevEventSource.open() as source:
            monitor = DeviceMonitor.from_settings(source, leds, settings)
            logger.debug(f"Wait timeout: {monitor.wait_timeout}s")
            monitor.start()

            for disk in monitor.status():
                logger.info(f"{disk.device_node} -> slot {disk.slot}")

            monitor.run()

    except DeviceMonitorError as e:
        logger.error(f"diskwatch failed: {e}")
        return 1

    logger.info("diskwatch stopped")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI bridge
    sys.exit(main())
