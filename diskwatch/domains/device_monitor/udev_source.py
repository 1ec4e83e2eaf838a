"""
udev event source.

Thin wrapper around pyudev that gives the device monitor what it needs:
enumeration of present disks, a pollable descriptor, and single event
receipt.
"""

from typing import List, Optional

import pyudev
from loguru import logger

from diskwatch.domains.device_monitor.errors import EventSourceError

DISK_DEVTYPE = "disk"
MONITOR_SUBSYSTEM = "block"


class UdevEventSource:
    """Owns the udev context and netlink monitor for the daemon lifetime."""

    def __init__(self, context: pyudev.Context, monitor: pyudev.Monitor):
        self.context = context
        self.monitor = monitor
        self._closed = False

    @classmethod
    def open(cls) -> "UdevEventSource":
        """
        Create the udev context and a netlink monitor filtered to disks.

        Raises:
            EventSourceError: If the context, monitor or filter can't be set up
        """
        try:
            context = pyudev.Context()
        except (OSError, ImportError) as e:
            # ImportError: libudev shared library not found
            raise EventSourceError(f"udev context: {e}") from e

        try:
            monitor = pyudev.Monitor.from_netlink(context, source="udev")
        except (OSError, ValueError) as e:
            raise EventSourceError(f"udev netlink monitor: {e}") from e

        try:
            monitor.filter_by(subsystem=MONITOR_SUBSYSTEM, device_type=DISK_DEVTYPE)
        except OSError as e:
            raise EventSourceError(f"udev monitor filter: {e}") from e

        logger.debug("udev monitor created")
        return cls(context, monitor)

    def enumerate_disks(self) -> List[pyudev.Device]:
        """
        List every present device with ``DEVTYPE=disk``.

        Raises:
            EventSourceError: If udev enumeration fails
        """
        try:
            return list(self.context.list_devices(DEVTYPE=DISK_DEVTYPE))
        except OSError as e:
            raise EventSourceError(f"udev enumerate: {e}") from e

    def start(self) -> None:
        """Start receiving events on the netlink socket."""
        try:
            self.monitor.start()
        except OSError as e:
            raise EventSourceError(f"udev enable receiving: {e}") from e

    def fileno(self) -> int:
        return self.monitor.fileno()

    def receive(self) -> Optional[pyudev.Device]:
        """Receive one pending event without blocking; None if nothing is queued."""
        try:
            return self.monitor.poll(timeout=0)
        except OSError as e:
            logger.warning(f"Failed to receive udev event: {e}")
            return None

    def close(self) -> None:
        """Drop the monitor and context references. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        self.monitor = None
        self.context = None
        logger.debug("udev monitor released")

    def __enter__(self) -> "UdevEventSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
