"""
Disk presence and activity monitor.

Keeps the drive bay LEDs in sync with the disks udev reports:

- presence (blue) follows add/remove events for mapped disks
- activity (red) follows the in-flight request counter in
  ``<syspath>/stat`` when activity mode is enabled

Everything runs on one thread parked in a single selector wait that
multiplexes the udev monitor socket, a signal wakeup socket and the
activity polling timeout.
"""

import selectors
import signal
from pathlib import Path
from typing import Callable, List, Optional

from loguru import logger

from diskwatch.domains.device_monitor.errors import WaitError
from diskwatch.domains.device_monitor.state import MonitorState, TrackedDisk
from diskwatch.domains.indicators.leds import Channel, LedControl
from diskwatch.models.schemas import DiskStatus, SlotMapping
from diskwatch.utils.config import Settings
from diskwatch.utils.helpers import (
    StatsParseError,
    can_open,
    parse_stats_field,
    read_stats_line,
    stats_path_for,
)
from diskwatch.utils.signals import SignalWakeup

SCSI_SUBSYSTEM = "scsi"
SCSI_HOST_DEVTYPE = "scsi_host"
HOST_BUS_SUBSYSTEM = "pci"

DEVICE_EVENT = "device"
SIGNAL_WAKEUP = "signal"


def scsi_host_of(device):
    """Return the SCSI host a device hangs off, or None."""
    return device.find_parent(SCSI_SUBSYSTEM, SCSI_HOST_DEVTYPE)


class DeviceMonitor:
    """Maps udev disks to LED slots and drives their LEDs."""

    def __init__(
        self,
        source,
        leds: LedControl,
        slot_map: SlotMapping,
        activity: bool = False,
        poll_interval: float = 0.1,
        idle_timeout: float = 999.0,
        inflight_field: int = 8,
    ):
        """
        Initialize the monitor.

        Args:
            source: udev event source (see ``UdevEventSource``)
            leds: LED driver
            slot_map: Device node to slot table
            activity: Poll ``stat`` files for I/O activity
            poll_interval: Wait timeout in activity mode (seconds)
            idle_timeout: Wait timeout without activity mode (seconds)
            inflight_field: 1-based field of the in-flight counter
        """
        if inflight_field < 1:
            raise ValueError(f"inflight_field is 1-based, got {inflight_field}")

        self.source = source
        self.leds = leds
        self.slot_map = slot_map
        self.activity = activity
        self.poll_interval = poll_interval
        self.idle_timeout = idle_timeout
        self.inflight_field = inflight_field
        self.state = MonitorState()

    @classmethod
    def from_settings(cls, source, leds: LedControl, settings: Settings) -> "DeviceMonitor":
        return cls(
            source,
            leds,
            SlotMapping(slots=settings.slot_map),
            activity=settings.activity,
            poll_interval=settings.poll_interval,
            idle_timeout=settings.idle_timeout,
            inflight_field=settings.inflight_field,
        )

    @property
    def wait_timeout(self) -> float:
        return self.poll_interval if self.activity else self.idle_timeout

    # Bootstrap -----------------------------------------------------------------

    def start(self) -> None:
        """Enumerate present disks, then start receiving udev events."""
        tracked = self.enumerate_devices()
        self.source.start()
        logger.success(f"Monitoring {tracked} disk(s), activity polling {'on' if self.activity else 'off'}")

    def enumerate_devices(self) -> int:
        """
        Light up slots for disks that are already present.

        Returns:
            Number of disks now tracked
        """
        for device in self.source.enumerate_disks():
            if scsi_host_of(device) is None:
                logger.debug(f"Skipping {device.sys_path}: no SCSI host")
                continue

            device_node = device.device_node
            logger.debug(f" dev node: {device_node}")
            slot = self.slot_map.lookup(device_node)
            if slot is None:
                continue
            logger.debug(f" led: {slot}")

            stats_path = stats_path_for(device.sys_path)
            if not can_open(stats_path):
                logger.warning(f"Couldn't open stats {stats_path}")
                continue

            self.device_added(device, stats_path)

        return len(self.state)

    # Events ---------------------------------------------------------------------

    def handle_event(self, device) -> None:
        """Dispatch one udev event."""
        if device is None:
            return

        # Only disks behind a SCSI host are of interest
        if scsi_host_of(device) is None:
            return

        action = (device.action or "").lower()
        if action == "add":
            self.device_added(device)
        elif action == "remove":
            self.device_removed(device)
        elif action:
            logger.debug(f"action: {action} '{device.sys_path}' ({device.subsystem})")

    def resolve_slot(self, device) -> Optional[int]:
        """
        Find the LED slot for a device.

        The device must sit behind a SCSI host whose parent is on the PCI
        bus (this rules out USB storage) and its node must be mapped.

        Returns:
            Slot index, or None if the device is not ours
        """
        scsi_host = scsi_host_of(device)
        if scsi_host is None:
            return None

        host_parent = scsi_host.parent
        if host_parent is None:
            return None

        logger.debug(f" scsi_host_parent: '{host_parent.sys_path}' ({host_parent.subsystem})")
        if host_parent.subsystem != HOST_BUS_SUBSYSTEM:
            return None

        device_node = device.device_node
        slot = self.slot_map.lookup(device_node)
        logger.debug(f" dev node: {device_node} led: {slot}")
        return slot

    def device_added(self, device, stats_path: Optional[Path] = None) -> Optional[TrackedDisk]:
        """Turn on the presence LED of a mapped disk and track it."""
        logger.info(f"ADDED: '{device.sys_path}' ({device.subsystem})")

        slot = self.resolve_slot(device)
        if slot is None:
            return None

        disk = self.state.track(
            sys_path=device.sys_path,
            device_node=device.device_node,
            stats_path=stats_path or stats_path_for(device.sys_path),
            slot=slot,
        )
        self.leds.set(Channel.PRESENCE, slot, True)
        disk.enabled = True
        return disk

    def device_removed(self, device) -> Optional[TrackedDisk]:
        """Turn off the LEDs of a tracked disk and stop polling it."""
        logger.info(f"REMOVED: '{device.sys_path}' ({device.subsystem})")

        slot = self.resolve_slot(device)
        if slot is None:
            return None

        disk = self.state.get(device.device_node)
        if disk is None:
            return None

        self.leds.set(Channel.PRESENCE, slot, False)
        disk.enabled = False

        if self.state.is_active(slot):
            self.leds.set(Channel.ACTIVITY, slot, False)
            self.state.set_active(slot, False)
        return disk

    # Activity ---------------------------------------------------------------------

    def poll_activity(self, should_stop: Callable[[], bool] = lambda: False) -> None:
        """Set each enabled disk's activity LED from its in-flight counter."""
        for disk in self.state.enabled():
            if should_stop():
                return

            try:
                in_flight = parse_stats_field(
                    read_stats_line(disk.stats_path), self.inflight_field
                )
            except OSError as e:
                logger.debug(f"Could not read {disk.stats_path}: {e}")
                continue
            except StatsParseError as e:
                logger.debug(f"Bad stats for {disk.device_node}: {e}")
                continue

            logger.trace(f" {disk.device_node} {in_flight}")

            active = in_flight != 0
            self.leds.set(Channel.ACTIVITY, disk.slot, active)
            self.state.set_active(disk.slot, active)

    # Main loop ----------------------------------------------------------------------

    def run(self) -> Optional[int]:
        """
        Block until a terminating signal arrives.

        Returns:
            The signal number that ended the loop

        Raises:
            WaitError: If the selector wait fails
        """
        timeout = self.wait_timeout

        with SignalWakeup() as wakeup, selectors.DefaultSelector() as selector:
            selector.register(self.source.fileno(), selectors.EVENT_READ, DEVICE_EVENT)
            selector.register(wakeup.fileno(), selectors.EVENT_READ, SIGNAL_WAKEUP)

            while True:
                try:
                    ready = selector.select(timeout)
                except OSError as e:
                    raise WaitError(f"select: {e}") from e

                sources = {key.data for key, _ in ready}
                if SIGNAL_WAKEUP in sources:
                    wakeup.drain()

                if wakeup.triggered:
                    logger.info(f"Exiting on signal {signal.Signals(wakeup.signum).name}")
                    return wakeup.signum

                if DEVICE_EVENT in sources:
                    device = self.source.receive()
                    if wakeup.triggered:
                        continue
                    self.handle_event(device)

                if self.activity:
                    self.poll_activity(lambda: wakeup.triggered)

    def status(self) -> List[DiskStatus]:
        return self.state.snapshot()
