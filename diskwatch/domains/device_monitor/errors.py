"""Exceptions raised by the device monitor."""


class DeviceMonitorError(Exception):
    """Base class for monitor failures that end the daemon."""


class EventSourceError(DeviceMonitorError):
    """The udev context, monitor, filter or enumeration could not be set up."""


class WaitError(DeviceMonitorError):
    """The blocking wait failed for a reason other than a signal."""
