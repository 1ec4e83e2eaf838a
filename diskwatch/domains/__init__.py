"""
diskwatch domains

- device_monitor: udev disk tracking and activity polling
- indicators: drive bay LED drivers
"""

__all__ = ["device_monitor", "indicators"]
