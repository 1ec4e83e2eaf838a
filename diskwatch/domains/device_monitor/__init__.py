"""
Device Monitor Domain

Tracks disks attached through a PCI SCSI host and maps each one to a
drive bay LED slot.
"""

__all__ = ["errors", "monitor", "state", "udev_source"]
