"""Tracked disk table owned by the device monitor."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from diskwatch.models.schemas import DiskStatus


@dataclass(slots=True)
class TrackedDisk:
    """A mapped disk the monitor is driving an LED slot for."""

    sys_path: str
    device_node: str
    stats_path: Path
    slot: int
    enabled: bool = False


@dataclass
class MonitorState:
    """Tracked disks keyed by device node, plus per-slot activity flags."""

    disks: Dict[str, TrackedDisk] = field(default_factory=dict)
    active_slots: Dict[int, bool] = field(default_factory=dict)

    def get(self, device_node: str) -> Optional[TrackedDisk]:
        return self.disks.get(device_node)

    def track(
        self,
        sys_path: str,
        device_node: str,
        stats_path: Path,
        slot: int,
    ) -> TrackedDisk:
        """Create the record for ``device_node`` or refresh the existing one."""
        disk = self.disks.get(device_node)
        if disk is None:
            disk = TrackedDisk(
                sys_path=sys_path,
                device_node=device_node,
                stats_path=stats_path,
                slot=slot,
            )
            self.disks[device_node] = disk
        else:
            disk.sys_path = sys_path
            disk.stats_path = stats_path
            disk.slot = slot
        return disk

    def enabled(self) -> Iterator[TrackedDisk]:
        # Snapshot so handlers may mutate the table mid-iteration
        for disk in list(self.disks.values()):
            if disk.enabled:
                yield disk

    def is_active(self, slot: int) -> bool:
        return self.active_slots.get(slot, False)

    def set_active(self, slot: int, active: bool) -> None:
        self.active_slots[slot] = active

    def snapshot(self) -> List[DiskStatus]:
        return [
            DiskStatus(
                device_node=disk.device_node,
                slot=disk.slot,
                enabled=disk.enabled,
                active=self.is_active(disk.slot),
                sys_path=disk.sys_path,
            )
            for disk in self.disks.values()
        ]

    def __len__(self) -> int:
        return len(self.disks)
