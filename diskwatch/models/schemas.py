"""
Pydantic models for diskwatch.

Shared data models across the application.
"""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def check_slots(value: Dict[str, int]) -> Dict[str, int]:
    """Reject empty device nodes and negative slot indices."""
    for node, slot in value.items():
        if not node:
            raise ValueError("device node must not be empty")
        if slot < 0:
            raise ValueError(f"slot for {node} must be >= 0, got {slot}")
    return value


class SlotMapping(BaseModel):
    """Fixed table from device node (e.g. ``/dev/sda``) to LED slot index."""

    model_config = ConfigDict(frozen=True)

    slots: Dict[str, int] = Field(default_factory=dict)

    @field_validator("slots")
    @classmethod
    def _check_slots(cls, value: Dict[str, int]) -> Dict[str, int]:
        return check_slots(value)

    def lookup(self, device_node: Optional[str]) -> Optional[int]:
        """Exact-match lookup; unmapped or missing nodes return None."""
        if not device_node:
            return None
        return self.slots.get(device_node)

    def __contains__(self, device_node: object) -> bool:
        return device_node in self.slots

    def __len__(self) -> int:
        return len(self.slots)


class DiskStatus(BaseModel):
    """Snapshot of one tracked disk, used for status logging."""

    device_node: str
    slot: int
    enabled: bool
    active: bool
    sys_path: str
