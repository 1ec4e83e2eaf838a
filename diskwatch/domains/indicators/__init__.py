"""
Indicators Domain

LED drivers for the per-bay presence and activity lights.
"""

__all__ = ["leds"]
