"""
Drive bay LED drivers.

Each bay (slot) has two LEDs: blue shows that a disk is present, red shows
I/O activity. The monitor only talks to ``LedControl.set``.
"""

from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Tuple

from loguru import logger

from diskwatch.utils.config import Settings


class Channel(str, Enum):
    """LED channels available on every slot."""

    PRESENCE = "blue"
    ACTIVITY = "red"


class LedControl:
    """Base LED driver; remembers the last state written to each LED."""

    def __init__(self):
        self.states: Dict[Tuple[Channel, int], bool] = {}

    def set(self, channel: Channel, slot: int, on: bool) -> None:
        self._write(channel, slot, on)
        self.states[(channel, slot)] = on

    def get(self, channel: Channel, slot: int) -> Optional[bool]:
        """Last state written to ``channel`` of ``slot``, None if never set."""
        return self.states.get((channel, slot))

    def _write(self, channel: Channel, slot: int, on: bool) -> None:
        raise NotImplementedError


class ConsoleLedControl(LedControl):
    """Logs LED changes instead of touching hardware."""

    def _write(self, channel: Channel, slot: int, on: bool) -> None:
        if self.states.get((channel, slot)) == on:
            return
        logger.info(f"LED {channel.value}[{slot}] -> {'on' if on else 'off'}")


class SysfsLedControl(LedControl):
    """
    Linux LED class driver.

    Writes to ``<root>/<name>/brightness`` where ``name`` is built from
    ``name_format`` with the ``slot`` index and the channel ``color``.
    """

    def __init__(self, root: Path, name_format: str = "bay{slot}:{color}"):
        super().__init__()
        self.root = Path(root)
        self.name_format = name_format
        self._max_brightness: Dict[Path, str] = {}

    def led_path(self, channel: Channel, slot: int) -> Path:
        return self.root / self.name_format.format(slot=slot, color=channel.value)

    def _brightness_on(self, led: Path) -> str:
        cached = self._max_brightness.get(led)
        if cached is not None:
            return cached

        try:
            value = (led / "max_brightness").read_text().strip() or "1"
        except OSError:
            value = "1"

        self._max_brightness[led] = value
        return value

    def _write(self, channel: Channel, slot: int, on: bool) -> None:
        led = self.led_path(channel, slot)
        value = self._brightness_on(led) if on else "0"

        try:
            (led / "brightness").write_text(value)
        except OSError as e:
            logger.warning(f"Failed to set LED {led.name}: {e}")


def build_led_control(settings: Settings) -> LedControl:
    """Create the LED driver selected in ``settings``."""
    if settings.led_driver == "sysfs":
        logger.info(f"Using sysfs LEDs under {settings.led_root}")
        return SysfsLedControl(settings.led_root, settings.led_name_format)

    logger.info("Using console LEDs (no hardware writes)")
    return ConsoleLedControl()
