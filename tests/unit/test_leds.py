from diskwatch.domains.indicators.leds import (
    Channel,
    ConsoleLedControl,
    SysfsLedControl,
    build_led_control,
)
from diskwatch.utils.config import Settings


def make_led(root, name, max_brightness="255"):
    led = root / name
    led.mkdir(parents=True)
    (led / "brightness").write_text("0")
    if max_brightness is not None:
        (led / "max_brightness").write_text(max_brightness + "\n")
    return led


def test_sysfs_writes_brightness(tmp_path):
    blue = make_led(tmp_path, "bay1:blue")
    red = make_led(tmp_path, "bay1:red", max_brightness=None)
    leds = SysfsLedControl(tmp_path)

    leds.set(Channel.PRESENCE, 1, True)
    leds.set(Channel.ACTIVITY, 1, True)

    assert (blue / "brightness").read_text() == "255"
    assert (red / "brightness").read_text() == "1"

    leds.set(Channel.PRESENCE, 1, False)

    assert (blue / "brightness").read_text() == "0"
    assert leds.get(Channel.PRESENCE, 1) is False
    assert leds.get(Channel.ACTIVITY, 1) is True


def test_sysfs_custom_name_format(tmp_path):
    led = make_led(tmp_path, "hpex49x:red:hdd2", max_brightness="1")
    leds = SysfsLedControl(tmp_path, name_format="hpex49x:{color}:hdd{slot}")

    leds.set(Channel.ACTIVITY, 2, True)

    assert leds.led_path(Channel.ACTIVITY, 2) == led
    assert (led / "brightness").read_text() == "1"


def test_sysfs_missing_led_does_not_raise(tmp_path):
    leds = SysfsLedControl(tmp_path)

    leds.set(Channel.PRESENCE, 7, True)

    assert leds.get(Channel.PRESENCE, 7) is True


def test_console_driver_tracks_state():
    leds = ConsoleLedControl()

    leds.set(Channel.PRESENCE, 0, True)
    leds.set(Channel.PRESENCE, 0, True)

    assert leds.get(Channel.PRESENCE, 0) is True
    assert leds.get(Channel.ACTIVITY, 0) is None


def test_build_led_control(tmp_path):
    assert isinstance(build_led_control(Settings(_env_file=None)), ConsoleLedControl)

    leds = build_led_control(Settings(led_driver="sysfs", led_root=tmp_path, _env_file=None))

    assert isinstance(leds, SysfsLedControl)
    assert leds.root == tmp_path
