import socket
from collections import deque
from pathlib import Path

import pytest

from diskwatch.domains.indicators.leds import LedControl
from diskwatch.models.schemas import SlotMapping

ZERO_STATS = "    0    0    0    0    0    0    0    0    0    0    0\n"


class FakeParent:
    """Stand-in for a pyudev parent device (SCSI host or PCI controller)."""

    def __init__(self, subsystem, parent=None, sys_path="/sys/devices/pci0000:00/0000:00:1f.2"):
        self.subsystem = subsystem
        self.parent = parent
        self.sys_path = sys_path


class FakeDevice:
    """Mimics the pyudev.Device attributes the monitor reads."""

    def __init__(self, device_node, sys_path, action=None, host_bus="pci", has_host=True):
        self.device_node = device_node
        self.sys_path = str(sys_path)
        self.action = action
        self.subsystem = "block"
        if has_host:
            bus = FakeParent(host_bus) if host_bus else None
            self._host = FakeParent("scsi", parent=bus, sys_path=self.sys_path + "/../host0")
        else:
            self._host = None

    def find_parent(self, subsystem, device_type=None):
        if subsystem == "scsi" and device_type == "scsi_host":
            return self._host
        return None


class RecordingLeds(LedControl):
    """LED driver that records every write."""

    def __init__(self):
        super().__init__()
        self.calls = []
        self.on_write = None

    def _write(self, channel, slot, on):
        self.calls.append((channel, slot, on))
        if self.on_write is not None:
            self.on_write(channel, slot, on)

    def calls_for(self, channel):
        return [c for c in self.calls if c[0] == channel]


class FakeSource:
    """Event source backed by a socketpair so it can be selected on."""

    def __init__(self, devices=()):
        self.devices = list(devices)
        self.events = deque()
        self.started = False
        self._reader, self._writer = socket.socketpair()
        self._reader.setblocking(False)

    def enumerate_disks(self):
        return list(self.devices)

    def start(self):
        self.started = True

    def fileno(self):
        return self._reader.fileno()

    def push(self, device):
        self.events.append(device)
        self._writer.send(b"x")

    def receive(self):
        try:
            self._reader.recv(1)
        except BlockingIOError:
            return None
        return self.events.popleft() if self.events else None

    def close(self):
        self._reader.close()
        self._writer.close()


@pytest.fixture
def leds():
    return RecordingLeds()


@pytest.fixture
def slot_map():
    return SlotMapping(slots={"/dev/sda": 0, "/dev/sdb": 1, "/dev/sdc": 2, "/dev/sdd": 3})


@pytest.fixture
def make_disk(tmp_path):
    """Create a fake sysfs block device directory with a ``stat`` file."""

    def _make(name, stats=ZERO_STATS, action=None, with_stats=True, **kwargs):
        sys_path = tmp_path / "sys" / "block" / name
        sys_path.mkdir(parents=True, exist_ok=True)
        if with_stats:
            (sys_path / "stat").write_text(stats)
        return FakeDevice(f"/dev/{name}", sys_path, action=action, **kwargs)

    return _make


@pytest.fixture
def source():
    src = FakeSource()
    yield src
    src.close()


def write_stats(device, line):
    path = Path(device.sys_path, "stat")
    if isinstance(line, bytes):
        path.write_bytes(line)
    else:
        path.write_text(line)


@pytest.fixture
def set_stats():
    return write_stats


@pytest.fixture
def make_source():
    """Build FakeSources that are closed after the test."""
    created = []

    def _make(devices=()):
        src = FakeSource(devices)
        created.append(src)
        return src

    yield _make
    for src in created:
        src.close()
