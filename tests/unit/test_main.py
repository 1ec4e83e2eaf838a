import sys

import pytest
from loguru import logger

from diskwatch import main as cli
from diskwatch.domains.device_monitor.errors import EventSourceError


@pytest.fixture(autouse=True)
def no_env_file(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    yield
    # main() reconfigures the global loguru sinks
    logger.remove()
    logger.add(sys.stderr)


def test_settings_overrides_only_include_given_options():
    args = cli.parse_args(["--activity", "-vv", "--slot", "/dev/sda=2", "--slot", "/dev/sdb=0"])

    overrides = cli.settings_overrides(args)

    assert overrides == {
        "activity": True,
        "verbose": 2,
        "slot_map": {"/dev/sda": 2, "/dev/sdb": 0},
    }


def test_no_options_means_no_overrides():
    assert cli.settings_overrides(cli.parse_args([])) == {}


def test_bad_slot_argument_exits_with_error():
    assert cli.main(["--slot", "sda"]) == 1


def test_startup_failure_exits_with_error(monkeypatch):
    def broken_open():
        raise EventSourceError("udev context: no udev")

    monkeypatch.setattr(cli.UdevEventSource, "open", staticmethod(broken_open))

    assert cli.main([]) == 1


def test_main_runs_monitor_until_signal(monkeypatch, make_source, make_disk):
    source = make_source([make_disk("sda")])
    calls = []

    class Opened:
        def __enter__(self):
            return source

        def __exit__(self, *exc):
            calls.append("closed")
            return False

    def fake_run(self):
        calls.append(("run", len(self.state)))
        return 15

    monkeypatch.setattr(cli.UdevEventSource, "open", staticmethod(lambda: Opened()))
    monkeypatch.setattr(cli.DeviceMonitor, "run", fake_run)

    assert cli.main(["--slot", "/dev/sda=0"]) == 0
    assert calls == [("run", 1), "closed"]
    assert source.started is True
