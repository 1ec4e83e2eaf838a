"""
Signal handling for the blocking monitor loop.

Terminating signals set a flag and wake the selector through
``signal.set_wakeup_fd`` so a wait in progress returns immediately.
"""

import signal
import socket
from typing import Dict, Iterable, Optional

from loguru import logger

TERMINATING_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SignalWakeup:
    """Context manager installing stop handlers and a wakeup socket."""

    def __init__(self, signals: Iterable[int] = TERMINATING_SIGNALS):
        self.signals = tuple(signals)
        self.signum: Optional[int] = None
        self._reader: Optional[socket.socket] = None
        self._writer: Optional[socket.socket] = None
        self._previous_fd = -1
        self._wakeup_set = False
        self._previous_handlers: Dict[int, object] = {}

    @property
    def triggered(self) -> bool:
        return self.signum is not None

    def fileno(self) -> int:
        return self._reader.fileno()

    def _handler(self, signum, frame):  # noqa: D401
        self.signum = signum

    def drain(self) -> None:
        """Discard pending wakeup bytes."""
        try:
            while self._reader.recv(64):
                pass
        except BlockingIOError:
            pass

    def __enter__(self) -> "SignalWakeup":
        self._reader, self._writer = socket.socketpair()
        try:
            self._reader.setblocking(False)
            self._writer.setblocking(False)

            self._previous_fd = signal.set_wakeup_fd(
                self._writer.fileno(), warn_on_full_buffer=False
            )
            self._wakeup_set = True
            for signum in self.signals:
                self._previous_handlers[signum] = signal.signal(signum, self._handler)
        except Exception:
            self._restore()
            raise

        logger.debug(f"Signal handlers installed for {[signal.Signals(s).name for s in self.signals]}")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._restore()

    def _restore(self) -> None:
        for signum, previous in self._previous_handlers.items():
            if previous is not None:
                signal.signal(signum, previous)
        self._previous_handlers.clear()

        if self._wakeup_set:
            signal.set_wakeup_fd(self._previous_fd)
            self._wakeup_set = False
        self._reader.close()
        self._writer.close()
