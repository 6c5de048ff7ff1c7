# ledger/services/guard.py
"""
Single-slot guard for materialization passes.

    IDLE --try_acquire()--> RUNNING --release()--> IDLE

A request made while RUNNING is refused and counted as dropped. Nothing is
queued: every pass re-reads the data, so the next trigger does the work.
"""

from __future__ import annotations

import enum
import threading


class PassState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"


class PassGuard:
    def __init__(self):
        self._state = PassState.IDLE
        self._lock = threading.Lock()
        self.dropped = 0

    @property
    def state(self) -> PassState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is PassState.RUNNING

    def try_acquire(self) -> bool:
        with self._lock:
            if self._state is PassState.RUNNING:
                self.dropped += 1
                return False
            self._state = PassState.RUNNING
            return True

    def release(self) -> None:
        with self._lock:
            self._state = PassState.IDLE
