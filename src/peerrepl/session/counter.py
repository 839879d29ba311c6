"""Process-wide session id counter.

Accepts can race when more than one listener shares a counter, so the
increment happens under a lock. Ids start at 1 and never repeat.
"""
from __future__ import annotations

import threading


class SessionIdCounter:
    def __init__(self, start: int = 0) -> None:
        self._value = start
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def current(self) -> int:
        """Last id handed out (0 if none yet)."""
        with self._lock:
            return self._value


# Shared by every listener in the process unless one is given its own.
session_ids = SessionIdCounter()
