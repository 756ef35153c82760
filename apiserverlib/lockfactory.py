"""A factory handing out one lock per key."""

from __future__ import annotations

import threading


class LockFactory:
    """Returns the same lock every time it is asked for the same key."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def get_lock(self, key: str) -> threading.Lock:
        """Return the lock for ``key``, creating it on first use."""
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock