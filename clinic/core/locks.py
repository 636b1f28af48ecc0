import threading
from contextlib import contextmanager
from typing import Dict, Hashable


class KeyedLocks:
    """Process-wide mutexes keyed by resource, e.g. ("doctor", 7)."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = {}

    def _lock_for(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, *keys: Hashable):
        """Acquire the locks for ``keys`` in the order given."""
        acquired = []
        try:
            for key in keys:
                lock = self._lock_for(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
