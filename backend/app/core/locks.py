"""
In-process locks keyed by an arbitrary string.

Used to serialize registrations that target the same email domain so the
tenant lookup, user insert and counter bump run one at a time per domain.
The database unique constraints remain the cross-process guarantee.
"""

import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Iterator


class KeyedLock:
    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._waiters: dict[str, int] = defaultdict(int)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks[key]
            self._waiters[key] += 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._waiters[key] -= 1
                if self._waiters[key] == 0:
                    del self._waiters[key]
                    del self._locks[key]
