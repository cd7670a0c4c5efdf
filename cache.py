"""
cache.py — PathExplorer Matching Service
Process-local caches with a validity window, shared by the embedding and
CV parsing layers.
"""

import threading
import time


class TimedCache:
    """
    Dict-backed cache whose entries expire `ttl` seconds after being stored.
    When full, the oldest entry is evicted first. Safe to share between
    request threads.
    """

    def __init__(self, ttl: float, maxsize: int, clock=time.monotonic):
        self.ttl = ttl
        self.maxsize = maxsize
        self._clock = clock
        self._store = {}
        self._lock = threading.Lock()

    def get(self, key, default=None):
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return default
            stored_at, value = entry
            if self._clock() - stored_at > self.ttl:
                self._store.pop(key, None)
                return default
            return value

    def __setitem__(self, key, value):
        with self._lock:
            self._store.pop(key, None)
            while self._store and len(self._store) >= self.maxsize:
                self._store.pop(next(iter(self._store)), None)
            self._store[key] = (self._clock(), value)

    def __contains__(self, key):
        return self.get(key) is not None

    def __len__(self):
        return len(self._store)

    def clear(self):
        with self._lock:
            self._store.clear()
