import threading
import time


class TTLCache:
    """
    Read-through cache; entries expire after ``ttl`` seconds (None = never).

    Safe to share between threads. Expired entries are purged on every
    ``set`` and the oldest entries are evicted beyond ``maxsize`` (None = no
    bound).
    """

    def __init__(self, ttl=300, maxsize=1024):
        self.store = {}
        self.ttl = ttl
        self.maxsize = maxsize
        self._lock = threading.Lock()

    def get(self, key):
        with self._lock:
            item = self.store.get(key)
            if not item:
                return None
            value, expiry = item
            if expiry is not None and time.monotonic() > expiry:
                self.store.pop(key, None)
                return None
            return value

    def set(self, key, value):
        with self._lock:
            now = time.monotonic()
            self._purge_expired(now)
            self.store.pop(key, None)
            if self.maxsize is not None:
                while self.store and len(self.store) >= self.maxsize:
                    del self.store[next(iter(self.store))]
            expiry = None if self.ttl is None else now + self.ttl
            self.store[key] = (value, expiry)

    def delete(self, key):
        with self._lock:
            self.store.pop(key, None)

    def clear(self):
        with self._lock:
            self.store.clear()

    def get_or_load(self, key, loader):
        # loader runs outside the lock; concurrent misses may both load
        value = self.get(key)
        if value is None:
            value = loader()
            # falsy results are not cached so the next call retries
            if value:
                self.set(key, value)
        return value

    def _purge_expired(self, now):
        expired = [k for k, (_, expiry) in self.store.items() if expiry is not None and now > expiry]
        for key in expired:
            del self.store[key]

    def __len__(self):
        with self._lock:
            return len(self.store)
