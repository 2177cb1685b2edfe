import threading
import time


class SnapshotCache:
    """Single-value cache with a fixed TTL that can still hand out a stale value.

    Values are treated as immutable snapshots: a refresh swaps the whole value,
    so concurrent refreshes simply race and the last writer wins.
    """

    def __init__(self, ttl_seconds: float, *, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._value = None
        self._fetched_at: float | None = None

    def get_fresh(self):
        with self._lock:
            if self._fetched_at is None:
                return None
            if self._clock() - self._fetched_at >= self.ttl_seconds:
                return None
            return self._value

    def get_stale(self):
        with self._lock:
            return self._value

    def replace(self, value) -> None:
        with self._lock:
            self._value = value
            self._fetched_at = self._clock()

    def clear(self) -> None:
        with self._lock:
            self._value = None
            self._fetched_at = None
