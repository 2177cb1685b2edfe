import threading
from contextlib import contextmanager


class RunGuard:
    """Non-blocking mutual exclusion for a periodic job.

    A second caller does not wait: `try_run()` yields False and the caller
    skips its run.
    """

    def __init__(self, name: str):
        self.name = name
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def try_run(self):
        acquired = self._lock.acquire(blocking=False)
        try:
            yield acquired
        finally:
            if acquired:
                self._lock.release()
