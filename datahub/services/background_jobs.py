"""
Timers for the two fulfillment loops.

Each loop runs on its own daemon thread so a slow provider call in one never
delays the other's tick. Overlapping runs are handled by the loops' own run
guards, not here.
"""
import logging
import threading

from datahub.core.config import get_settings
from datahub.services.queue import process_order_queue
from datahub.services.reconciliation import sync_provider_orders


settings = get_settings()
logger = logging.getLogger(__name__)


class PeriodicJob(threading.Thread):
    def __init__(self, name: str, target, *, interval: float, initial_delay: float = 0):
        super().__init__(name=name, daemon=True)
        self.target = target
        self.interval = interval
        self.initial_delay = initial_delay
        self._stop_event = threading.Event()

    def run_once(self):
        try:
            return self.target()
        except Exception:
            # The next tick runs regardless.
            logger.exception("Background job %s failed", self.name)
            return None

    def run(self) -> None:
        logger.info("Background job %s started (delay=%ss, interval=%ss)", self.name, self.initial_delay, self.interval)
        if self._stop_event.wait(self.initial_delay):
            return
        while not self._stop_event.is_set():
            self.run_once()
            if self._stop_event.wait(self.interval):
                break
        logger.info("Background job %s stopped", self.name)

    def stop(self, timeout: float | None = None) -> None:
        self._stop_event.set()
        if self.is_alive() and threading.current_thread() is not self:
            self.join(timeout)


_jobs: list[PeriodicJob] = []
_jobs_lock = threading.Lock()


def start_background_jobs() -> list[PeriodicJob]:
    with _jobs_lock:
        if _jobs:
            logger.info("Background jobs already running")
            return list(_jobs)
        for name, target in (
            ("order-queue", process_order_queue),
            ("provider-sync", sync_provider_orders),
        ):
            job = PeriodicJob(
                name,
                target,
                interval=settings.background_jobs_interval_seconds,
                initial_delay=settings.background_jobs_initial_delay_seconds,
            )
            job.start()
            _jobs.append(job)
        logger.info("Background jobs initialized")
        return list(_jobs)


def stop_background_jobs(timeout: float | None = 5) -> None:
    with _jobs_lock:
        jobs = list(_jobs)
        _jobs.clear()
    for job in jobs:
        job.stop(timeout)


def trigger_queue_now() -> threading.Thread:
    """Kick off a queue run without waiting for it, e.g. right after an order is created."""
    worker = threading.Thread(target=process_order_queue, name="order-queue-trigger", daemon=True)
    worker.start()
    return worker
