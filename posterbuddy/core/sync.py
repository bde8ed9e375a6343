"""Background sync: poll the store when it cannot push, retry failed loads with backoff."""
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class SyncWorker:
    """Calls `sync_once` every interval on a daemon thread.

    `sync_once` returns False on failure; consecutive failures double the
    wait up to `max_interval_sec`, the first success resets it.
    """

    def __init__(
        self,
        sync_once: Callable[[], bool],
        interval_sec: float = 10.0,
        max_interval_sec: float = 120.0,
    ) -> None:
        self._sync_once = sync_once
        self._interval = max(0.01, float(interval_sec))
        self._max_interval = max(self._interval, float(max_interval_sec))
        self._failures = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def failures(self) -> int:
        return self._failures

    def next_interval(self) -> float:
        if self._failures <= 0:
            return self._interval
        return min(self._interval * (2 ** self._failures), self._max_interval)

    def run_once(self) -> float:
        """One sync attempt; returns how long to wait before the next one."""
        try:
            ok = self._sync_once()
        except Exception as e:
            logger.warning("Sync: %s", e)
            ok = False
        if ok:
            if self._failures:
                logger.info("Sync recovered after %d failed attempt(s)", self._failures)
            self._failures = 0
        else:
            self._failures += 1
        interval = self.next_interval()
        logger.debug("Sync: ok=%s next in %.1fs", ok, interval)
        return interval

    def _run(self) -> None:
        interval = self._interval
        while not self._stop.wait(timeout=interval):
            interval = self.run_once()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="poster-sync", daemon=True)
        self._thread.start()
        logger.info("Sync thread started (interval %.1fs)", self._interval)

    def stop(self) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=5.0)
            self._thread = None
