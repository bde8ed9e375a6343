"""Kiosk rotation: the observed poster list, the displayed index, and the advance timer."""
import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from posterbuddy.core.adapter import DataStoreAdapter, OpResult
from posterbuddy.core.store import Unsubscribe
from posterbuddy.core.sync import SyncWorker
from posterbuddy.models.poster import DEFAULT_CYCLE_SPEED, DisplaySettings, Poster
from posterbuddy.models.rotation import RotationPhase, RotationSnapshot

logger = logging.getLogger(__name__)

KEY_PREVIOUS = "ArrowLeft"
KEY_NEXT = "ArrowRight"


class RepeatingTimer:
    """Calls `callback` every `interval` seconds on a daemon thread until cancelled."""

    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        self.interval = interval
        self._callback = callback
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="rotation-timer", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        # No join: cancel may be called by the callback itself or under the controller lock
        self._stop.set()

    def _run(self) -> None:
        while not self._stop.wait(timeout=self.interval):
            try:
                self._callback()
            except Exception as e:
                logger.warning("Rotation tick failed: %s", e)


TimerFactory = Callable[[float, Callable[[], None]], Any]


class RotationController:
    """Owns the poster list as last seen from the store and the current display index.

    The advance timer is rebuilt whenever the cycle speed or the list length
    changes, and only runs while there are at least two posters. Each timer
    gets a generation number so a tick from a cancelled timer is dropped.

    Writes go through the adapter. Updates and deletes are applied locally
    first and rolled back if the store rejects them. Without push support
    the list is refetched after every successful write and polled by a
    SyncWorker; with push the worker only retries a failed initial load.
    """

    def __init__(
        self,
        adapter: DataStoreAdapter,
        *,
        default_cycle_speed: float = DEFAULT_CYCLE_SPEED,
        poll_interval_sec: Optional[float] = 10.0,
        retry_max_interval_sec: float = 120.0,
        follow_new_posters: bool = False,
        timer_factory: Optional[TimerFactory] = None,
    ) -> None:
        self._adapter = adapter
        self._follow_new_posters = follow_new_posters
        self._timer_factory: TimerFactory = timer_factory or RepeatingTimer
        self._lock = threading.RLock()
        self._posters: List[Poster] = []
        self._index = 0
        self._cycle_speed = float(default_cycle_speed)
        self._phase = RotationPhase.LOADING
        self._error: Optional[str] = None
        self._running = False
        self._timer = None
        self._timer_generation = 0
        self._unsubscribe: Optional[Unsubscribe] = None
        self._sync_worker: Optional[SyncWorker] = None
        if poll_interval_sec:
            self._sync_worker = SyncWorker(
                self.sync_once,
                interval_sec=poll_interval_sec,
                max_interval_sec=retry_max_interval_sec,
            )

    # ---- lifecycle ----

    def start(self) -> RotationSnapshot:
        """Initial fetch, subscribe (or poll), start the timer."""
        with self._lock:
            if self._running:
                return self.snapshot()
            self._running = True
            self._phase = RotationPhase.LOADING
        if self.reload():
            self._ensure_subscribed()
        with self._lock:
            self._reschedule()
        if self._sync_worker is not None:
            self._sync_worker.start()
        snap = self.snapshot()
        logger.info("Rotation started: %s, %d poster(s)", snap.phase.value, snap.total)
        return snap

    def stop(self) -> None:
        """Cancel the timer, unsubscribe, stop polling. In-flight writes finish on their own."""
        with self._lock:
            self._running = False
            self._reschedule()
            unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()
        if self._sync_worker is not None:
            self._sync_worker.stop()
        logger.info("Rotation stopped")

    @property
    def is_push_synced(self) -> bool:
        return self._unsubscribe is not None

    def _ensure_subscribed(self) -> None:
        with self._lock:
            if not self._running or self._unsubscribe is not None:
                return
        unsubscribe = self._adapter.subscribe(self._on_posters_pushed, self._on_settings_pushed)
        if unsubscribe is None:
            return
        with self._lock:
            if self._running and self._unsubscribe is None:
                self._unsubscribe = unsubscribe
                return
        unsubscribe()

    def _on_posters_pushed(self, posters: List[Poster]) -> None:
        self.set_posters(posters)

    def _on_settings_pushed(self, settings: DisplaySettings) -> None:
        self.set_cycle_speed(settings.cycle_speed)

    # ---- loading ----

    def reload(self) -> bool:
        """Refetch posters and cycle speed. A failure before the first success enters FAILED;
        a later failure keeps the last good list on screen and records the error."""
        result = self._adapter.load_initial()
        if not result.ok:
            with self._lock:
                self._error = result.error
                if self._phase in (RotationPhase.LOADING, RotationPhase.FAILED):
                    self._phase = RotationPhase.FAILED
                    logger.warning("Rotation failed to load: %s", result.error)
            return False
        self.set_cycle_speed(result.value["cycle_speed"])
        self.set_posters(result.value["posters"])
        return True

    def sync_once(self) -> bool:
        """One SyncWorker pass: nothing to do while push-synced, otherwise reload."""
        if self.is_push_synced:
            return True
        ok = self.reload()
        if ok:
            self._ensure_subscribed()
        return ok

    # ---- state changes ----

    def set_posters(self, posters: Iterable[Poster]) -> None:
        with self._lock:
            self._error = None
            self._apply_posters(list(posters))

    def _apply_posters(self, posters: List[Poster]) -> None:
        old_len = len(self._posters)
        old_index = self._index
        self._posters = posters
        new_len = len(posters)
        if new_len == 0:
            self._index = 0
            self._phase = RotationPhase.EMPTY
        else:
            grew_from_end = 0 < old_len < new_len and old_index == old_len - 1
            if self._follow_new_posters and grew_from_end:
                self._index = new_len - 1
            else:
                self._index = min(old_index, new_len - 1)
            self._phase = RotationPhase.READY
        if new_len != old_len:
            self._reschedule()

    def set_cycle_speed(self, cycle_speed: float) -> None:
        try:
            speed = float(cycle_speed)
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid cycle speed %r", cycle_speed)
            return
        if not speed > 0:
            logger.warning("Ignoring non-positive cycle speed %r", cycle_speed)
            return
        with self._lock:
            if speed == self._cycle_speed:
                return
            self._cycle_speed = speed
            self._reschedule()

    def _reschedule(self) -> None:
        """Tear down the current timer and start a fresh one if rotation applies. Lock held."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._timer_generation += 1
        if not self._running or len(self._posters) <= 1:
            return
        generation = self._timer_generation
        self._timer = self._timer_factory(self._cycle_speed, lambda: self._on_timer(generation))
        self._timer.start()
        logger.debug("Rotation timer every %.2fs (generation %d)", self._cycle_speed, generation)

    def _on_timer(self, generation: int) -> None:
        with self._lock:
            if generation != self._timer_generation:
                return
            self._step(1)

    # ---- navigation ----

    def _step(self, delta: int) -> bool:
        length = len(self._posters)
        if length <= 1:
            return False
        self._index = (self._index + delta) % length
        return True

    def tick(self) -> bool:
        """Advance to the next poster, wrapping at the end."""
        with self._lock:
            return self._step(1)

    def navigate(self, delta: int) -> bool:
        """Move by delta (usually +1/-1) with wrap-around; no-op with fewer than two posters."""
        with self._lock:
            return self._step(delta)

    def jump(self, index: int) -> bool:
        with self._lock:
            if 0 <= index < len(self._posters):
                self._index = index
                return True
            return False

    def handle_key(self, key: str) -> bool:
        if key == KEY_PREVIOUS:
            return self.navigate(-1)
        if key == KEY_NEXT:
            return self.navigate(1)
        return False

    # ---- views ----

    @property
    def posters(self) -> List[Poster]:
        with self._lock:
            return list(self._posters)

    @property
    def cycle_speed(self) -> float:
        return self._cycle_speed

    def snapshot(self) -> RotationSnapshot:
        with self._lock:
            ready = self._phase == RotationPhase.READY
            return RotationSnapshot(
                phase=self._phase,
                index=self._index if ready else None,
                total=len(self._posters),
                cycle_speed=self._cycle_speed,
                poster=self._posters[self._index] if ready else None,
                error=self._error,
            )

    # ---- writes ----

    def _refresh_after_write(self) -> None:
        if not self._adapter.supports_push:
            self.reload()

    def add_poster(self, changes: Dict[str, Any], poster_id: Optional[str] = None) -> OpResult:
        result = self._adapter.add_poster(changes, poster_id)
        if result.ok:
            self._refresh_after_write()
        return result

    def add_posters(self, items: Sequence[Tuple[str, Dict[str, Any]]]) -> OpResult:
        """Concurrent adds; only the ones the store accepted show up after the refresh."""
        result = self._adapter.add_posters(items)
        report = result.value
        if report is not None and report.succeeded:
            self._refresh_after_write()
        return result

    def update_poster(self, poster_id: str, changes: Dict[str, Any]) -> OpResult:
        with self._lock:
            position = self._position(poster_id)
            previous = optimistic = None
            if position is not None:
                previous = self._posters[position]
                optimistic = previous.merged(changes)
                self._posters[position] = optimistic
        result = self._adapter.update_poster(poster_id, changes)
        if not result.ok:
            with self._lock:
                position = self._position(poster_id)
                if position is not None and self._posters[position] == optimistic:
                    self._posters[position] = previous
                    logger.info("Rolled back local edit of poster %s", poster_id)
            return result
        self._refresh_after_write()
        return result

    def delete_poster(self, poster_id: str) -> OpResult:
        with self._lock:
            position = self._position(poster_id)
            removed = None
            if position is not None:
                posters = list(self._posters)
                removed = posters.pop(position)
                self._apply_posters(posters)
        result = self._adapter.delete_poster(poster_id)
        if not result.ok:
            if removed is not None:
                with self._lock:
                    if self._position(poster_id) is None:
                        posters = list(self._posters)
                        posters.insert(min(position, len(posters)), removed)
                        self._apply_posters(posters)
                        logger.info("Restored poster %s after failed delete", poster_id)
            return result
        self._refresh_after_write()
        return result

    def delete_posters(self, poster_ids: Iterable[str]) -> OpResult:
        result = self._adapter.delete_posters(poster_ids)
        if result.ok:
            self._refresh_after_write()
        return result

    def save_cycle_speed(self, cycle_speed: float) -> OpResult:
        result = self._adapter.save_settings(cycle_speed)
        if result.ok:
            self.set_cycle_speed(cycle_speed)
        return result

    def _position(self, poster_id: str) -> Optional[int]:
        for i, poster in enumerate(self._posters):
            if poster.id == poster_id:
                return i
        return None
