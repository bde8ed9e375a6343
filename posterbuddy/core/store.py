"""Poster store interface and the in-memory backend."""
import copy
import logging
import threading
import uuid
from typing import Callable, Dict, Iterable, List, Optional

from posterbuddy.core.errors import PosterExists, PosterNotFound
from posterbuddy.models.poster import DisplaySettings, Poster

logger = logging.getLogger(__name__)

PostersListener = Callable[[List[Poster]], None]
SettingsListener = Callable[[DisplaySettings], None]
Unsubscribe = Callable[[], None]


def new_poster_id() -> str:
    return uuid.uuid4().hex


class PosterStore:
    """Operations every backend provides.

    Poster field dicts use store document names (posterUrl, logoUrl, ...).
    Backends raise StoreError subclasses; they never return error values.
    """

    supports_push = False

    def list_posters(self) -> List[Poster]:
        raise NotImplementedError

    def get_poster(self, poster_id: str) -> Optional[Poster]:
        raise NotImplementedError

    def add_poster(self, document: Dict[str, str], poster_id: Optional[str] = None) -> str:
        """Create a poster; the store assigns an id unless one is given. Returns the id.

        Raises PosterExists when the given id is already taken.
        """
        raise NotImplementedError

    def update_poster(self, poster_id: str, document: Dict[str, str]) -> None:
        """Replace the given fields. Raises PosterNotFound for unknown ids."""
        raise NotImplementedError

    def delete_poster(self, poster_id: str) -> None:
        """Delete one poster; unknown ids are a no-op."""
        raise NotImplementedError

    def delete_posters(self, poster_ids: Iterable[str]) -> None:
        """Delete all ids in one atomic commit; unknown ids are no-ops."""
        raise NotImplementedError

    def get_settings(self, default_cycle_speed: float) -> DisplaySettings:
        raise NotImplementedError

    def save_settings(self, settings: DisplaySettings) -> None:
        """Upsert with merge semantics."""
        raise NotImplementedError

    def subscribe(
        self, on_posters: PostersListener, on_settings: Optional[SettingsListener] = None
    ) -> Unsubscribe:
        """Push change notifications. Only available when supports_push is True."""
        raise NotImplementedError(f"{type(self).__name__} has no change notifications")

    def close(self) -> None:
        pass


class MemoryPosterStore(PosterStore):
    """Thread-safe in-process store; optional snapshot-listener style push."""

    def __init__(
        self,
        posters: Iterable[Poster] = (),
        settings: Optional[Dict[str, object]] = None,
        push: bool = True,
    ) -> None:
        self.supports_push = push
        self._lock = threading.RLock()
        self._posters: Dict[str, Dict[str, str]] = {p.id: p.to_document() for p in posters}
        self._settings: Optional[Dict[str, object]] = dict(settings) if settings else None
        self._poster_listeners: List[PostersListener] = []
        self._settings_listeners: List[SettingsListener] = []

    def _snapshot(self) -> List[Poster]:
        return [Poster.from_document(pid, doc) for pid, doc in self._posters.items()]

    def list_posters(self) -> List[Poster]:
        with self._lock:
            return self._snapshot()

    def get_poster(self, poster_id: str) -> Optional[Poster]:
        with self._lock:
            doc = self._posters.get(poster_id)
            return Poster.from_document(poster_id, doc) if doc is not None else None

    def add_poster(self, document: Dict[str, str], poster_id: Optional[str] = None) -> str:
        poster_id = poster_id or new_poster_id()
        with self._lock:
            if poster_id in self._posters:
                raise PosterExists(poster_id)
            self._posters[poster_id] = dict(document)
        self._notify_posters()
        return poster_id

    def update_poster(self, poster_id: str, document: Dict[str, str]) -> None:
        with self._lock:
            if poster_id not in self._posters:
                raise PosterNotFound(poster_id)
            self._posters[poster_id].update(document)
        self._notify_posters()

    def delete_poster(self, poster_id: str) -> None:
        with self._lock:
            removed = self._posters.pop(poster_id, None)
        if removed is not None:
            self._notify_posters()

    def delete_posters(self, poster_ids: Iterable[str]) -> None:
        with self._lock:
            removed = [self._posters.pop(pid) for pid in set(poster_ids) if pid in self._posters]
        if removed:
            self._notify_posters()

    def get_settings(self, default_cycle_speed: float) -> DisplaySettings:
        with self._lock:
            return DisplaySettings.from_document(self._settings, default_cycle_speed)

    def save_settings(self, settings: DisplaySettings) -> None:
        with self._lock:
            merged = dict(self._settings or {})
            merged.update(settings.to_document())
            self._settings = merged
            current = DisplaySettings.from_document(merged)
            listeners = list(self._settings_listeners)
        for listener in listeners:
            self._deliver(listener, current)

    def subscribe(
        self, on_posters: PostersListener, on_settings: Optional[SettingsListener] = None
    ) -> Unsubscribe:
        if not self.supports_push:
            return super().subscribe(on_posters, on_settings)
        with self._lock:
            self._poster_listeners.append(on_posters)
            if on_settings is not None:
                self._settings_listeners.append(on_settings)
            posters = self._snapshot()
            settings = self._settings
        # Listeners get the current state right away, like a snapshot listener
        self._deliver(on_posters, posters)
        if on_settings is not None and settings is not None:
            self._deliver(on_settings, DisplaySettings.from_document(settings))

        def unsubscribe() -> None:
            with self._lock:
                if on_posters in self._poster_listeners:
                    self._poster_listeners.remove(on_posters)
                if on_settings is not None and on_settings in self._settings_listeners:
                    self._settings_listeners.remove(on_settings)

        return unsubscribe

    def _notify_posters(self) -> None:
        with self._lock:
            listeners = list(self._poster_listeners)
            posters = self._snapshot()
        for listener in listeners:
            self._deliver(listener, copy.deepcopy(posters))

    @staticmethod
    def _deliver(listener, payload) -> None:
        try:
            listener(payload)
        except Exception as e:
            logger.warning("Store listener failed: %s", e)
