"""Data store adapter: store calls in, result values out (no exceptions cross it)."""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from posterbuddy.core.errors import PartialBatchFailure, StoreError, ValidationFailure
from posterbuddy.core.store import PosterStore, PostersListener, SettingsListener, Unsubscribe
from posterbuddy.models.poster import DEFAULT_CYCLE_SPEED, DisplaySettings, fields_to_document

logger = logging.getLogger(__name__)


@dataclass
class OpResult:
    """Outcome of one adapter call. `kind` mirrors StoreError.kind when ok is False."""
    ok: bool
    value: Any = None
    error: Optional[str] = None
    kind: Optional[str] = None

    @classmethod
    def success(cls, value: Any = None) -> "OpResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, exc: StoreError, value: Any = None) -> "OpResult":
        return cls(ok=False, value=value, error=exc.message, kind=exc.kind)


@dataclass
class BatchReport:
    """Per-item outcome of a concurrent batch: ids added, and (label, message) failures."""
    succeeded: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)


class DataStoreAdapter:
    def __init__(
        self,
        store: PosterStore,
        *,
        default_cycle_speed: float = DEFAULT_CYCLE_SPEED,
        max_workers: int = 4,
    ) -> None:
        self._store = store
        self._default_cycle_speed = default_cycle_speed
        self._max_workers = max(1, max_workers)

    @property
    def supports_push(self) -> bool:
        return bool(self._store.supports_push)

    def _call(self, operation: str, func, *args, **kwargs) -> OpResult:
        try:
            return OpResult.success(func(*args, **kwargs))
        except StoreError as e:
            logger.warning("%s failed (%s): %s", operation, e.kind, e.message)
            return OpResult.failure(e)

    # -- reads --

    def list_posters(self) -> OpResult:
        return self._call("List posters", self._store.list_posters)

    def get_poster(self, poster_id: str) -> OpResult:
        return self._call("Get poster", self._store.get_poster, poster_id)

    def get_settings(self) -> OpResult:
        return self._call("Get settings", self._store.get_settings, self._default_cycle_speed)

    def load_initial(self) -> OpResult:
        """Posters and cycle speed in one go; value is {"posters": [...], "cycle_speed": s}."""
        posters = self.list_posters()
        if not posters.ok:
            return posters
        settings = self.get_settings()
        if not settings.ok:
            return settings
        return OpResult.success({"posters": posters.value, "cycle_speed": settings.value.cycle_speed})

    # -- writes --

    def add_poster(self, changes: Dict[str, Any], poster_id: Optional[str] = None) -> OpResult:
        """Value is the new poster id."""
        return self._call("Add poster", self._store.add_poster, fields_to_document(changes), poster_id)

    def add_posters(self, items: Sequence[Tuple[str, Dict[str, Any]]]) -> OpResult:
        """Add (label, fields) items concurrently and join. Value is a BatchReport.

        ok is False with kind "partial_batch" when any item failed; the items
        that succeeded stay added.
        """
        report = BatchReport()
        if not items:
            return OpResult.success(report)
        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(items))) as pool:
            futures = [
                (label, pool.submit(self._store.add_poster, fields_to_document(changes)))
                for label, changes in items
            ]
            for label, future in futures:
                try:
                    report.succeeded.append(future.result())
                except StoreError as e:
                    logger.warning("Add poster %r failed (%s): %s", label, e.kind, e.message)
                    report.failed.append((label, e.message))
        if report.failed:
            return OpResult.failure(PartialBatchFailure(report.succeeded, report.failed), report)
        return OpResult.success(report)

    def update_poster(self, poster_id: str, changes: Dict[str, Any]) -> OpResult:
        document = fields_to_document(changes)
        if not document:
            return OpResult.failure(ValidationFailure("No poster fields to update"))
        return self._call("Update poster", self._store.update_poster, poster_id, document)

    def delete_poster(self, poster_id: str) -> OpResult:
        return self._call("Delete poster", self._store.delete_poster, poster_id)

    def delete_posters(self, poster_ids: Iterable[str]) -> OpResult:
        return self._call("Delete posters", self._store.delete_posters, list(poster_ids))

    def save_settings(self, cycle_speed: float) -> OpResult:
        try:
            speed = float(cycle_speed)
        except (TypeError, ValueError):
            return OpResult.failure(ValidationFailure(f"Invalid cycle speed: {cycle_speed!r}"))
        if not speed > 0:
            return OpResult.failure(ValidationFailure("Cycle speed must be a positive number"))
        return self._call("Save settings", self._store.save_settings, DisplaySettings(cycle_speed=speed))

    # -- push --

    def subscribe(
        self, on_posters: PostersListener, on_settings: Optional[SettingsListener] = None
    ) -> Optional[Unsubscribe]:
        """Subscribe when the store pushes changes; None means the caller must poll."""
        if not self.supports_push:
            return None
        return self._store.subscribe(on_posters, on_settings)

    def close(self) -> None:
        self._store.close()
