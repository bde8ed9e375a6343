"""Persist and load posters and settings on the device (JSON file)."""
import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from posterbuddy.core.errors import PosterExists, PosterNotFound, StoreError
from posterbuddy.core.store import PosterStore, new_poster_id
from posterbuddy.models.poster import DisplaySettings, Poster

logger = logging.getLogger(__name__)


class JsonPosterStore(PosterStore):
    """Single JSON file: {"posters": [{"id": ..., <fields>}], "settings": {...}}.

    No change notifications; the file may be edited by another process, so
    callers poll.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {"posters": [], "settings": None}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Unreadable poster file %s: %s", self._path, e)
            return {"posters": [], "settings": None}
        if not isinstance(data, dict):
            return {"posters": [], "settings": None}
        posters = [p for p in data.get("posters") or [] if isinstance(p, dict) and p.get("id")]
        settings = data.get("settings")
        return {"posters": posters, "settings": settings if isinstance(settings, dict) else None}

    def _save(self, data: Dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
            tmp.replace(self._path)
        except OSError as e:
            raise StoreError(f"Could not write {self._path}: {e}") from e

    def list_posters(self) -> List[Poster]:
        with self._lock:
            data = self._load()
        return [Poster.from_document(str(item["id"]), item) for item in data["posters"]]

    def get_poster(self, poster_id: str) -> Optional[Poster]:
        for poster in self.list_posters():
            if poster.id == poster_id:
                return poster
        return None

    def add_poster(self, document: Dict[str, str], poster_id: Optional[str] = None) -> str:
        poster_id = poster_id or new_poster_id()
        with self._lock:
            data = self._load()
            if any(p["id"] == poster_id for p in data["posters"]):
                raise PosterExists(poster_id)
            data["posters"].append({"id": poster_id, **document})
            self._save(data)
        return poster_id

    def update_poster(self, poster_id: str, document: Dict[str, str]) -> None:
        with self._lock:
            data = self._load()
            for item in data["posters"]:
                if item["id"] == poster_id:
                    item.update(document)
                    self._save(data)
                    return
        raise PosterNotFound(poster_id)

    def delete_poster(self, poster_id: str) -> None:
        self.delete_posters([poster_id])

    def delete_posters(self, poster_ids: Iterable[str]) -> None:
        ids = set(poster_ids)
        with self._lock:
            data = self._load()
            kept = [p for p in data["posters"] if p["id"] not in ids]
            if len(kept) == len(data["posters"]):
                return
            data["posters"] = kept
            self._save(data)

    def get_settings(self, default_cycle_speed: float) -> DisplaySettings:
        with self._lock:
            data = self._load()
        return DisplaySettings.from_document(data["settings"], default_cycle_speed)

    def save_settings(self, settings: DisplaySettings) -> None:
        with self._lock:
            data = self._load()
            merged = dict(data["settings"] or {})
            merged.update(settings.to_document())
            data["settings"] = merged
            self._save(data)
