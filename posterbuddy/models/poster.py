"""Poster record and display settings."""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

PLACEHOLDER_POSTER_URL = "https://placehold.co/600x900.png"
PLACEHOLDER_LOGO_URL = "https://placehold.co/400x150.png"
DEFAULT_CYCLE_SPEED = 7.0

# Python attribute -> field name in the "movies" collection
DOCUMENT_FIELDS = {
    "name": "name",
    "poster_url": "posterUrl",
    "logo_url": "logoUrl",
    "description": "description",
    "starring": "starring",
    "director": "director",
    "runtime": "runtime",
    "genre": "genre",
    "rating": "rating",
    "poster_ai_hint": "posterAiHint",
}
_ATTRIBUTES = {doc: attr for attr, doc in DOCUMENT_FIELDS.items()}


@dataclass
class Poster:
    """One movie poster entry. Every field except id may be empty."""
    id: str
    name: str = ""
    poster_url: str = ""
    logo_url: str = ""
    description: str = ""
    starring: str = ""
    director: str = ""
    runtime: str = ""
    genre: str = ""
    rating: str = ""
    poster_ai_hint: str = ""

    @property
    def display_poster_url(self) -> str:
        return self.poster_url or PLACEHOLDER_POSTER_URL

    @property
    def display_logo_url(self) -> str:
        return self.logo_url or PLACEHOLDER_LOGO_URL

    def to_document(self) -> Dict[str, str]:
        """Store document fields (without the id)."""
        return {doc: getattr(self, attr) for attr, doc in DOCUMENT_FIELDS.items()}

    @classmethod
    def from_document(cls, poster_id: str, data: Optional[Dict[str, Any]]) -> "Poster":
        """Build from a stored document. Unknown keys are ignored, missing or null ones become ''."""
        values = {}
        for key, value in (data or {}).items():
            attr = _ATTRIBUTES.get(key)
            if attr is not None and value is not None:
                values[attr] = str(value)
        return cls(id=poster_id, **values)

    def merged(self, changes: Dict[str, Any]) -> "Poster":
        """Return a copy with the given attribute changes applied."""
        return replace(
            self,
            **{k: "" if v is None else str(v) for k, v in changes.items() if k in DOCUMENT_FIELDS},
        )


def fields_to_document(changes: Dict[str, Any]) -> Dict[str, str]:
    """Translate a partial attribute dict to store field names, dropping unknown keys."""
    out = {}
    for attr, value in changes.items():
        doc = DOCUMENT_FIELDS.get(attr)
        if doc is not None:
            out[doc] = "" if value is None else str(value)
    return out


@dataclass
class DisplaySettings:
    """Singleton settings record: seconds between automatic poster advances."""
    cycle_speed: float = DEFAULT_CYCLE_SPEED

    def __post_init__(self) -> None:
        self.cycle_speed = float(self.cycle_speed)

    def to_document(self) -> Dict[str, float]:
        return {"cycleSpeed": self.cycle_speed}

    @classmethod
    def from_document(
        cls, data: Optional[Dict[str, Any]], default: float = DEFAULT_CYCLE_SPEED
    ) -> "DisplaySettings":
        """Missing document or unusable cycleSpeed yields the default."""
        raw = (data or {}).get("cycleSpeed")
        try:
            speed = float(raw)
        except (TypeError, ValueError):
            return cls(cycle_speed=default)
        if isinstance(raw, bool) or speed <= 0 or speed != speed:
            return cls(cycle_speed=default)
        return cls(cycle_speed=speed)


@dataclass
class UploadedFile:
    """A file handed over by the upload form (name, raw bytes, MIME type)."""
    filename: str
    data: bytes = field(repr=False)
    content_type: Optional[str] = None
