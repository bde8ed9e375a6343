"""Poster store over the Firestore REST API (typed values, update masks, batch commit)."""
import base64
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from posterbuddy.core.errors import (
    NetworkFailure,
    PosterExists,
    PosterNotFound,
    StoreError,
    ValidationFailure,
)
from posterbuddy.core.store import PosterStore
from posterbuddy.models.poster import DisplaySettings, Poster

logger = logging.getLogger(__name__)

POSTERS_COLLECTION = "movies"
SETTINGS_COLLECTION = "settings"
SETTINGS_DOCUMENT = "user-settings"
PAGE_SIZE = 300

TokenSource = Union[str, Callable[[], str], None]

_SIMPLE_FIELD = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


# ---- wire encoding ---------------------------------------------------------

def encode_value(value: Any) -> Dict[str, Any]:
    """Python value -> Firestore typed Value."""
    if value is None:
        return {"nullValue": None}
    # bool is an int subclass, check it first
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, bytes):
        return {"bytesValue": base64.b64encode(value).decode("ascii")}
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        stamp = value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
        return {"timestampValue": stamp}
    if isinstance(value, (list, tuple)):
        values = [encode_value(v) for v in value]
        return {"arrayValue": {"values": values} if values else {}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    raise TypeError(f"Cannot encode {type(value).__name__} as a Firestore value")


def encode_fields(data: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    return {str(k): encode_value(v) for k, v in data.items()}


def decode_value(value: Dict[str, Any]) -> Any:
    """Firestore typed Value -> Python value. Timestamps stay RFC 3339 strings."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "bytesValue" in value:
        return base64.b64decode(value["bytesValue"])
    if "timestampValue" in value:
        return value["timestampValue"]
    if "referenceValue" in value:
        return value["referenceValue"]
    if "geoPointValue" in value:
        return dict(value["geoPointValue"])
    if "arrayValue" in value:
        return [decode_value(v) for v in (value["arrayValue"] or {}).get("values", [])]
    if "mapValue" in value:
        return decode_fields((value["mapValue"] or {}).get("fields", {}))
    raise ValueError(f"Unknown Firestore value type: {sorted(value)}")


def decode_fields(fields: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    return {k: decode_value(v) for k, v in (fields or {}).items()}


def quote_field_path(name: str) -> str:
    """Field names that are not plain identifiers must be backtick-quoted in masks."""
    if _SIMPLE_FIELD.match(name):
        return name
    escaped = name.replace("\\", "\\\\").replace("`", "\\`")
    return f"`{escaped}`"


def document_id(name: str) -> str:
    """Last path segment of a full document resource name."""
    return name.rsplit("/", 1)[-1]


def check_document_id(doc_id: str) -> str:
    """Document ids are single path segments: non-empty, no slash, not . or ..."""
    if not doc_id or "/" in doc_id or doc_id in (".", ".."):
        raise ValidationFailure(f"Invalid poster id: {doc_id!r}")
    return doc_id


# ---- HTTP session ----------------------------------------------------------

def build_session(retry_total: int = 3, backoff_factor: float = 0.5) -> requests.Session:
    """Session with connection pooling and retries for idempotent calls.

    POST is not retried: a replayed add without a client id would create a
    second document.
    """
    retry = Retry(
        total=retry_total,
        connect=retry_total,
        read=retry_total,
        backoff_factor=backoff_factor,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET", "PATCH", "DELETE"],
        respect_retry_after_header=True,
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry, pool_connections=4, pool_maxsize=8)
    session = requests.Session()
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({"Accept": "application/json"})
    return session


class FirestoreRestStore(PosterStore):
    """Talks to the documents REST endpoint directly; poll only."""

    def __init__(
        self,
        project_id: str,
        *,
        database: str = "(default)",
        endpoint: str = "https://firestore.googleapis.com",
        token: TokenSource = None,
        session: Optional[requests.Session] = None,
        timeout: Tuple[float, float] = (4.0, 15.0),
    ) -> None:
        if not project_id:
            raise ValueError("Firestore project id is required")
        self._database_path = f"projects/{project_id}/databases/{database}/documents"
        self._root = f"{endpoint.rstrip('/')}/v1/{self._database_path}"
        self._endpoint = endpoint.rstrip("/")
        self._token = token
        self._session = session or build_session()
        self._timeout = timeout

    # -- plumbing --

    def _doc_url(self, collection: str, doc_id: Optional[str] = None) -> str:
        url = f"{self._root}/{collection}"
        if doc_id is not None:
            url += "/" + quote(check_document_id(doc_id), safe="")
        return url

    def _headers(self) -> Dict[str, str]:
        token = self._token() if callable(self._token) else self._token
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[List[Tuple[str, str]]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        try:
            return self._session.request(
                method, url, params=params, json=json, headers=self._headers(), timeout=self._timeout
            )
        except requests.RequestException as e:
            logger.warning("Firestore %s %s failed: %s", method, url, e)
            raise NetworkFailure(f"Document store unreachable: {e}") from e

    @staticmethod
    def _raise_for_status(response: requests.Response, action: str) -> None:
        if response.status_code < 400:
            return
        message = response.reason or "error"
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            message = body["error"].get("message") or message
        if response.status_code in (429, 500, 502, 503, 504):
            raise NetworkFailure(f"{action}: HTTP {response.status_code} {message}")
        raise StoreError(f"{action}: HTTP {response.status_code} {message}")

    # -- posters --

    def list_posters(self) -> List[Poster]:
        posters: List[Poster] = []
        page_token: Optional[str] = None
        while True:
            params = [("pageSize", str(PAGE_SIZE))]
            if page_token:
                params.append(("pageToken", page_token))
            response = self._request("GET", self._doc_url(POSTERS_COLLECTION), params=params)
            if response.status_code == 404:
                return posters
            self._raise_for_status(response, "List posters")
            body = response.json() or {}
            for doc in body.get("documents", []):
                posters.append(
                    Poster.from_document(document_id(doc["name"]), decode_fields(doc.get("fields", {})))
                )
            page_token = body.get("nextPageToken")
            if not page_token:
                return posters

    def get_poster(self, poster_id: str) -> Optional[Poster]:
        response = self._request("GET", self._doc_url(POSTERS_COLLECTION, poster_id))
        if response.status_code == 404:
            return None
        self._raise_for_status(response, "Get poster")
        doc = response.json()
        return Poster.from_document(poster_id, decode_fields(doc.get("fields", {})))

    def add_poster(self, document: Dict[str, str], poster_id: Optional[str] = None) -> str:
        params = [("documentId", check_document_id(poster_id))] if poster_id else None
        response = self._request(
            "POST",
            self._doc_url(POSTERS_COLLECTION),
            params=params,
            json={"fields": encode_fields(document)},
        )
        if response.status_code == 409 and poster_id:
            raise PosterExists(poster_id)
        self._raise_for_status(response, "Add poster")
        return document_id(response.json()["name"])

    def update_poster(self, poster_id: str, document: Dict[str, str]) -> None:
        params = [("updateMask.fieldPaths", quote_field_path(k)) for k in document]
        params.append(("currentDocument.exists", "true"))
        response = self._request(
            "PATCH",
            self._doc_url(POSTERS_COLLECTION, poster_id),
            params=params,
            json={"fields": encode_fields(document)},
        )
        if response.status_code == 404:
            raise PosterNotFound(poster_id)
        self._raise_for_status(response, "Update poster")

    def delete_poster(self, poster_id: str) -> None:
        response = self._request("DELETE", self._doc_url(POSTERS_COLLECTION, poster_id))
        if response.status_code == 404:
            return
        self._raise_for_status(response, "Delete poster")

    def delete_posters(self, poster_ids: Iterable[str]) -> None:
        writes = [
            {"delete": f"{self._database_path}/{POSTERS_COLLECTION}/{check_document_id(pid)}"}
            for pid in sorted(set(poster_ids))
        ]
        if not writes:
            return
        response = self._request(
            "POST", f"{self._endpoint}/v1/{self._database_path}:commit", json={"writes": writes}
        )
        self._raise_for_status(response, "Delete posters")

    # -- settings --

    def get_settings(self, default_cycle_speed: float) -> DisplaySettings:
        response = self._request("GET", self._doc_url(SETTINGS_COLLECTION, SETTINGS_DOCUMENT))
        if response.status_code == 404:
            return DisplaySettings(cycle_speed=default_cycle_speed)
        self._raise_for_status(response, "Get settings")
        fields = decode_fields(response.json().get("fields", {}))
        return DisplaySettings.from_document(fields, default_cycle_speed)

    def save_settings(self, settings: DisplaySettings) -> None:
        document = settings.to_document()
        # Masked PATCH without a precondition: creates the document or merges into it
        params = [("updateMask.fieldPaths", quote_field_path(k)) for k in document]
        response = self._request(
            "PATCH",
            self._doc_url(SETTINGS_COLLECTION, SETTINGS_DOCUMENT),
            params=params,
            json={"fields": encode_fields(document)},
        )
        self._raise_for_status(response, "Save settings")

    def close(self) -> None:
        self._session.close()
