from datetime import datetime, timezone

import pytest
import requests

from posterbuddy.core.errors import (
    NetworkFailure,
    PosterExists,
    PosterNotFound,
    StoreError,
    ValidationFailure,
)
from posterbuddy.core.firestore_rest import (
    FirestoreRestStore,
    build_session,
    decode_fields,
    decode_value,
    encode_fields,
    encode_value,
    quote_field_path,
)
from posterbuddy.models.poster import DisplaySettings

ROOT = "https://firestore.googleapis.com/v1/projects/demo/databases/(default)/documents"
DOC_PREFIX = "projects/demo/databases/(default)/documents"


class FakeResponse:
    def __init__(self, status_code=200, body=None, reason="OK"):
        self.status_code = status_code
        self.reason = reason
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("no JSON body")
        return self._body


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.closed = False

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        self.closed = True


def _store(*responses, token="tok"):
    session = FakeSession(*responses)
    return FirestoreRestStore("demo", session=session, token=token), session


def _doc(doc_id, **fields):
    return {"name": f"{DOC_PREFIX}/movies/{doc_id}", "fields": encode_fields(fields)}


# ---- wire encoding ----

def test_encode_scalar_types():
    assert encode_value("x") == {"stringValue": "x"}
    assert encode_value(True) == {"booleanValue": True}
    assert encode_value(7) == {"integerValue": "7"}
    assert encode_value(1.5) == {"doubleValue": 1.5}
    assert encode_value(None) == {"nullValue": None}
    assert encode_value(b"\x00\x01") == {"bytesValue": "AAE="}


def test_encode_timestamp_is_utc_rfc3339():
    stamp = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
    assert encode_value(stamp) == {"timestampValue": "2024-05-01T12:30:00Z"}


def test_encode_nested_containers():
    assert encode_value({"tags": ["a", 2], "empty": []}) == {
        "mapValue": {
            "fields": {
                "tags": {"arrayValue": {"values": [{"stringValue": "a"}, {"integerValue": "2"}]}},
                "empty": {"arrayValue": {}},
            }
        }
    }


def test_encode_rejects_unknown_types():
    with pytest.raises(TypeError):
        encode_value(object())


def test_decode_inverts_encode_for_plain_values():
    data = {"name": "Heat", "count": 3, "ratio": 0.5, "on": False, "none": None, "list": [1, "a"], "map": {"k": "v"}}
    assert decode_fields(encode_fields(data)) == data


def test_decode_integer_strings_and_unknown_types():
    assert decode_value({"integerValue": "42"}) == 42
    assert decode_value({"timestampValue": "2024-01-01T00:00:00.123456789Z"}) == "2024-01-01T00:00:00.123456789Z"
    with pytest.raises(ValueError):
        decode_value({"mysteryValue": 1})


def test_quote_field_path():
    assert quote_field_path("posterUrl") == "posterUrl"
    assert quote_field_path("poster url") == "`poster url`"
    assert quote_field_path("a`b") == "`a\\`b`"
    assert quote_field_path("1st") == "`1st`"


# ---- operations ----

def test_list_follows_page_tokens_and_sends_bearer_token():
    store, session = _store(
        FakeResponse(body={"documents": [_doc("a", name="A", posterUrl="p")], "nextPageToken": "t2"}),
        FakeResponse(body={"documents": [_doc("b", name="B")]}),
    )

    posters = store.list_posters()

    assert [(p.id, p.name) for p in posters] == [("a", "A"), ("b", "B")]
    assert posters[0].poster_url == "p"
    assert session.calls[0]["url"] == f"{ROOT}/movies"
    assert session.calls[0]["headers"] == {"Authorization": "Bearer tok"}
    assert ("pageToken", "t2") in session.calls[1]["params"]


def test_list_empty_collection():
    store, _ = _store(FakeResponse(body={}))
    assert store.list_posters() == []


def test_token_callable_is_called_per_request():
    tokens = iter(["one", "two"])
    session = FakeSession(FakeResponse(body={}), FakeResponse(body={}))
    store = FirestoreRestStore("demo", session=session, token=lambda: next(tokens))

    store.list_posters()
    store.list_posters()

    assert [c["headers"]["Authorization"] for c in session.calls] == ["Bearer one", "Bearer two"]


def test_add_returns_store_assigned_id():
    store, session = _store(FakeResponse(body={"name": f"{DOC_PREFIX}/movies/newid"}))

    assert store.add_poster({"name": "Heat"}) == "newid"
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["json"] == {"fields": {"name": {"stringValue": "Heat"}}}
    assert call["params"] is None


def test_add_with_client_id():
    store, session = _store(FakeResponse(body={"name": f"{DOC_PREFIX}/movies/mine"}))
    assert store.add_poster({"name": "Heat"}, poster_id="mine") == "mine"
    assert session.calls[0]["params"] == [("documentId", "mine")]


def test_add_with_taken_id_is_conflict():
    store, _ = _store(
        FakeResponse(409, {"error": {"code": 409, "message": "Document already exists", "status": "ALREADY_EXISTS"}})
    )
    with pytest.raises(PosterExists):
        store.add_poster({"name": "Heat"}, poster_id="mine")


def test_update_sends_mask_and_exists_precondition():
    store, session = _store(FakeResponse(body={"name": f"{DOC_PREFIX}/movies/a"}))

    store.update_poster("a", {"posterUrl": "new.png", "rating": "R"})

    call = session.calls[0]
    assert call["method"] == "PATCH"
    assert call["url"] == f"{ROOT}/movies/a"
    assert call["params"] == [
        ("updateMask.fieldPaths", "posterUrl"),
        ("updateMask.fieldPaths", "rating"),
        ("currentDocument.exists", "true"),
    ]


def test_update_missing_document_is_not_found():
    store, _ = _store(
        FakeResponse(404, {"error": {"code": 404, "message": "No document to update", "status": "NOT_FOUND"}})
    )
    with pytest.raises(PosterNotFound):
        store.update_poster("ghost", {"name": "x"})


def test_delete_tolerates_missing_document():
    store, session = _store(FakeResponse(body={}), FakeResponse(404, {"error": {"message": "gone"}}))
    store.delete_poster("a")
    store.delete_poster("a")
    assert [c["method"] for c in session.calls] == ["DELETE", "DELETE"]


def test_batch_delete_is_one_commit():
    store, session = _store(FakeResponse(body={"writeResults": [{}, {}]}))

    store.delete_posters(["b", "a", "b"])

    call = session.calls[0]
    assert call["url"] == f"{ROOT}:commit"
    assert call["json"] == {
        "writes": [{"delete": f"{DOC_PREFIX}/movies/a"}, {"delete": f"{DOC_PREFIX}/movies/b"}]
    }


def test_batch_delete_of_nothing_makes_no_request():
    store, session = _store()
    store.delete_posters([])
    assert session.calls == []


def test_failed_commit_raises():
    store, _ = _store(FakeResponse(400, {"error": {"message": "bad write"}}, reason="Bad Request"))
    with pytest.raises(StoreError) as excinfo:
        store.delete_posters(["a"])
    assert "bad write" in str(excinfo.value)


def test_settings_missing_document_gives_default():
    store, session = _store(FakeResponse(404, {"error": {"message": "not found"}}))
    assert store.get_settings(7).cycle_speed == 7
    assert session.calls[0]["url"] == f"{ROOT}/settings/user-settings"


def test_settings_integer_cycle_speed():
    store, _ = _store(FakeResponse(body={"fields": {"cycleSpeed": {"integerValue": "5"}}}))
    assert store.get_settings(7).cycle_speed == 5.0


def test_save_settings_is_masked_upsert():
    store, session = _store(FakeResponse(body={}))

    store.save_settings(DisplaySettings(cycle_speed=3))

    call = session.calls[0]
    assert call["method"] == "PATCH"
    assert call["params"] == [("updateMask.fieldPaths", "cycleSpeed")]
    assert call["json"] == {"fields": {"cycleSpeed": {"doubleValue": 3.0}}}


def test_connection_error_becomes_network_failure():
    store, _ = _store(requests.ConnectionError("refused"))
    with pytest.raises(NetworkFailure):
        store.list_posters()


def test_server_errors_become_network_failure():
    store, _ = _store(FakeResponse(503, None, reason="Service Unavailable"))
    with pytest.raises(NetworkFailure):
        store.get_settings(7)


def test_requires_project_id():
    with pytest.raises(ValueError):
        FirestoreRestStore("")


def test_build_session_retries_idempotent_methods_only():
    session = build_session(retry_total=2, backoff_factor=0.1)
    retry = session.get_adapter("https://example.com").max_retries
    assert retry.total == 2
    assert "POST" not in retry.allowed_methods
    assert "PATCH" in retry.allowed_methods


def test_close_closes_session():
    store, session = _store()
    store.close()
    assert session.closed


@pytest.mark.parametrize("body", [["unexpected"], "plain text", {"error": "flat string"}, None])
def test_error_bodies_of_any_shape_become_store_errors(body):
    store, _ = _store(FakeResponse(400, body, reason="Bad Request"))
    with pytest.raises(StoreError) as excinfo:
        store.delete_posters(["a"])
    assert "HTTP 400" in str(excinfo.value)


@pytest.mark.parametrize(
    "call",
    [
        lambda s: s.delete_posters(["ok", "a/b"]),
        lambda s: s.delete_poster("a/b"),
        lambda s: s.update_poster("a/b", {"name": "x"}),
        lambda s: s.add_poster({"name": "x"}, poster_id="movies/a"),
        lambda s: s.get_poster(".."),
    ],
)
def test_ids_that_are_not_single_segments_are_rejected(call):
    store, session = _store()
    with pytest.raises(ValidationFailure):
        call(store)
    assert session.calls == []
