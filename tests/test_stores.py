import json

import pytest

from posterbuddy.core.errors import PosterExists, PosterNotFound
from posterbuddy.core.json_store import JsonPosterStore
from posterbuddy.core.store import MemoryPosterStore
from posterbuddy.models.poster import DisplaySettings


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryPosterStore()
    return JsonPosterStore(tmp_path / "posters.json")


def test_empty_store_lists_nothing(store):
    assert store.list_posters() == []


def test_add_then_list_returns_same_fields(store):
    document = {"name": "Heat", "posterUrl": "p.png", "logoUrl": "l.png", "rating": "R"}
    poster_id = store.add_poster(document)

    [poster] = store.list_posters()
    assert poster.id == poster_id
    assert poster.to_document() == {**poster.to_document(), **document}
    assert poster.director == ""


def test_add_with_caller_id(store):
    assert store.add_poster({"name": "A"}, poster_id="fixed") == "fixed"
    assert store.get_poster("fixed").name == "A"


def test_add_with_taken_id_is_conflict(store):
    store.add_poster({"name": "Original"}, poster_id="fixed")

    with pytest.raises(PosterExists):
        store.add_poster({"name": "Intruder"}, poster_id="fixed")

    assert store.get_poster("fixed").name == "Original"
    assert len(store.list_posters()) == 1


def test_update_replaces_only_given_fields(store):
    poster_id = store.add_poster({"name": "Heat", "genre": "Crime"})
    store.update_poster(poster_id, {"genre": "Thriller"})

    poster = store.get_poster(poster_id)
    assert poster.name == "Heat"
    assert poster.genre == "Thriller"


def test_update_unknown_id_raises_not_found(store):
    with pytest.raises(PosterNotFound):
        store.update_poster("missing", {"name": "x"})


def test_delete_is_idempotent(store):
    poster_id = store.add_poster({"name": "A"})
    store.delete_poster(poster_id)
    store.delete_poster(poster_id)
    assert store.get_poster(poster_id) is None


def test_batch_delete_skips_unknown_ids(store):
    a = store.add_poster({"name": "A"})
    b = store.add_poster({"name": "B"})
    c = store.add_poster({"name": "C"})

    store.delete_posters([a, "does-not-exist", c])

    assert [p.id for p in store.list_posters()] == [b]


def test_settings_default_then_upsert(store):
    assert store.get_settings(7).cycle_speed == 7
    store.save_settings(DisplaySettings(cycle_speed=3))
    assert store.get_settings(7).cycle_speed == 3
    store.save_settings(DisplaySettings(cycle_speed=12))
    assert store.get_settings(7).cycle_speed == 12


def test_json_store_persists_across_instances(tmp_path):
    path = tmp_path / "posters.json"
    first = JsonPosterStore(path)
    poster_id = first.add_poster({"name": "Heat"})
    first.save_settings(DisplaySettings(cycle_speed=4))

    second = JsonPosterStore(path)
    assert second.get_poster(poster_id).name == "Heat"
    assert second.get_settings(7).cycle_speed == 4


def test_json_store_merges_settings_with_existing_keys(tmp_path):
    path = tmp_path / "posters.json"
    path.write_text(json.dumps({"posters": [], "settings": {"theme": "Blue", "cycleSpeed": 9}}))

    JsonPosterStore(path).save_settings(DisplaySettings(cycle_speed=2))

    saved = json.loads(path.read_text())
    assert saved["settings"] == {"theme": "Blue", "cycleSpeed": 2}


def test_json_store_reads_corrupt_file_as_empty(tmp_path):
    path = tmp_path / "posters.json"
    path.write_text("{not json")
    store = JsonPosterStore(path)
    assert store.list_posters() == []
    assert store.get_settings(7).cycle_speed == 7


def test_memory_subscribe_delivers_current_then_changes(make_posters):
    store = MemoryPosterStore(make_posters(2))
    seen = []
    speeds = []

    unsubscribe = store.subscribe(lambda posters: seen.append([p.id for p in posters]), speeds.append)
    store.add_poster({"name": "C"}, poster_id="m3")
    store.save_settings(DisplaySettings(cycle_speed=4))
    unsubscribe()
    store.delete_poster("m1")

    assert seen == [["m1", "m2"], ["m1", "m2", "m3"]]
    assert [s.cycle_speed for s in speeds] == [4]


def test_memory_delete_of_unknown_id_sends_no_notification():
    store = MemoryPosterStore()
    seen = []
    store.subscribe(seen.append)
    store.delete_poster("ghost")
    store.delete_posters(["ghost"])
    assert seen == [[]]


def test_listener_errors_do_not_break_writes():
    store = MemoryPosterStore()

    def broken(_posters):
        raise RuntimeError("boom")

    store.subscribe(broken)
    assert store.add_poster({"name": "A"})


def test_poll_only_memory_store_refuses_subscribe():
    store = MemoryPosterStore(push=False)
    assert store.supports_push is False
    with pytest.raises(NotImplementedError):
        store.subscribe(lambda _p: None)
