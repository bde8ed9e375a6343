"""Shared pytest fixtures for the Poster Buddy test suite."""

from __future__ import annotations

import io

import pytest
from PIL import Image

from posterbuddy.core.adapter import DataStoreAdapter
from posterbuddy.core.errors import NetworkFailure
from posterbuddy.core.rotation import RotationController
from posterbuddy.core.store import MemoryPosterStore
from posterbuddy.models.poster import Poster


class FakeTimer:
    """Stands in for RepeatingTimer; tests fire it by hand."""

    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        # Deliberately ignores `cancelled`: a real timer thread can race a cancel
        self.callback()


class FakeTimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, interval, callback):
        timer = FakeTimer(interval, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self):
        live = [t for t in self.timers if t.started and not t.cancelled]
        assert len(live) <= 1, "more than one live rotation timer"
        return live[0] if live else None


class FlakyStore(MemoryPosterStore):
    """Memory store whose reads and writes can be switched to fail."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_reads = False
        self.fail_writes = False
        self.on_write = None

    def _write_hook(self):
        if self.on_write is not None:
            self.on_write()
        if self.fail_writes:
            raise NetworkFailure("store offline")

    def list_posters(self):
        if self.fail_reads:
            raise NetworkFailure("store offline")
        return super().list_posters()

    def update_poster(self, poster_id, document):
        self._write_hook()
        super().update_poster(poster_id, document)

    def delete_poster(self, poster_id):
        self._write_hook()
        super().delete_poster(poster_id)


@pytest.fixture
def flaky_store():
    """The FlakyStore class, for building stores with failure switches."""
    return FlakyStore


@pytest.fixture
def timers():
    return FakeTimerFactory()


@pytest.fixture
def make_posters():
    def _make(count):
        return [Poster(id=f"m{i}", name=f"Movie {i}") for i in range(1, count + 1)]

    return _make


@pytest.fixture
def make_controller(timers):
    """Controller factory over a given store; no background polling unless asked."""
    created = []

    def _make(store, **kwargs):
        kwargs.setdefault("poll_interval_sec", None)
        controller = RotationController(DataStoreAdapter(store), timer_factory=timers, **kwargs)
        created.append(controller)
        return controller

    yield _make
    for controller in created:
        controller.stop()


@pytest.fixture
def png_bytes():
    def _png(width=60, height=90, color="red"):
        buffer = io.BytesIO()
        Image.new("RGB", (width, height), color=color).save(buffer, format="PNG")
        return buffer.getvalue()

    return _png
