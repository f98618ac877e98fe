"""Shared pytest fixtures and fakes for the search core tests."""

from __future__ import annotations

import pytest

from tracksearch.config import SearchSettings
from tracksearch.domain.models import Result, TrackMetadata


class FakeProvider:
    """Records searches; replies are delivered manually by the test."""

    def __init__(self, start_id: int = 100) -> None:
        self.calls: list[tuple[str, object]] = []
        self.handlers = []
        self.next_id = start_id
        self.fail_with: Exception | None = None

    def subscribe(self, handler) -> None:
        self.handlers.append(handler)

    def search(self, query, mode):
        if self.fail_with is not None:
            raise self.fail_with
        self.calls.append((query, mode))
        correlation_id = self.next_id
        self.next_id += 1
        return correlation_id

    def reply(self, correlation_id, songs) -> None:
        for handler in self.handlers:
            handler.on_search_results(correlation_id, songs)

    def fail(self, correlation_id, message) -> None:
        for handler in self.handlers:
            handler.on_search_error(correlation_id, message)


class FakeImageLoader:
    def __init__(self) -> None:
        self.requests: list[tuple[int, object, TrackMetadata]] = []
        self.handlers = []
        self.next_id = 500

    def subscribe(self, handler) -> None:
        self.handlers.append(handler)

    def load_image_async(self, options, metadata):
        loader_id = self.next_id
        self.next_id += 1
        self.requests.append((loader_id, options, metadata))
        return loader_id

    def deliver(self, loader_id, image) -> None:
        for handler in self.handlers:
            handler.on_image_loaded(loader_id, image)


class RecordingListener:
    def __init__(self) -> None:
        self.results: list[tuple[int, list[Result]]] = []
        self.finished: list[int] = []
        self.errors: list[tuple[int, str]] = []
        self.art: list[tuple[int, object]] = []

    def on_results_available(self, origin, results) -> None:
        self.results.append((origin, list(results)))

    def on_search_finished(self, origin) -> None:
        self.finished.append(origin)

    def on_search_error(self, origin, message) -> None:
        self.errors.append((origin, message))

    def on_art_loaded(self, art_id, image) -> None:
        self.art.append((art_id, image))


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_song(n: int, **overrides) -> TrackMetadata:
    data = {
        "url": f"tidal://track/{n}",
        "title": f"Track {n}",
        "artist": "Daft Punk",
        "album": "Discovery",
        "art_url": f"https://images.example/{n}.jpg",
    }
    data.update(overrides)
    return TrackMetadata(**data)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def image_loader() -> FakeImageLoader:
    return FakeImageLoader()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> SearchSettings:
    return SearchSettings(_env_file=None, thumbnail_cache_capacity=4)
