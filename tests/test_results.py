"""Result bounding, cache keys and track export."""

from __future__ import annotations

import pytest
from conftest import make_song

from tracksearch.domain.models import Result
from tracksearch.services.events import Emitter
from tracksearch.services.results import (
    MAX_RESULTS_PER_EMISSION,
    ResultProcessor,
    load_tracks,
    pixmap_cache_key,
)


def test_empty_batch_emits_nothing(listener):
    processor = ResultProcessor(Emitter([listener]))
    assert processor.process(1, []) == []
    assert listener.results == []


def test_large_batch_truncated_to_first_thousand(listener):
    processor = ResultProcessor(Emitter([listener]))
    results = [Result(metadata=make_song(n)) for n in range(1500)]

    bounded = processor.process(4, results)

    assert MAX_RESULTS_PER_EMISSION == 1000
    assert len(bounded) == 1000
    assert [r.metadata.url for r in bounded] == [r.metadata.url for r in results[:1000]]
    origin, emitted = listener.results[0]
    assert origin == 4
    assert len(emitted) == 1000


def test_cap_applies_per_emission(listener):
    processor = ResultProcessor(Emitter([listener]), max_results=2)
    batch = [Result(metadata=make_song(n)) for n in range(3)]

    processor.process(1, batch)
    processor.process(1, batch)

    assert [len(res) for _, res in listener.results] == [2, 2]


def test_every_result_gets_namespaced_cache_key(listener):
    processor = ResultProcessor(Emitter([listener]), namespace="tidal")

    bounded = processor.process(1, [Result(metadata=make_song(7))])

    assert bounded[0].cache_key == "tidal:tidal://track/7"


def test_identical_urls_share_cache_key():
    a = Result(metadata=make_song(1, title="Original"))
    b = Result(metadata=make_song(1, title="Another release"))
    assert pixmap_cache_key(a) == pixmap_cache_key(b)
    assert pixmap_cache_key(a) != pixmap_cache_key(Result(metadata=make_song(2)))


def test_processor_rejects_non_positive_limit(listener):
    with pytest.raises(ValueError):
        ResultProcessor(Emitter([listener]), max_results=0)


def test_load_tracks_collects_songs_and_urls():
    results = [Result(metadata=make_song(n)) for n in (1, 2)]

    bundle = load_tracks(results)

    assert bundle is not None
    assert [song.title for song in bundle.songs] == ["Track 1", "Track 2"]
    assert bundle.urls == ["tidal://track/1", "tidal://track/2"]


def test_load_tracks_empty_selection():
    assert load_tracks([]) is None
