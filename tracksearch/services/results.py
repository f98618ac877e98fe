"""Bounding and annotation of result batches before they reach the caller."""

from __future__ import annotations

from typing import Sequence

from tracksearch.domain.models import Result, SearchRequestId, TrackBundle
from tracksearch.logging import logger
from tracksearch.services.events import Emitter

MAX_RESULTS_PER_EMISSION = 1000
DEFAULT_CACHE_NAMESPACE = "tidal"


def pixmap_cache_key(result: Result, namespace: str = DEFAULT_CACHE_NAMESPACE) -> str:
    """Thumbnail cache key shared by every result pointing at the same track."""

    return f"{namespace}:{result.metadata.url}"


def load_tracks(results: Sequence[Result]) -> TrackBundle | None:
    """Collect the tracks and their URLs from a selection of results."""

    if not results:
        return None
    songs = [result.metadata for result in results]
    return TrackBundle(songs=songs, urls=[song.url for song in songs])


class ResultProcessor:
    def __init__(
        self,
        emitter: Emitter,
        *,
        max_results: int = MAX_RESULTS_PER_EMISSION,
        namespace: str = DEFAULT_CACHE_NAMESPACE,
    ) -> None:
        if max_results < 1:
            raise ValueError("max_results must be positive")
        self._emitter = emitter
        self.max_results = max_results
        self.namespace = namespace

    def process(self, origin: SearchRequestId, results: Sequence[Result]) -> list[Result]:
        if not results:
            return []

        # Caps a single emission only; later batches for the same origin are bounded separately.
        if len(results) > self.max_results:
            logger.info(
                "search_results_truncated",
                origin=origin,
                received=len(results),
                kept=self.max_results,
            )
            results = results[: self.max_results]

        bounded = [
            result.model_copy(update={"cache_key": pixmap_cache_key(result, self.namespace)})
            for result in results
        ]
        self._emitter.results_available(origin, bounded)
        return bounded


__all__ = [
    "DEFAULT_CACHE_NAMESPACE",
    "MAX_RESULTS_PER_EMISSION",
    "ResultProcessor",
    "load_tracks",
    "pixmap_cache_key",
]
