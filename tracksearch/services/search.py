"""Caller-facing search facade wiring debounce, dispatch, results and art."""

from __future__ import annotations

import time
from typing import Sequence

from PIL import Image

from tracksearch.config import SearchSettings, get_settings
from tracksearch.domain.models import (
    ArtRequestId,
    DelayedSearch,
    Result,
    SearchMode,
    SearchRequestId,
    TrackBundle,
)
from tracksearch.logging import logger
from tracksearch.providers.base import ImageLoader, SearchProvider
from tracksearch.services.art_loader import ArtLoader
from tracksearch.services.debounce import Clock, DebounceScheduler
from tracksearch.services.dispatcher import SearchDispatcher
from tracksearch.services.events import Emitter, SearchListener
from tracksearch.services.results import ResultProcessor, load_tracks
from tracksearch.services.thumbnail_cache import ThumbnailCache
from tracksearch.services.tokenizer import matches, tokenize_query


class TrackSearch:
    """Debounced track search with thumbnail caching.

    Every public entry point and every collaborator reply must run on the
    same event loop; none of the tables below are guarded by locks.

    Example::

        search = TrackSearch(provider, image_loader, listeners=[listener])
        origin = search.search_async("daft punk", SearchMode.ARTISTS)
    """

    tokenize_query = staticmethod(tokenize_query)
    matches = staticmethod(matches)

    def __init__(
        self,
        provider: SearchProvider,
        image_loader: ImageLoader,
        *,
        listeners: Sequence[SearchListener] = (),
        settings: SearchSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.emitter = Emitter(listeners)
        self.cache = ThumbnailCache(self.settings.thumbnail_cache_capacity)
        self.processor = ResultProcessor(
            self.emitter,
            max_results=self.settings.max_results_per_emission,
            namespace=self.settings.cache_namespace,
        )
        self.dispatcher = SearchDispatcher(
            provider, self.processor, self.emitter, is_held=self._is_debouncing
        )
        self.scheduler = DebounceScheduler(
            self._dispatch_delayed,
            quiet_period=self.settings.debounce_seconds,
            clock=clock or time.monotonic,
        )
        self.art_loader = ArtLoader(
            image_loader,
            self.cache,
            self.emitter,
            art_size=self.settings.art_size,
            namespace=self.settings.cache_namespace,
        )
        provider.subscribe(self.dispatcher)
        image_loader.subscribe(self.art_loader)

    async def __aenter__(self) -> "TrackSearch":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def add_listener(self, listener: SearchListener) -> None:
        self.emitter.add_listener(listener)

    def remove_listener(self, listener: SearchListener) -> None:
        self.emitter.remove_listener(listener)

    def search_async(
        self,
        query: str,
        mode: SearchMode = SearchMode.SONGS,
        *,
        origin: SearchRequestId | None = None,
    ) -> SearchRequestId:
        """Schedule a debounced search and return its request id.

        Passing the ``origin`` of an earlier call replaces that request's
        query and restarts its quiet period, so a caller re-issuing the
        search on every keystroke only reaches the provider once.
        """

        if origin is None:
            origin = self.dispatcher.allocate_request_id()
        elif not self.dispatcher.is_allocated(origin):
            raise ValueError(f"Unknown search request id: {origin}")
        self.scheduler.schedule(origin, query, mode)
        logger.debug("search_requested", origin=origin, mode=mode.value)
        return origin

    def cancel_search(self, origin: SearchRequestId) -> bool:
        cancelled = self.scheduler.cancel(origin)
        if cancelled:
            # Earlier dispatches may all have replied while this one waited.
            self.dispatcher.settle(origin)
        return cancelled

    def load_art_async(self, result: Result) -> ArtRequestId:
        return self.art_loader.request_art(result)

    def find_cached_pixmap(self, result: Result) -> tuple[Image.Image | None, bool]:
        return self.art_loader.find_cached(result)

    def load_tracks(self, results: Sequence[Result]) -> TrackBundle | None:
        return load_tracks(results)

    async def aclose(self) -> None:
        await self.scheduler.aclose()

    def _is_debouncing(self, origin: SearchRequestId) -> bool:
        return self.scheduler.pending(origin) is not None

    def _dispatch_delayed(self, delayed: DelayedSearch) -> None:
        self.dispatcher.dispatch(delayed.origin, delayed.query, delayed.mode)


__all__ = ["TrackSearch"]
