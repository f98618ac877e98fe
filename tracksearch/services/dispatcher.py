"""Correlation of provider replies with caller-visible search requests."""

from __future__ import annotations

from collections import Counter
from typing import Callable, Sequence

from tracksearch.domain.models import (
    BackendCorrelationId,
    PendingSearchState,
    Result,
    SearchMode,
    SearchRequestId,
    TrackMetadata,
)
from tracksearch.logging import logger
from tracksearch.providers.base import SearchProvider
from tracksearch.services.events import Emitter
from tracksearch.services.results import ResultProcessor
from tracksearch.services.tokenizer import tokenize_query


class SearchDispatcher:
    """Send queries to the provider and route its replies back to their origin.

    One origin may have several dispatches outstanding at once. The origin is
    reported finished once every one of them has replied, successfully or
    not, and no re-issued query for it is still waiting out its quiet
    period (``is_held``).
    """

    def __init__(
        self,
        provider: SearchProvider,
        processor: ResultProcessor,
        emitter: Emitter,
        *,
        is_held: Callable[[SearchRequestId], bool] | None = None,
    ) -> None:
        self._provider = provider
        self._processor = processor
        self._emitter = emitter
        self._next_id = 1
        self._pending: dict[BackendCorrelationId, PendingSearchState] = {}
        self._outstanding: Counter[SearchRequestId] = Counter()
        self._unfinished: set[SearchRequestId] = set()
        self._is_held = is_held or (lambda origin: False)

    def allocate_request_id(self) -> SearchRequestId:
        request_id = self._next_id
        self._next_id += 1
        return request_id

    def is_allocated(self, origin: SearchRequestId) -> bool:
        return 0 < origin < self._next_id

    def outstanding(self, origin: SearchRequestId) -> int:
        return self._outstanding.get(origin, 0)

    def is_in_flight(self, origin: SearchRequestId) -> bool:
        return self.outstanding(origin) > 0

    def match_tokens(self, correlation_id: BackendCorrelationId) -> tuple[str, ...] | None:
        state = self._pending.get(correlation_id)
        return state.match_tokens if state else None

    def dispatch(self, origin: SearchRequestId, query: str, mode: SearchMode) -> BackendCorrelationId | None:
        self._unfinished.add(origin)
        try:
            correlation_id = self._provider.search(query, mode)
        except Exception as exc:
            logger.exception("search_dispatch_failed", origin=origin, mode=mode.value)
            self._emitter.search_error(origin, str(exc) or exc.__class__.__name__)
            self._maybe_finished(origin)
            return None

        stale = self._pending.pop(correlation_id, None)
        if stale is not None:
            logger.warning(
                "search_correlation_id_reused",
                correlation_id=correlation_id,
                stale_origin=stale.origin,
            )
            if stale.origin == origin:
                self._outstanding[origin] -= 1
            else:
                self._release(stale.origin)

        self._pending[correlation_id] = PendingSearchState(
            origin=origin, match_tokens=tuple(tokenize_query(query))
        )
        self._outstanding[origin] += 1
        logger.info(
            "search_dispatched",
            origin=origin,
            correlation_id=correlation_id,
            mode=mode.value,
        )
        return correlation_id

    def on_search_results(
        self, correlation_id: BackendCorrelationId, songs: Sequence[TrackMetadata]
    ) -> None:
        state = self._pending.pop(correlation_id, None)
        if state is None:
            logger.info("stale_search_reply_ignored", correlation_id=correlation_id)
            return

        results = [Result(metadata=song) for song in songs]
        logger.info(
            "search_results_received",
            origin=state.origin,
            correlation_id=correlation_id,
            count=len(results),
        )
        try:
            self._processor.process(state.origin, results)
        finally:
            self._release(state.origin)

    def on_search_error(self, correlation_id: BackendCorrelationId, message: str) -> None:
        state = self._pending.pop(correlation_id, None)
        if state is None:
            logger.info("stale_search_error_ignored", correlation_id=correlation_id, error=message)
            return

        logger.warning(
            "search_failed",
            origin=state.origin,
            correlation_id=correlation_id,
            error=message,
        )
        self._emitter.search_error(state.origin, message)
        self._release(state.origin)

    def settle(self, origin: SearchRequestId) -> None:
        """Emit search-finished for ``origin`` if nothing is left to wait for."""

        self._maybe_finished(origin)

    def _release(self, origin: SearchRequestId) -> None:
        self._outstanding[origin] -= 1
        if self._outstanding[origin] <= 0:
            del self._outstanding[origin]
        self._maybe_finished(origin)

    def _maybe_finished(self, origin: SearchRequestId) -> None:
        if origin not in self._unfinished or self._outstanding.get(origin, 0):
            return
        if self._is_held(origin):
            logger.debug("search_finish_deferred", origin=origin)
            return
        self._unfinished.discard(origin)
        logger.info("search_finished", origin=origin)
        self._emitter.search_finished(origin)


__all__ = ["SearchDispatcher"]
