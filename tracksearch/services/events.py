"""Caller-facing notifications emitted by the search core."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Literal, Protocol, Sequence

from PIL import Image

from tracksearch.domain.models import ArtRequestId, Result, SearchRequestId
from tracksearch.logging import logger

EventKind = Literal["results_available", "search_finished", "search_error", "art_loaded"]


class SearchListener(Protocol):
    def on_results_available(self, origin: SearchRequestId, results: Sequence[Result]) -> None: ...

    def on_search_finished(self, origin: SearchRequestId) -> None: ...

    def on_search_error(self, origin: SearchRequestId, message: str) -> None: ...

    def on_art_loaded(self, art_id: ArtRequestId, image: Image.Image | None) -> None: ...


@dataclass(slots=True, frozen=True)
class SearchEvent:
    kind: EventKind
    request_id: int
    payload: Any = None


class QueueListener:
    """Forward every notification onto an asyncio queue as a SearchEvent."""

    def __init__(self, queue: asyncio.Queue[SearchEvent] | None = None) -> None:
        self.queue: asyncio.Queue[SearchEvent] = queue or asyncio.Queue()

    def on_results_available(self, origin: SearchRequestId, results: Sequence[Result]) -> None:
        self.queue.put_nowait(SearchEvent("results_available", origin, list(results)))

    def on_search_finished(self, origin: SearchRequestId) -> None:
        self.queue.put_nowait(SearchEvent("search_finished", origin))

    def on_search_error(self, origin: SearchRequestId, message: str) -> None:
        self.queue.put_nowait(SearchEvent("search_error", origin, message))

    def on_art_loaded(self, art_id: ArtRequestId, image: Image.Image | None) -> None:
        self.queue.put_nowait(SearchEvent("art_loaded", art_id, image))


class Emitter:
    """Fan notifications out to registered listeners.

    A listener that raises is logged and skipped; the remaining listeners
    still receive the notification.
    """

    def __init__(self, listeners: Sequence[SearchListener] = ()) -> None:
        self._listeners: list[SearchListener] = list(listeners)

    def add_listener(self, listener: SearchListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SearchListener) -> None:
        self._listeners.remove(listener)

    def results_available(self, origin: SearchRequestId, results: Sequence[Result]) -> None:
        self._emit("on_results_available", origin, results)

    def search_finished(self, origin: SearchRequestId) -> None:
        self._emit("on_search_finished", origin)

    def search_error(self, origin: SearchRequestId, message: str) -> None:
        self._emit("on_search_error", origin, message)

    def art_loaded(self, art_id: ArtRequestId, image: Image.Image | None) -> None:
        self._emit("on_art_loaded", art_id, image)

    def _emit(self, method: str, *args: Any) -> None:
        for listener in list(self._listeners):
            try:
                getattr(listener, method)(*args)
            except Exception:
                logger.exception(
                    "search_listener_failed",
                    listener=type(listener).__name__,
                    notification=method,
                )


__all__ = ["Emitter", "EventKind", "QueueListener", "SearchEvent", "SearchListener"]
