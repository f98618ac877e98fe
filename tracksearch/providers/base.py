"""Interfaces of the asynchronous collaborators used by the search core."""

from __future__ import annotations

from typing import Protocol, Sequence

from PIL import Image

from tracksearch.domain.models import (
    BackendCorrelationId,
    CoverLoaderOptions,
    LoaderId,
    SearchMode,
    TrackMetadata,
)


class SearchReplyHandler(Protocol):
    def on_search_results(
        self, correlation_id: BackendCorrelationId, songs: Sequence[TrackMetadata]
    ) -> None: ...

    def on_search_error(self, correlation_id: BackendCorrelationId, message: str) -> None: ...


class SearchProvider(Protocol):
    """Issues a search and answers later through subscribed handlers."""

    def search(self, query: str, mode: SearchMode) -> BackendCorrelationId: ...

    def subscribe(self, handler: SearchReplyHandler) -> None: ...


class ImageReplyHandler(Protocol):
    def on_image_loaded(self, loader_id: LoaderId, image: Image.Image | None) -> None: ...


class ImageLoader(Protocol):
    """Produces decoded images; replies are broadcast to every subscriber."""

    def load_image_async(self, options: CoverLoaderOptions, metadata: TrackMetadata) -> LoaderId: ...

    def subscribe(self, handler: ImageReplyHandler) -> None: ...


__all__ = [
    "ImageLoader",
    "ImageReplyHandler",
    "SearchProvider",
    "SearchReplyHandler",
]
