"""Thumbnail requests for search results."""

from __future__ import annotations

import asyncio
import itertools

from PIL import Image

from tracksearch.domain.models import (
    ArtRequestId,
    CoverLoaderOptions,
    LoaderId,
    PendingArtRequest,
    Result,
)
from tracksearch.logging import logger
from tracksearch.providers.base import ImageLoader
from tracksearch.services.events import Emitter
from tracksearch.services.results import DEFAULT_CACHE_NAMESPACE, pixmap_cache_key
from tracksearch.services.thumbnail_cache import ThumbnailCache

DEFAULT_ART_SIZE = 32


def scale_and_pad(image: Image.Image, size: int = DEFAULT_ART_SIZE) -> Image.Image:
    """Fit an image into a ``size`` x ``size`` square.

    Images of exactly that size are returned untouched. Larger images are
    scaled down keeping their aspect ratio; anything not filling the square
    is centered on a transparent canvas.
    """

    target = (size, size)
    if image.size == target:
        return image

    scaled = image.copy()
    scaled.thumbnail(target, Image.Resampling.LANCZOS)
    if scaled.size == target:
        return scaled

    if scaled.mode != "RGBA":
        scaled = scaled.convert("RGBA")
    canvas = Image.new("RGBA", target, (0, 0, 0, 0))
    offset = ((size - scaled.width) // 2, (size - scaled.height) // 2)
    canvas.paste(scaled, offset)
    return canvas


class ArtLoader:
    """Fetch thumbnails through the image subsystem and cache them.

    Requests for a cache key that is already being fetched join the running
    fetch; every requester still gets its own completion.
    """

    def __init__(
        self,
        image_loader: ImageLoader,
        cache: ThumbnailCache,
        emitter: Emitter,
        *,
        art_size: int = DEFAULT_ART_SIZE,
        namespace: str = DEFAULT_CACHE_NAMESPACE,
    ) -> None:
        self._image_loader = image_loader
        self._cache = cache
        self._emitter = emitter
        self.art_size = art_size
        self.namespace = namespace
        self.options = CoverLoaderOptions(desired_height=art_size)
        self._ids = itertools.count(1)
        self._pending: dict[ArtRequestId, PendingArtRequest] = {}
        self._loader_tasks: dict[LoaderId, list[ArtRequestId]] = {}
        self._inflight: dict[str, LoaderId] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def request_art(self, result: Result) -> ArtRequestId:
        key = self._cache_key(result)
        art_id = next(self._ids)

        loader_id = self._inflight.get(key)
        if loader_id is not None:
            self._pending[art_id] = PendingArtRequest(requester=art_id, cache_key=key)
            self._loader_tasks[loader_id].append(art_id)
            logger.debug("art_request_joined", art_id=art_id, loader_id=loader_id, key=key)
            return art_id

        try:
            loader_id = self._image_loader.load_image_async(self.options, result.metadata)
        except Exception as exc:
            logger.warning("art_request_failed", art_id=art_id, key=key, error=str(exc))
            self._notify_failed(art_id)
            return art_id

        self._pending[art_id] = PendingArtRequest(requester=art_id, cache_key=key)
        self._loader_tasks[loader_id] = [art_id]
        self._inflight[key] = loader_id
        logger.debug("art_requested", art_id=art_id, loader_id=loader_id, key=key)
        return art_id

    def on_image_loaded(self, loader_id: LoaderId, image: Image.Image | None) -> None:
        waiters = self._loader_tasks.pop(loader_id, None)
        if waiters is None:
            # Another consumer of the shared image loader.
            logger.debug("foreign_image_reply_ignored", loader_id=loader_id)
            return

        requests = [self._pending.pop(art_id) for art_id in waiters]
        key = requests[0].cache_key
        if self._inflight.get(key) == loader_id:
            del self._inflight[key]

        thumbnail = None
        if image is None:
            logger.warning("art_load_failed", loader_id=loader_id, key=key, waiters=len(waiters))
        else:
            thumbnail = scale_and_pad(image, self.art_size)
            self._cache.insert(key, thumbnail)

        for request in requests:
            self._emitter.art_loaded(request.requester, thumbnail)

    def _notify_failed(self, art_id: ArtRequestId) -> None:
        # The caller has not seen the id yet; report on the next loop iteration.
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._emitter.art_loaded(art_id, None)
            return
        loop.call_soon(self._emitter.art_loaded, art_id, None)

    def find_cached(self, result: Result) -> tuple[Image.Image | None, bool]:
        return self._cache.lookup(self._cache_key(result))

    def _cache_key(self, result: Result) -> str:
        if result.cache_key:
            return result.cache_key
        return pixmap_cache_key(result, self.namespace)


__all__ = ["ArtLoader", "DEFAULT_ART_SIZE", "scale_and_pad"]
