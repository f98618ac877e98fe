"""Cover art fetching over HTTP."""

from __future__ import annotations

import asyncio
from io import BytesIO

import httpx
from PIL import Image

from tracksearch.domain.models import CoverLoaderOptions, LoaderId, TrackMetadata
from tracksearch.logging import logger
from tracksearch.providers.base import ImageReplyHandler
from tracksearch.services.exceptions import ProviderError


def decode_image(raw: bytes, options: CoverLoaderOptions) -> Image.Image:
    with Image.open(BytesIO(raw)) as source:
        image = source.convert("RGBA")
    if options.scale_output_image and image.height > options.desired_height:
        box = (max(image.width, options.desired_height), options.desired_height)
        image.thumbnail(box, Image.Resampling.LANCZOS)
    return image


class HttpImageLoader:
    """Download and decode cover images off the event loop.

    Decoding runs in a worker thread; the reply is delivered back on the
    loop that issued the request. Failures reply with ``None``.
    """

    def __init__(self, http_client: httpx.AsyncClient, *, timeout_seconds: float = 10.0) -> None:
        self._client = http_client
        self._timeout = timeout_seconds
        self._handlers: list[ImageReplyHandler] = []
        self._tasks: set[asyncio.Task[None]] = set()
        self._next_id = 1

    def subscribe(self, handler: ImageReplyHandler) -> None:
        self._handlers.append(handler)

    def load_image_async(self, options: CoverLoaderOptions, metadata: TrackMetadata) -> LoaderId:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise ProviderError("Images must be requested from a running event loop.") from exc

        loader_id = self._next_id
        self._next_id += 1
        task = loop.create_task(self._run(loader_id, options, metadata))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return loader_id

    async def aclose(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _run(self, loader_id: LoaderId, options: CoverLoaderOptions, metadata: TrackMetadata) -> None:
        image = None
        try:
            if metadata.art_url:
                response = await self._client.get(metadata.art_url, timeout=self._timeout)
                response.raise_for_status()
                image = await asyncio.to_thread(decode_image, response.content, options)
            else:
                logger.debug("cover_url_missing", loader_id=loader_id, track=metadata.url)
        except (httpx.HTTPError, OSError) as exc:
            logger.warning(
                "cover_load_failed",
                loader_id=loader_id,
                url=metadata.art_url,
                error=str(exc),
            )
        except Exception:
            logger.exception("cover_load_crashed", loader_id=loader_id, url=metadata.art_url)
        finally:
            # Every request gets exactly one reply, cancellation included.
            self._notify(loader_id, image)

    def _notify(self, loader_id: LoaderId, image: Image.Image | None) -> None:
        for handler in list(self._handlers):
            try:
                handler.on_image_loaded(loader_id, image)
            except Exception:
                logger.exception("image_reply_handler_failed", loader_id=loader_id)


__all__ = ["HttpImageLoader", "decode_image"]
