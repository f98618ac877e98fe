"""HTTP search provider backed by the Tidal catalogue API."""

from __future__ import annotations

import asyncio
from typing import Any, Sequence

import httpx
from pydantic import ValidationError

from tracksearch.config import BackendSettings
from tracksearch.domain.models import BackendCorrelationId, SearchMode, TrackMetadata
from tracksearch.logging import logger
from tracksearch.providers.base import SearchReplyHandler
from tracksearch.services.exceptions import ProviderError

_MODE_ENDPOINTS = {
    SearchMode.ARTISTS: "artists",
    SearchMode.ALBUMS: "albums",
    SearchMode.SONGS: "tracks",
}

COVER_URL_TEMPLATE = "https://resources.tidal.com/images/{path}/320x320.jpg"


def cover_url(image_id: str | None) -> str | None:
    if not image_id:
        return None
    return COVER_URL_TEMPLATE.format(path=image_id.replace("-", "/"))


def parse_item(item: dict[str, Any], mode: SearchMode) -> TrackMetadata | None:
    """Convert one catalogue item into track metadata; items without a URL are skipped."""

    url = item.get("url")
    if not url:
        return None

    album = item.get("album") or {}
    artist = item.get("artist") or {}
    if mode is SearchMode.ARTISTS:
        return TrackMetadata(
            url=url,
            artist=item.get("name"),
            art_url=cover_url(item.get("picture")),
            extra={"id": item.get("id")},
        )
    if mode is SearchMode.ALBUMS:
        return TrackMetadata(
            url=url,
            album=item.get("title"),
            artist=artist.get("name"),
            art_url=cover_url(item.get("cover")),
            duration_seconds=item.get("duration"),
            extra={"id": item.get("id")},
        )
    return TrackMetadata(
        url=url,
        title=item.get("title"),
        artist=artist.get("name"),
        album=album.get("title"),
        art_url=cover_url(album.get("cover")),
        duration_seconds=item.get("duration"),
        extra={"id": item.get("id"), "track_number": item.get("trackNumber")},
    )


class HttpSearchProvider:
    """Run catalogue searches as event loop tasks.

    :meth:`search` returns a correlation id immediately; the outcome is
    delivered later to every subscribed handler on the same loop.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: BackendSettings | None = None,
    ) -> None:
        self._client = http_client
        self._settings = settings or BackendSettings()
        self._handlers: list[SearchReplyHandler] = []
        self._tasks: set[asyncio.Task[None]] = set()
        self._next_id = 1

    def subscribe(self, handler: SearchReplyHandler) -> None:
        self._handlers.append(handler)

    def search(self, query: str, mode: SearchMode) -> BackendCorrelationId:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise ProviderError("Searches must be issued from a running event loop.") from exc

        correlation_id = self._next_id
        self._next_id += 1
        task = loop.create_task(self._run(correlation_id, query, mode))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return correlation_id

    async def aclose(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def fetch(self, query: str, mode: SearchMode) -> list[TrackMetadata]:
        query = query.strip()
        if not query:
            return []

        params = {
            "query": query,
            "limit": self._settings.results_limit,
            "countryCode": self._settings.country_code,
        }
        headers = {}
        token = self._settings.api_token
        if token:
            headers["X-Tidal-Token"] = token.get_secret_value()

        url = f"{str(self._settings.base_url).rstrip('/')}/search/{_MODE_ENDPOINTS[mode]}"
        try:
            response = await self._client.get(
                url,
                params=params,
                headers=headers,
                timeout=self._settings.request_timeout_seconds,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text[:500] if exc.response is not None else str(exc)
            status_code = exc.response.status_code if exc.response is not None else "unknown"
            raise ProviderError(f"Search request failed ({status_code}): {detail}") from exc
        except httpx.RequestError as exc:
            raise ProviderError(f"Search request failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError("Search response is not valid JSON.") from exc

        items = (data.get("items") if isinstance(data, dict) else None) or []
        if not isinstance(items, list):
            raise ProviderError("Search response items are not a list.")

        songs: list[TrackMetadata] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            try:
                song = parse_item(item, mode)
            except (ValidationError, AttributeError, TypeError) as exc:
                logger.warning("search_item_skipped", mode=mode.value, item_id=item.get("id"), error=str(exc))
                continue
            if song is not None:
                songs.append(song)
        return songs

    async def _run(self, correlation_id: BackendCorrelationId, query: str, mode: SearchMode) -> None:
        try:
            songs = await self.fetch(query, mode)
        except ProviderError as exc:
            logger.warning("provider_search_failed", correlation_id=correlation_id, error=str(exc))
            self._notify_error(correlation_id, str(exc))
            return
        except Exception as exc:
            logger.exception("provider_search_crashed", correlation_id=correlation_id)
            self._notify_error(correlation_id, f"Search failed: {exc.__class__.__name__}")
            return
        self._notify_results(correlation_id, songs)

    def _notify_results(self, correlation_id: BackendCorrelationId, songs: Sequence[TrackMetadata]) -> None:
        for handler in list(self._handlers):
            try:
                handler.on_search_results(correlation_id, songs)
            except Exception:
                logger.exception("search_reply_handler_failed", correlation_id=correlation_id)

    def _notify_error(self, correlation_id: BackendCorrelationId, message: str) -> None:
        for handler in list(self._handlers):
            try:
                handler.on_search_error(correlation_id, message)
            except Exception:
                logger.exception("search_reply_handler_failed", correlation_id=correlation_id)


__all__ = ["HttpSearchProvider", "cover_url", "parse_item"]
