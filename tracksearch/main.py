"""Command-line entrypoint running a single debounced search."""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Sequence

import httpx

from tracksearch.config import get_settings
from tracksearch.domain.models import SearchMode
from tracksearch.logging import configure_logging, logger
from tracksearch.providers.http_images import HttpImageLoader
from tracksearch.providers.http_search import HttpSearchProvider
from tracksearch.services.events import QueueListener
from tracksearch.services.search import TrackSearch


async def main(
    query: str,
    mode: SearchMode = SearchMode.SONGS,
    *,
    with_art: bool = False,
    pretty: bool = False,
    verbose: bool = False,
) -> int:
    configure_logging(logging.DEBUG if verbose else logging.INFO, pretty=pretty)
    settings = get_settings()
    listener = QueueListener()

    async with httpx.AsyncClient() as client:
        provider = HttpSearchProvider(client, settings=settings.backend)
        image_loader = HttpImageLoader(
            client, timeout_seconds=settings.backend.request_timeout_seconds
        )
        async with TrackSearch(provider, image_loader, listeners=[listener], settings=settings) as search:
            origin = search.search_async(query, mode)
            logger.info("search_started", origin=origin, query=query, mode=mode.value)

            found = 0
            art_pending: set[int] = set()
            finished = False
            while not finished or art_pending:
                event = await listener.queue.get()
                if event.kind == "results_available":
                    for result in event.payload:
                        found += 1
                        logger.info(
                            "search_result",
                            origin=event.request_id,
                            url=result.metadata.url,
                            title=result.metadata.title,
                            artist=result.metadata.artist,
                            album=result.metadata.album,
                        )
                        if with_art:
                            art_pending.add(search.load_art_async(result))
                elif event.kind == "search_error":
                    logger.error("search_error", origin=event.request_id, error=event.payload)
                elif event.kind == "art_loaded":
                    art_pending.discard(event.request_id)
                    logger.info("art_loaded", art_id=event.request_id, loaded=event.payload is not None)
                elif event.kind == "search_finished":
                    finished = True

            logger.info("search_complete", origin=origin, results=found, cached=len(search.cache))

        await provider.aclose()
        await image_loader.aclose()
    return found


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a catalogue search.")
    parser.add_argument("query")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in SearchMode],
        default=SearchMode.SONGS.value,
    )
    parser.add_argument("--art", action="store_true", help="Also fetch thumbnails.")
    parser.add_argument("--pretty", action="store_true", help="Human-readable log output instead of JSON.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Include debug events.")
    return parser.parse_args(argv)


def run() -> None:
    args = parse_args()
    asyncio.run(
        main(
            args.query,
            SearchMode(args.mode),
            with_art=args.art,
            pretty=args.pretty,
            verbose=args.verbose,
        )
    )


if __name__ == "__main__":
    run()
