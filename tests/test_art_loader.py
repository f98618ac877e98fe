"""Art loading, request coalescing and scaling."""

from __future__ import annotations

import asyncio

import pytest
from conftest import make_song
from PIL import Image

from tracksearch.domain.models import Result
from tracksearch.services.art_loader import ArtLoader, scale_and_pad
from tracksearch.services.events import Emitter
from tracksearch.services.thumbnail_cache import ThumbnailCache


def _loader(image_loader, listener, capacity=8):
    cache = ThumbnailCache(capacity)
    loader = ArtLoader(image_loader, cache, Emitter([listener]))
    image_loader.subscribe(loader)
    return loader, cache


def _result(n: int) -> Result:
    return Result(metadata=make_song(n), cache_key=f"tidal:tidal://track/{n}")


def test_exact_size_image_is_returned_unchanged():
    image = Image.new("RGB", (32, 32), (10, 20, 30))
    assert scale_and_pad(image) is image


def test_wide_image_scaled_down_and_centered():
    image = Image.new("RGB", (128, 64), (255, 0, 0))

    padded = scale_and_pad(image)

    assert padded.size == (32, 32)
    assert padded.mode == "RGBA"
    assert padded.getpixel((16, 0))[3] == 0
    red, green, blue, alpha = padded.getpixel((16, 16))
    assert alpha == 255
    assert red > 250 and green < 5 and blue < 5
    assert padded.getpixel((16, 31))[3] == 0


def test_square_image_scaled_without_padding():
    image = Image.new("RGB", (300, 300), (0, 0, 255))
    scaled = scale_and_pad(image)
    assert scaled.size == (32, 32)
    red, green, blue = scaled.getpixel((16, 16))
    assert blue > 250 and red < 5 and green < 5


def test_small_image_is_centered_not_upscaled():
    image = Image.new("RGBA", (10, 10), (0, 255, 0, 255))

    padded = scale_and_pad(image)

    assert padded.size == (32, 32)
    assert padded.getbbox() == (11, 11, 21, 21)


def test_request_then_load_caches_and_notifies(image_loader, listener):
    loader, cache = _loader(image_loader, listener)
    result = _result(1)

    art_id = loader.request_art(result)
    loader_id, options, metadata = image_loader.requests[0]
    assert options.desired_height == 32
    assert metadata == result.metadata

    image_loader.deliver(loader_id, Image.new("RGB", (64, 64)))

    assert [a for a, _ in listener.art] == [art_id]
    thumbnail = listener.art[0][1]
    assert thumbnail.size == (32, 32)
    assert cache.lookup(result.cache_key) == (thumbnail, True)
    assert loader.pending_count == 0


def test_concurrent_requests_for_same_key_share_one_fetch(image_loader, listener):
    loader, _ = _loader(image_loader, listener)
    result = _result(2)

    first = loader.request_art(result)
    second = loader.request_art(result)

    assert first != second
    assert len(image_loader.requests) == 1

    image_loader.deliver(image_loader.requests[0][0], Image.new("RGBA", (32, 32)))

    assert [art_id for art_id, _ in listener.art] == [first, second]
    assert listener.art[0][1] is listener.art[1][1]


def test_request_after_completion_fetches_again(image_loader, listener):
    loader, _ = _loader(image_loader, listener)
    result = _result(3)

    loader.request_art(result)
    image_loader.deliver(image_loader.requests[0][0], Image.new("RGBA", (32, 32)))
    loader.request_art(result)

    assert len(image_loader.requests) == 2


def test_foreign_loader_ids_are_ignored(image_loader, listener):
    loader, cache = _loader(image_loader, listener)

    image_loader.deliver(12345, Image.new("RGBA", (32, 32)))

    assert listener.art == []
    assert len(cache) == 0


def test_failed_load_notifies_without_caching(image_loader, listener):
    loader, cache = _loader(image_loader, listener)
    result = _result(4)
    art_id = loader.request_art(result)

    image_loader.deliver(image_loader.requests[0][0], None)

    assert listener.art == [(art_id, None)]
    assert cache.lookup(result.cache_key) == (None, False)
    assert loader.pending_count == 0


def test_cache_key_derived_when_result_not_annotated(image_loader, listener):
    loader, _ = _loader(image_loader, listener)
    result = Result(metadata=make_song(5))

    loader.request_art(result)
    image_loader.deliver(image_loader.requests[0][0], Image.new("RGBA", (32, 32)))

    image, found = loader.find_cached(result)
    assert found is True
    assert image.size == (32, 32)


class BrokenLoader:
    def subscribe(self, handler):
        pass

    def load_image_async(self, options, metadata):
        raise RuntimeError("no loop")


def test_loader_raising_on_issue_reports_art_loaded_none(listener):
    loader = ArtLoader(BrokenLoader(), ThumbnailCache(2), Emitter([listener]))

    art_id = loader.request_art(_result(6))

    assert listener.art == [(art_id, None)]
    assert loader.pending_count == 0


@pytest.mark.asyncio
async def test_loader_raising_on_issue_reports_after_returning_id(listener):
    loader = ArtLoader(BrokenLoader(), ThumbnailCache(2), Emitter([listener]))

    art_id = loader.request_art(_result(7))
    assert listener.art == []

    await asyncio.sleep(0)

    assert listener.art == [(art_id, None)]
    assert loader.pending_count == 0
    assert loader.find_cached(_result(7)) == (None, False)
