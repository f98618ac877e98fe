"""In-memory LRU cache of result thumbnails."""

from __future__ import annotations

from collections import OrderedDict

from PIL import Image

from tracksearch.logging import logger

DEFAULT_CAPACITY = 500


class ThumbnailCache:
    """Bounded cache keyed by result cache key.

    Lookups and inserts both count as a use; once the capacity is exceeded
    the least recently used entries are evicted.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries: OrderedDict[str, Image.Image] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def lookup(self, key: str) -> tuple[Image.Image | None, bool]:
        image = self._entries.get(key)
        if image is None:
            return None, False
        self._entries.move_to_end(key)
        return image, True

    def insert(self, key: str, image: Image.Image) -> None:
        self._entries[key] = image
        self._entries.move_to_end(key)
        while len(self._entries) > self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("thumbnail_evicted", key=evicted)

    def clear(self) -> None:
        self._entries.clear()


__all__ = ["DEFAULT_CAPACITY", "ThumbnailCache"]
