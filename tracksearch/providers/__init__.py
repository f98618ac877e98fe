from tracksearch.providers.base import (
    ImageLoader,
    ImageReplyHandler,
    SearchProvider,
    SearchReplyHandler,
)
from tracksearch.providers.http_images import HttpImageLoader
from tracksearch.providers.http_search import HttpSearchProvider

__all__ = [
    "HttpImageLoader",
    "HttpSearchProvider",
    "ImageLoader",
    "ImageReplyHandler",
    "SearchProvider",
    "SearchReplyHandler",
]
