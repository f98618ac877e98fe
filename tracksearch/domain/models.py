"""Models shared between the search core and its adapters."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

SearchRequestId = int
BackendCorrelationId = int
ArtRequestId = int
LoaderId = int


class SearchMode(str, Enum):
    """What the provider should match the query against."""

    ARTISTS = "artists"
    ALBUMS = "albums"
    SONGS = "songs"


class TrackMetadata(BaseModel):
    """Track record as returned by the search provider."""

    model_config = ConfigDict(frozen=True)

    url: str
    title: str | None = None
    artist: str | None = None
    album: str | None = None
    art_url: str | None = None
    duration_seconds: int | None = None
    extra: dict[str, Any] = Field(default_factory=dict)


class Result(BaseModel):
    model_config = ConfigDict(frozen=True)

    metadata: TrackMetadata
    cache_key: str | None = None


class CoverLoaderOptions(BaseModel):
    """Options forwarded with every image request."""

    model_config = ConfigDict(frozen=True)

    desired_height: int = Field(default=32, ge=1)
    scale_output_image: bool = True
    pad_output_image: bool = True


@dataclass(slots=True, frozen=True)
class DelayedSearch:
    origin: SearchRequestId
    query: str
    mode: SearchMode


@dataclass(slots=True, frozen=True)
class PendingSearchState:
    origin: SearchRequestId
    match_tokens: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class PendingArtRequest:
    requester: ArtRequestId
    cache_key: str


@dataclass(slots=True)
class TrackBundle:
    """Tracks selected from a result set, ready to hand to a playlist."""

    songs: list[TrackMetadata]
    urls: list[str]


__all__ = [
    "ArtRequestId",
    "BackendCorrelationId",
    "CoverLoaderOptions",
    "DelayedSearch",
    "LoaderId",
    "PendingArtRequest",
    "PendingSearchState",
    "Result",
    "SearchMode",
    "SearchRequestId",
    "TrackBundle",
    "TrackMetadata",
]
