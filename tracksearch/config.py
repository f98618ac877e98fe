"""Runtime configuration based on environment variables."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, HttpUrl, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BackendSettings(BaseModel):
    base_url: HttpUrl = Field(
        default="https://api.tidalhifi.com/v1",
        description="Root URL of the search provider API.",
    )
    api_token: SecretStr | None = None
    country_code: str = Field(default="US", min_length=2, max_length=2)
    results_limit: int = Field(default=100, ge=1, le=10_000)
    request_timeout_seconds: int = Field(default=10, ge=1, le=120)

    @field_validator("api_token", mode="before")
    @classmethod
    def _empty_str_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class SearchSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TRACKSEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    environment: Literal["dev", "staging", "prod"] = "dev"
    debounce_ms: int = Field(default=200, ge=0, le=10_000)
    max_results_per_emission: int = Field(default=1000, ge=1)
    art_size: int = Field(default=32, ge=1, le=1024)
    cache_namespace: str = Field(default="tidal", min_length=1)
    thumbnail_cache_capacity: int = Field(default=500, ge=1)

    backend: BackendSettings = Field(default_factory=BackendSettings)

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0


@lru_cache
def get_settings() -> SearchSettings:
    """Return cached settings instance."""

    return SearchSettings()


__all__ = [
    "BackendSettings",
    "SearchSettings",
    "get_settings",
]
