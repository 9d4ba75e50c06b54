"""Pydantic models used across classifieds-watcher configuration flow."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator, model_validator


class Subscription(BaseModel):
    """An owner's saved search with include/exclude keyword rules.

    Include entries containing ``|`` form a disjunction group: at least one
    of the ``|``-separated alternatives must appear in the listing. Plain
    entries must all appear. Keyword lists may be ``null`` in a hand-written
    file; the matcher refuses such subscriptions instead of guessing.
    """

    id: UUID = Field(default_factory=uuid4)
    title: str = ""
    query_url: str
    include_keywords: list[str] | None = Field(default_factory=list)
    exclude_keywords: list[str] | None = Field(default_factory=list)
    enabled: bool = True

    @field_validator("query_url")
    @classmethod
    def _validate_query_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("query_url must be an absolute http(s) URL")
        return value

    @property
    def label(self) -> str:
        return self.title or str(self.id)


class FetcherSettings(BaseModel):
    """HTTP client options for the query executor."""

    max_attempts: int = 3
    timeout: float = 15.0
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    )

    @model_validator(mode="after")
    def _validate_positive(self) -> "FetcherSettings":
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        return self


class GlobalConfig(BaseModel):
    """Global controls shared across subscriptions."""

    site: str = "kleinanzeigen"
    crawl_interval_seconds: int = 300
    thread_pool_workers: int = 4
    data_dir: Path = Field(default=Path("data"))
    fetcher: FetcherSettings = Field(default_factory=FetcherSettings)

    @field_validator("data_dir", mode="before")
    @classmethod
    def _coerce_dir(cls, value: Any) -> Path:
        return Path(value)

    @model_validator(mode="after")
    def _validate_ranges(self) -> "GlobalConfig":
        if self.crawl_interval_seconds < 30:
            raise ValueError("crawl_interval_seconds must be >= 30")
        if self.thread_pool_workers < 1:
            raise ValueError("thread_pool_workers must be >= 1")
        return self

    def resolved_data_dir(self, base_dir: Path) -> Path:
        """Return the data directory relative to the project root."""

        if not self.data_dir.is_absolute():
            return (base_dir / self.data_dir).resolve()
        return self.data_dir


__all__ = ["FetcherSettings", "GlobalConfig", "Subscription"]
