"""Per-subscription store of already processed listing links."""

from __future__ import annotations

import shutil
from datetime import datetime, timedelta
from pathlib import Path
from threading import RLock
from typing import Callable, Iterable
from uuid import UUID

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..infra.storage import DeserializationError, JsonDataStorage

STORE_FILENAME = "AlreadyProcessedUrls.json"
DEFAULT_RETENTION = timedelta(days=31)


class AlreadyProcessedUrl(BaseModel):
    """A listing link together with the last time it showed up in results."""

    model_config = ConfigDict(populate_by_name=True)

    uri: str
    last_found: datetime = Field(alias="lastFound")

    @field_validator("last_found")
    @classmethod
    def _to_local_naive(cls, value: datetime) -> datetime:
        # Timestamps are kept as naive local time; files may carry UTC offsets
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value


ProcessedUrls = dict[UUID, list[AlreadyProcessedUrl]]
LegacyProcessedUrls = dict[UUID, list[str]]


class AlreadyProcessedUrlsStore:
    """Remember which links were already handled for every subscription.

    Lifecycle: construct, call :meth:`restore` once, then mutate through the
    accessors and call :meth:`save` whenever state should be flushed. Every
    operation, including restore and migration, runs under one lock.
    """

    def __init__(
        self,
        storage: JsonDataStorage,
        data_dir: Path = Path("data"),
        clock: Callable[[], datetime] = datetime.now,
        retention: timedelta = DEFAULT_RETENTION,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.storage = storage
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.file_path = self.data_dir / STORE_FILENAME
        self.backup_path = self.file_path.with_name(self.file_path.name + ".bak")
        self.clock = clock
        self.retention = retention
        self.logger = logger or structlog.get_logger("classifieds_watcher.dedup")
        # Re-entrant: restore and migration save while holding it
        self._lock = RLock()
        self._urls: ProcessedUrls = {}

    # ------------------------------------------------------------------
    def get_processed_links(self, subscription_id: UUID) -> list[AlreadyProcessedUrl]:
        with self._lock:
            return self._urls.setdefault(subscription_id, [])

    def is_processed(self, subscription_id: UUID, uri: str) -> bool:
        with self._lock:
            return any(entry.uri == uri for entry in self._urls.get(subscription_id, ()))

    def mark_processed(self, subscription_id: UUID, uri: str) -> bool:
        """Record an observation of ``uri``; return ``True`` if it was new."""

        with self._lock:
            now = self.clock()
            entries = self._urls.setdefault(subscription_id, [])
            for entry in entries:
                if entry.uri == uri:
                    entry.last_found = now
                    return False
            entries.append(AlreadyProcessedUrl(uri=uri, last_found=now))
            return True

    def forget_subscriptions(self, active_ids: Iterable[UUID]) -> int:
        """Drop state of subscriptions that are no longer configured."""

        active = set(active_ids)
        with self._lock:
            stale = [key for key in self._urls if key not in active]
            for key in stale:
                del self._urls[key]
        if stale:
            self.logger.info("stale_subscriptions_removed", count=len(stale))
        return len(stale)

    @property
    def subscription_count(self) -> int:
        with self._lock:
            return len(self._urls)

    # ------------------------------------------------------------------
    def restore(self) -> None:
        with self._lock:
            try:
                self._urls = self.storage.load(self.file_path, ProcessedUrls)
                self.logger.info("processed_urls_restored", subscriptions=len(self._urls))
            except FileNotFoundError as exc:
                self.logger.warning("processed_urls_missing", path=str(self.file_path), error=str(exc))
                self._urls = {}
            except DeserializationError:
                self.logger.warning("processed_urls_legacy_format", path=str(self.file_path))
                self._convert_legacy_file()
            except Exception as exc:  # noqa: BLE001
                self.logger.error(
                    "processed_urls_restore_failed",
                    path=str(self.file_path),
                    error=str(exc),
                    exc_info=True,
                )
                self._urls = {}

            self.save()

    def _convert_legacy_file(self) -> None:
        try:
            if not self.backup_path.exists():
                shutil.copyfile(self.file_path, self.backup_path)
            legacy = self.storage.load(self.file_path, LegacyProcessedUrls)
            now = self.clock()
            self._urls = {
                subscription_id: [AlreadyProcessedUrl(uri=uri, last_found=now) for uri in uris]
                for subscription_id, uris in legacy.items()
            }
            self.save()
            self.logger.warning("processed_urls_converted", subscriptions=len(self._urls))
        except Exception as exc:  # noqa: BLE001
            self.logger.error("processed_urls_conversion_failed", error=str(exc), exc_info=True)
            self._urls = {}

    def save(self) -> None:
        with self._lock:
            # Links unseen for longer than the retention window will not show up again
            cutoff = self.clock() - self.retention
            for entries in self._urls.values():
                entries[:] = [entry for entry in entries if entry.last_found >= cutoff]
            try:
                self.storage.save(self._urls, self.file_path, ProcessedUrls)
            except Exception as exc:  # noqa: BLE001
                self.logger.error(
                    "processed_urls_save_failed",
                    path=str(self.file_path),
                    error=str(exc),
                    exc_info=True,
                )


__all__ = ["AlreadyProcessedUrl", "AlreadyProcessedUrlsStore", "STORE_FILENAME"]
