"""Crawl orchestrator wiring together fetching, parsing, matching and dedup."""

from __future__ import annotations

from threading import Lock
from typing import Callable, Iterator

import structlog
from selectolax.parser import HTMLParser

from .config import ConfigRepository, Subscription
from .engine import (
    AlreadyProcessedUrlsStore,
    FetchError,
    Result,
    SiteParser,
    ThreadPoolManager,
)

Notifier = Callable[[Subscription, Result], None]


def _empty_summary() -> dict[str, int]:
    return {"results": 0, "known": 0, "matched": 0, "rejected": 0, "failed": 0, "errors": 0}


class CrawlOrchestrator:
    """Run crawl cycles for all configured subscriptions."""

    def __init__(
        self,
        repository: ConfigRepository,
        store: AlreadyProcessedUrlsStore,
        parser: SiteParser,
        notify: Notifier | None = None,
        thread_pool: ThreadPoolManager | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.repository = repository
        self.store = store
        self.parser = parser
        self.thread_pool = thread_pool or ThreadPoolManager()
        self.logger = logger or structlog.get_logger("classifieds_watcher.orchestrator")
        self.notify = notify or self._log_match
        self._cycle_lock = Lock()

    # ------------------------------------------------------------------
    def run_cycle(self) -> dict[str, dict[str, int]]:
        # Only one cycle at a time, whoever triggers it
        if not self._cycle_lock.acquire(blocking=False):
            self.logger.warning("cycle_skipped", reason="previous cycle still running")
            return {}
        try:
            return self._run_cycle()
        finally:
            self._cycle_lock.release()

    def _run_cycle(self) -> dict[str, dict[str, int]]:
        subscriptions = self.repository.list_subscriptions()
        enabled = [item for item in subscriptions if item.enabled]
        self.logger.info("cycle_started", subscriptions=len(enabled))

        summaries: dict[str, dict[str, int]] = {}
        for subscription, future in self.thread_pool.submit_all(self.run_subscription, enabled):
            try:
                summaries[subscription.label] = future.result()
            except Exception as exc:  # noqa: BLE001
                self.logger.error(
                    "subscription_failed",
                    subscription=subscription.label,
                    error=str(exc),
                    exc_info=exc,
                )
                summary = _empty_summary()
                summary["errors"] = 1
                summaries[subscription.label] = summary

        self.store.forget_subscriptions(item.id for item in subscriptions)
        self.store.save()
        self.logger.info("cycle_finished", subscriptions=len(summaries))
        return summaries

    def run_subscription(self, subscription: Subscription) -> dict[str, int]:
        log = self.logger.bind(subscription=subscription.label)
        executor = self.parser.query_executor
        summary = _empty_summary()
        handled: set[str] = set()

        for result in self._iter_results(subscription, log):
            if result.link in handled:
                continue
            handled.add(result.link)
            summary["results"] += 1

            if self.store.is_processed(subscription.id, result.link):
                self.store.mark_processed(subscription.id, result.link)
                summary["known"] += 1
                continue

            try:
                document = executor.get_html(result.link)
            except FetchError as exc:
                log.warning("detail_fetch_failed", link=result.link, error=str(exc))
                summary["failed"] += 1
                continue

            if not self.parser.is_match(document, subscription):
                summary["rejected"] += 1
                continue

            # Recording is the claim: whoever records the link first notifies
            if self.store.mark_processed(subscription.id, result.link):
                summary["matched"] += 1
                self.notify(subscription, result)
            else:
                summary["known"] += 1

        log.info("subscription_finished", **summary)
        return summary

    def _iter_results(self, subscription: Subscription, log: structlog.BoundLogger) -> Iterator[Result]:
        executor = self.parser.query_executor
        try:
            first_page = executor.get_html(subscription.query_url)
        except FetchError as exc:
            log.warning("result_page_fetch_failed", url=subscription.query_url, error=str(exc))
            return
        yield from self.parser.parse_links(first_page)

        for url in self.parser.get_additional_pages(first_page):
            if url == subscription.query_url:
                continue
            try:
                page: HTMLParser = executor.get_html(url)
            except FetchError as exc:
                log.warning("result_page_fetch_failed", url=url, error=str(exc))
                continue
            yield from self.parser.parse_links(page)

    def _log_match(self, subscription: Subscription, result: Result) -> None:
        self.logger.info(
            "match_found",
            subscription=subscription.label,
            link=result.link,
            price=result.price,
            creation_date=result.creation_date,
        )


__all__ = ["CrawlOrchestrator", "Notifier"]
