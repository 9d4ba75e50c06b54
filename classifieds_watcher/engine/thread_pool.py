"""Thread pool running subscription crawls concurrently."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from threading import Lock
from typing import Callable, Iterable, TypeVar

T = TypeVar("T")
R = TypeVar("R")


class ThreadPoolManager:
    """Lazily create and share the executor used for crawl work."""

    def __init__(self, workers: int = 4) -> None:
        self.workers = workers
        self._executor: ThreadPoolExecutor | None = None
        self._lock = Lock()

    def get(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.workers, thread_name_prefix="watcher"
                )
            return self._executor

    def submit_all(self, fn: Callable[[T], R], items: Iterable[T]) -> list[tuple[T, Future]]:
        executor = self.get()
        return [(item, executor.submit(fn, item)) for item in items]

    def shutdown(self, wait: bool = False) -> None:
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=wait)
                self._executor = None


__all__ = ["ThreadPoolManager"]
