"""APScheduler wrapper exposing higher level helpers."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable

import structlog
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

CYCLE_JOB_ID = "crawl::cycle"


class APSchedulerAdapter:
    """Run the crawl cycle on a fixed interval."""

    def __init__(self) -> None:
        self.scheduler = BackgroundScheduler()
        self.logger = structlog.get_logger("classifieds_watcher.scheduler")
        self.started = False

    def start(self) -> None:
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("apscheduler_started")

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("apscheduler_stopped")

    def schedule_cycle(
        self,
        callback: Callable[[], object],
        interval_seconds: int,
        run_now: bool = False,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        trigger = IntervalTrigger(seconds=interval_seconds)
        options: dict[str, Any] = {}
        if run_now:
            options["next_run_time"] = datetime.now()
        # A slow cycle must not overlap the next one
        self.scheduler.add_job(
            callback,
            trigger=trigger,
            id=CYCLE_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **options,
        )
        self.logger.info(
            "job_scheduled", job=CYCLE_JOB_ID, interval_seconds=interval_seconds, run_now=run_now
        )

    def list_jobs(self) -> list[dict]:
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append(
                {
                    "id": job.id,
                    "next_run_time": getattr(job, "next_run_time", None),
                    "trigger": str(job.trigger),
                }
            )
        return jobs


__all__ = ["APSchedulerAdapter", "CYCLE_JOB_ID"]
