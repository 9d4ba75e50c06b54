"""Scheduling of crawl cycles."""

from .apsched_adapter import APSchedulerAdapter, CYCLE_JOB_ID

__all__ = ["APSchedulerAdapter", "CYCLE_JOB_ID"]
