"""APScheduler setup and job registration."""

from __future__ import annotations

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from openhouse.config import settings
from openhouse.jobs.reconcile_gifts import reconcile_gifts
from openhouse.jobs.settle_pending_gifts import settle_pending_gifts

scheduler = AsyncIOScheduler(timezone=settings.timezone)


def register_jobs() -> None:
    """Register all periodic jobs if not already present."""
    if scheduler.get_job("settle_pending_gifts") is None:
        scheduler.add_job(
            settle_pending_gifts,
            IntervalTrigger(minutes=max(1, settings.pending_gift_sweep_minutes)),
            id="settle_pending_gifts",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    if scheduler.get_job("reconcile_gifts") is None:
        scheduler.add_job(
            reconcile_gifts,
            CronTrigger(minute=0, timezone=settings.timezone),
            id="reconcile_gifts",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
