from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..core.exceptions import DomainError
from ..fees.service import FeeLedgerService
from ..notifications.service import OutboxService

logger = logging.getLogger(__name__)


def run_outbox_dispatch(outbox: OutboxService, limit: int = 50) -> dict:
    try:
        return outbox.dispatch_pending(limit)
    except DomainError as e:
        # storage unavailable; next tick retries
        logger.error("outbox dispatch failed: %s", e, exc_info=True)
        return {}


def run_due_entries(fees: FeeLedgerService) -> dict:
    logger.info("running scheduled due-entry generation")
    try:
        return fees.generate_due_entries()
    except DomainError as e:
        logger.error("due-entry generation failed: %s", e, exc_info=True)
        return {}


def create_scheduler(
    *,
    outbox: OutboxService,
    fees: FeeLedgerService,
    dispatch_seconds: int = 60,
    due_entries_day: int = 0,
    timezone: str = "UTC",
) -> BackgroundScheduler:
    """Build (not start) the in-process scheduler.

    The outbox drain always runs; due-entry generation only when a day of month is set.
    """
    scheduler = BackgroundScheduler(timezone=timezone)

    scheduler.add_job(
        run_outbox_dispatch,
        trigger=IntervalTrigger(seconds=max(int(dispatch_seconds), 5)),
        args=[outbox],
        id="outbox_dispatch",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    if due_entries_day:
        scheduler.add_job(
            run_due_entries,
            trigger=CronTrigger(day=int(due_entries_day), hour=0, minute=5),
            args=[fees],
            id="monthly_due_entries",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    return scheduler


def start_scheduler(scheduler: BackgroundScheduler) -> BackgroundScheduler:
    scheduler.start()
    logger.info("APScheduler started: jobs=%s", [job.id for job in scheduler.get_jobs()])
    return scheduler
