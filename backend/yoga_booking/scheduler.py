"""
Background scheduler for the periodic participant-count reconciliation.

Runs SyncAll every SYNC_INTERVAL_SECONDS inside the API process on the
running event loop. Jobs coalesce and never overlap, so a slow pass delays the
next one instead of racing it.
"""

from typing import Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from yoga_booking.core.config import get_settings
from yoga_booking.core.logging import get_logger
from yoga_booking.core.metrics import reconciliation_runs
from yoga_booking.services.cache_service import invalidate_class_cache
from yoga_booking.services.reconciliation_service import (
    REASON_AUTOMATED_SYNC,
    CountCorrection,
    sync_all_participant_counts,
)

logger = get_logger(__name__)

SYNC_JOB_ID = "sync_participant_counts"

scheduler: Optional[AsyncIOScheduler] = None


async def run_scheduled_sync(session_factory: async_sessionmaker[AsyncSession]) -> list[CountCorrection]:
    try:
        async with session_factory() as db:
            corrections = await sync_all_participant_counts(
                db,
                reason=REASON_AUTOMATED_SYNC,
                trigger="scheduled",
            )
    except Exception:
        reconciliation_runs.labels(result="failed").inc()
        raise

    reconciliation_runs.labels(result="completed").inc()
    if corrections:
        await invalidate_class_cache()
    return corrections


def _on_job_error(event):
    logger.error("scheduled_job_failed", job_id=event.job_id, error=str(event.exception))


def _on_job_missed(event):
    logger.warning(
        "scheduled_job_missed",
        job_id=event.job_id,
        scheduled_run_time=str(event.scheduled_run_time),
    )


def start_scheduler(session_factory: async_sessionmaker[AsyncSession]) -> Optional[AsyncIOScheduler]:
    """Start the reconciliation job; returns None when the interval is 0."""
    global scheduler
    settings = get_settings()

    if settings.SYNC_INTERVAL_SECONDS <= 0:
        logger.info("participant_sync_job_disabled")
        return None

    if scheduler is not None:
        logger.warning("scheduler_already_started")
        return scheduler

    scheduler = AsyncIOScheduler(
        timezone="UTC",
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 60,
        },
    )
    scheduler.add_job(
        run_scheduled_sync,
        trigger=IntervalTrigger(seconds=settings.SYNC_INTERVAL_SECONDS),
        args=[session_factory],
        id=SYNC_JOB_ID,
        name="Synchronize participant counts",
        replace_existing=True,
    )
    scheduler.add_listener(_on_job_error, EVENT_JOB_ERROR)
    scheduler.add_listener(_on_job_missed, EVENT_JOB_MISSED)
    scheduler.start()

    logger.info("participant_sync_job_scheduled", interval_seconds=settings.SYNC_INTERVAL_SECONDS)
    return scheduler


def shutdown_scheduler() -> None:
    global scheduler
    if scheduler is not None:
        scheduler.shutdown(wait=False)
        scheduler = None
