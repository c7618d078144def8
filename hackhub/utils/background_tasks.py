import logging

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from hackhub.db import async_session
from hackhub.settings import settings
from hackhub.utils.event_utils import refresh_event_statuses

logger = logging.getLogger(__name__)


async def refresh_event_statuses_job():
    """
    Moves published events to ongoing/completed as their dates pass
    """
    async with async_session() as session:
        try:
            changed = await refresh_event_statuses(session)
            if changed:
                logger.info("Event status refresh: %s event(s) updated", changed)
        except Exception:
            logger.exception("Event status refresh failed")
            await session.rollback()


scheduler = AsyncIOScheduler(timezone=pytz.utc)


def start_scheduler():
    scheduler.add_job(
        refresh_event_statuses_job,
        trigger=IntervalTrigger(minutes=settings.event_status_refresh_minutes),
        id='refresh_event_statuses',
        name='Refresh event statuses from their dates',
        replace_existing=True
    )
    scheduler.start()
    logger.info(
        "Scheduled event status refresh every %s minute(s)",
        settings.event_status_refresh_minutes
    )


def shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
