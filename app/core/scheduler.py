import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from app.core.config import get_settings
from app.core.database import AsyncSessionLocal
from app.services.challenge import purge_expired_challenges

logger = logging.getLogger(__name__)
settings = get_settings()
scheduler = AsyncIOScheduler()


async def _purge_job() -> int:
    async with AsyncSessionLocal() as db:
        count = await purge_expired_challenges(db, settings.challenge_ttl_seconds)
        await db.commit()
    if count:
        logger.info(f"[scheduler] purged {count} expired challenges")
    return count


def start_scheduler():
    interval = settings.challenge_purge_interval_minutes
    scheduler.add_job(
        _purge_job,
        trigger=IntervalTrigger(minutes=interval),
        id="purge_expired_challenges",
        replace_existing=True,
        max_instances=1,
    )
    scheduler.start()
    logger.info(f"Challenge purge job started (every {interval} minutes)")


def stop_scheduler():
    scheduler.shutdown(wait=False)
    logger.info("Challenge purge job stopped")
