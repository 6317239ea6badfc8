import asyncio
import logging

from ..core.config import settings
from ..db.database import AsyncSessionLocal
from .auth_service import cleanup_expired_tokens
from .scheduled_notifications import run_scheduled_notifications

logger = logging.getLogger(__name__)


async def scheduler_tick():
    async with AsyncSessionLocal() as session:
        await run_scheduled_notifications(session)
        await cleanup_expired_tokens(session)


async def scheduler_loop():
    if not settings.ENABLE_SCHEDULER:
        logger.info("Scheduler disabled")
        return
    logger.info(f"Scheduler started, interval {settings.SCHEDULER_INTERVAL_SECONDS}s")
    while True:
        try:
            await scheduler_tick()
        except Exception:
            logger.exception("Scheduler tick failed")
        await asyncio.sleep(settings.SCHEDULER_INTERVAL_SECONDS)
