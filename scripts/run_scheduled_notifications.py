#!/usr/bin/env python3
"""
Send due-soon and overdue task reminders once. Meant for cron:

    0 8 * * * cd /srv/times10 && python scripts/run_scheduled_notifications.py

Exit code is 0 on success and 1 on failure.
"""
import asyncio
import logging
import os
import sys

# Ensure backend modules are importable
THIS_DIR = os.path.dirname(__file__)
BACKEND_DIR = os.path.abspath(os.path.join(THIS_DIR, '..'))
sys.path.insert(0, BACKEND_DIR)

from app.core.logging_config import setup_logging  # noqa: E402
from app.db.database import AsyncSessionLocal, engine  # noqa: E402
from app.services.scheduled_notifications import run_scheduled_notifications  # noqa: E402

logger = logging.getLogger("run_scheduled_notifications")


async def main() -> int:
    try:
        async with AsyncSessionLocal() as session:
            summary = await run_scheduled_notifications(session)
    except Exception:
        logger.exception("Scheduled notifications failed")
        return 1
    finally:
        await engine.dispose()
    print(
        f"Checked at {summary['checked_at']}: "
        f"{summary['due_soon_tasks']} due soon ({summary['due_soon_notifications_sent']} emails), "
        f"{summary['overdue_tasks']} overdue ({summary['overdue_notifications_sent']} emails)"
    )
    return 0


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(main()))
