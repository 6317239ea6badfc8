"""Data repair jobs run from scripts/db_manager.py"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import NotFoundError
from ..models.task import Task
from ..models.time_entry import TimeEntry
from ..services.time_entry_service import reassign_entries

logger = logging.getLogger(__name__)


async def find_orphan_entries(db: AsyncSession) -> List[TimeEntry]:
    """Time entries pointing at a task that no longer exists"""
    result = await db.execute(
        select(TimeEntry)
        .outerjoin(Task, TimeEntry.task_id == Task.id)
        .where(Task.id.is_(None))
        .order_by(TimeEntry.id)
    )
    return list(result.scalars().all())


async def _fallback_task_id(db: AsyncSession) -> Optional[int]:
    result = await db.execute(
        select(Task.id)
        .where(and_(Task.is_system == True, Task.archived == False))  # noqa: E712
        .order_by(Task.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def fix_orphans(
    db: AsyncSession, reassign_to: Optional[int] = None, dry_run: bool = False
) -> Dict[str, Any]:
    orphans = await find_orphan_entries(db)
    report: Dict[str, Any] = {
        "orphaned": len(orphans),
        "reassigned": 0,
        "target_task_id": None,
        "dry_run": dry_run,
        "entry_ids": [e.id for e in orphans],
    }
    if not orphans:
        return report

    target = reassign_to or await _fallback_task_id(db)
    if target is None:
        logger.warning(f"Found {len(orphans)} orphaned entries but no task to reassign them to")
        return report
    if await db.get(Task, target) is None:
        raise NotFoundError(f"Task {target} not found")
    report["target_task_id"] = target

    if dry_run:
        logger.info(f"Dry run: would reassign {len(orphans)} entries to task {target}")
        return report
    report["reassigned"] = await reassign_entries(db, report["entry_ids"], target)
    logger.info(f"Reassigned {report['reassigned']} orphaned entries to task {target}")
    return report
