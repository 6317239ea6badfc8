from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ....db.database import get_db
from ....models.user import User
from ....services.scheduled_notifications import run_scheduled_notifications
from ...deps import require_admin_access

router = APIRouter()


@router.post("/run")
async def run_notifications(
    current_user: User = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Send due-soon and overdue reminders now"""
    return await run_scheduled_notifications(db)
