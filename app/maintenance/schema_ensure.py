import logging
from typing import Dict, List

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

# Columns added after the first production release
ENSURE_STATEMENTS: List[str] = [
    "ALTER TABLE users ADD COLUMN IF NOT EXISTS pay_rate NUMERIC(10, 2) NOT NULL DEFAULT 0;",
    "ALTER TABLE projects ADD COLUMN IF NOT EXISTS is_system BOOLEAN NOT NULL DEFAULT FALSE;",
    "ALTER TABLE tasks ADD COLUMN IF NOT EXISTS is_system BOOLEAN NOT NULL DEFAULT FALSE;",
    "ALTER TABLE tasks ADD COLUMN IF NOT EXISTS priority VARCHAR(50) NOT NULL DEFAULT 'regular';",
    "ALTER TABLE tasks ADD COLUMN IF NOT EXISTS due_date TIMESTAMPTZ;",
    "ALTER TABLE teams ADD COLUMN IF NOT EXISTS project_id INTEGER REFERENCES projects(id);",
    "ALTER TABLE task_discussions ADD COLUMN IF NOT EXISTS likes INTEGER NOT NULL DEFAULT 0;",
    "ALTER TABLE task_discussions ADD COLUMN IF NOT EXISTS type VARCHAR(50) NOT NULL DEFAULT 'comment';",
]


async def ensure_schema(engine: AsyncEngine, statements: List[str] = None) -> Dict[str, List[str]]:
    """Best-effort: run each idempotent ALTER in its own transaction.

    A failing statement is logged and skipped so the rest still apply.
    Returns the applied and failed statements.
    """
    applied: List[str] = []
    failed: List[str] = []
    for sql in statements if statements is not None else ENSURE_STATEMENTS:
        try:
            async with engine.begin() as conn:
                await conn.execute(text(sql))
            applied.append(sql)
        except Exception as e:
            logger.warning(f"Schema statement failed, continuing: {sql} ({e})")
            failed.append(sql)
    logger.info(f"Schema ensure finished: {len(applied)} applied, {len(failed)} failed")
    return {"applied": applied, "failed": failed}
