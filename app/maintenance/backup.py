import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine

from ..db.database import Base
from ..utils.timezone import utc_now

logger = logging.getLogger(__name__)


async def backup_database(engine: AsyncEngine, output_dir: str = "backups", now: Optional[datetime] = None) -> Dict[str, object]:
    """Dump every mapped table to one JSON file; returns the path and row counts"""
    from .. import models  # noqa: F401

    stamp = (now or utc_now()).strftime("%Y%m%d-%H%M%S")
    data: Dict[str, list] = {}
    async with engine.connect() as conn:
        for table in Base.metadata.sorted_tables:
            result = await conn.execute(select(table))
            data[table.name] = [dict(row._mapping) for row in result.all()]

    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"backup-{stamp}.json"
    path.write_text(json.dumps({"created_at": stamp, "tables": data}, indent=2, default=str))
    counts = {name: len(rows) for name, rows in data.items()}
    logger.info(f"Backed up {sum(counts.values())} rows from {len(counts)} tables to {path}")
    return {"path": str(path), "counts": counts}
