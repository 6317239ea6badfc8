"""Read-only inspection of a Postgres database through information_schema"""
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine

from ..utils.timezone import to_user_iso_string, utc_now

logger = logging.getLogger(__name__)

SCHEMA = "public"


def mask_url(url: str) -> str:
    """Database URL with the password replaced by ***"""
    try:
        return make_url(url).render_as_string(hide_password=True)
    except Exception:
        return "<invalid url>"


async def check_connection(engine: AsyncEngine) -> Dict[str, Any]:
    async with engine.connect() as conn:
        result = await conn.execute(text("SELECT 1 AS ok, CURRENT_TIMESTAMP AS server_time"))
        row = result.one()
    return {"ok": row.ok == 1, "server_time": str(row.server_time)}


async def _rows(conn, sql: str) -> List[Dict[str, Any]]:
    result = await conn.execute(text(sql), {"schema": SCHEMA})
    return [dict(row._mapping) for row in result.all()]


async def audit_schema(engine: AsyncEngine) -> Dict[str, Any]:
    """Tables, columns, constraints and indexes of the public schema"""
    async with engine.connect() as conn:
        tables = await _rows(conn, """
            SELECT table_name, table_type
            FROM information_schema.tables
            WHERE table_schema = :schema
            ORDER BY table_name
        """)
        columns = await _rows(conn, """
            SELECT table_name, column_name, data_type, is_nullable, column_default
            FROM information_schema.columns
            WHERE table_schema = :schema
            ORDER BY table_name, ordinal_position
        """)
        constraints = await _rows(conn, """
            SELECT tc.table_name, tc.constraint_name, tc.constraint_type, kcu.column_name
            FROM information_schema.table_constraints tc
            LEFT JOIN information_schema.key_column_usage kcu
              ON tc.constraint_name = kcu.constraint_name AND tc.table_schema = kcu.table_schema
            WHERE tc.table_schema = :schema
            ORDER BY tc.table_name, tc.constraint_name
        """)
        indexes = await _rows(conn, """
            SELECT tablename AS table_name, indexname AS index_name, indexdef AS definition
            FROM pg_indexes
            WHERE schemaname = :schema
            ORDER BY tablename, indexname
        """)

    by_table: Dict[str, Dict[str, Any]] = {
        t["table_name"]: {"type": t["table_type"], "columns": [], "constraints": [], "indexes": []}
        for t in tables
    }
    for col in columns:
        by_table.setdefault(col["table_name"], {"columns": [], "constraints": [], "indexes": []})["columns"].append({
            "name": col["column_name"],
            "type": col["data_type"],
            "nullable": col["is_nullable"] == "YES",
            "default": col["column_default"],
        })
    for con in constraints:
        if con["table_name"] in by_table:
            by_table[con["table_name"]]["constraints"].append({
                "name": con["constraint_name"],
                "type": con["constraint_type"],
                "column": con["column_name"],
            })
    for idx in indexes:
        if idx["table_name"] in by_table:
            by_table[idx["table_name"]]["indexes"].append({"name": idx["index_name"], "definition": idx["definition"]})

    return {
        "generated_at": to_user_iso_string(utc_now()),
        "schema": SCHEMA,
        "table_count": len(by_table),
        "tables": by_table,
    }


def write_audit(audit: Dict[str, Any], output_dir: str = ".", now: Optional[datetime] = None) -> Path:
    stamp = (now or utc_now()).strftime("%Y%m%d-%H%M%S")
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"schema-audit-{stamp}.json"
    path.write_text(json.dumps(audit, indent=2, default=str))
    logger.info(f"Wrote schema audit to {path}")
    return path


def summarize_audit(audit: Dict[str, Any]) -> List[str]:
    lines = [f"{audit['table_count']} tables in schema '{audit['schema']}'"]
    for name, table in sorted(audit["tables"].items()):
        lines.append(
            f"  {name}: {len(table['columns'])} columns, "
            f"{len(table['constraints'])} constraints, {len(table['indexes'])} indexes"
        )
    return lines


def _column_map(audit: Dict[str, Any]) -> Dict[str, set]:
    return {name: {c["name"] for c in table["columns"]} for name, table in audit["tables"].items()}


def compare_schemas(left: Dict[str, Any], right: Dict[str, Any]) -> Dict[str, Any]:
    """Tables and columns present on one side only"""
    left_cols, right_cols = _column_map(left), _column_map(right)
    shared = sorted(set(left_cols) & set(right_cols))
    return {
        "tables_only_in_left": sorted(set(left_cols) - set(right_cols)),
        "tables_only_in_right": sorted(set(right_cols) - set(left_cols)),
        "columns_only_in_left": {t: sorted(left_cols[t] - right_cols[t]) for t in shared if left_cols[t] - right_cols[t]},
        "columns_only_in_right": {t: sorted(right_cols[t] - left_cols[t]) for t in shared if right_cols[t] - left_cols[t]},
    }
