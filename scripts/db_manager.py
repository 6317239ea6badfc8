#!/usr/bin/env python3
"""
Database maintenance commands: connection checks, schema audit/compare,
idempotent column fixes, orphan repair, timer cleanup, backups and token cleanup.

Usage:
    python scripts/db_manager.py test
    python scripts/db_manager.py audit --output audits
    python scripts/db_manager.py compare --other-url postgresql+asyncpg://...
    python scripts/db_manager.py fix-orphans --dry-run
"""
import argparse
import asyncio
import json
import logging
import os
import sys

# Ensure backend modules are importable
THIS_DIR = os.path.dirname(__file__)
BACKEND_DIR = os.path.abspath(os.path.join(THIS_DIR, '..'))
sys.path.insert(0, BACKEND_DIR)

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from app.core.config import settings  # noqa: E402
from app.core.logging_config import setup_logging  # noqa: E402
from app.db.database import build_engine  # noqa: E402
from app.maintenance.backup import backup_database  # noqa: E402
from app.maintenance.data_fixes import fix_orphans  # noqa: E402
from app.maintenance.schema_audit import (  # noqa: E402
    audit_schema,
    check_connection,
    compare_schemas,
    mask_url,
    summarize_audit,
    write_audit,
)
from app.maintenance.schema_ensure import ensure_schema  # noqa: E402
from app.services.auth_service import cleanup_expired_tokens  # noqa: E402
from app.services.time_entry_service import clear_all_timers  # noqa: E402

logger = logging.getLogger("db_manager")


async def cmd_test(engine, args) -> int:
    info = await check_connection(engine)
    print(f"Connection successful, server time: {info['server_time']}")
    return 0


async def cmd_info(engine, args) -> int:
    print(f"Database URL: {mask_url(args.url)}")
    print(f"Environment:  {settings.ENVIRONMENT}")
    return 0


async def cmd_audit(engine, args) -> int:
    audit = await audit_schema(engine)
    path = write_audit(audit, args.output)
    for line in summarize_audit(audit):
        print(line)
    print(f"Audit written to {path}")
    return 0


async def cmd_compare(engine, args) -> int:
    other = build_engine(args.other_url)
    try:
        diff = compare_schemas(await audit_schema(engine), await audit_schema(other))
    finally:
        await other.dispose()
    print(f"Left:  {mask_url(args.url)}")
    print(f"Right: {mask_url(args.other_url)}")
    print(json.dumps(diff, indent=2))
    return 0


async def cmd_ensure_schema(engine, args) -> int:
    result = await ensure_schema(engine)
    print(f"Applied {len(result['applied'])} statements, {len(result['failed'])} failed")
    for sql in result["failed"]:
        print(f"  failed: {sql}")
    return 0


async def cmd_fix_orphans(engine, args) -> int:
    async with async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)() as session:
        report = await fix_orphans(session, reassign_to=args.reassign_to, dry_run=args.dry_run)
    print(f"Orphaned entries: {report['orphaned']}")
    if report["target_task_id"]:
        verb = "Would reassign" if report["dry_run"] else "Reassigned"
        count = report["orphaned"] if report["dry_run"] else report["reassigned"]
        print(f"{verb} {count} entries to task {report['target_task_id']}")
    return 0


async def cmd_clear_timers(engine, args) -> int:
    async with async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)() as session:
        stopped = await clear_all_timers(session)
    print(f"Stopped {stopped} running timers")
    return 0


async def cmd_backup(engine, args) -> int:
    result = await backup_database(engine, args.output)
    print(f"Backup written to {result['path']}")
    for table, count in result["counts"].items():
        print(f"  {table}: {count} rows")
    return 0


async def cmd_cleanup_tokens(engine, args) -> int:
    async with async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)() as session:
        counts = await cleanup_expired_tokens(session)
    print(
        f"Removed {counts['sessions']} sessions, {counts['invitations']} invitations, "
        f"{counts['password_resets']} password reset tokens"
    )
    return 0


COMMANDS = {
    "test": cmd_test,
    "info": cmd_info,
    "audit": cmd_audit,
    "compare": cmd_compare,
    "ensure-schema": cmd_ensure_schema,
    "fix-orphans": cmd_fix_orphans,
    "clear-timers": cmd_clear_timers,
    "backup": cmd_backup,
    "cleanup-tokens": cmd_cleanup_tokens,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Times10 database maintenance")
    parser.add_argument("--url", default=settings.DATABASE_URL, help="Database URL (defaults to DATABASE_URL)")
    parser.add_argument("--log-level",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        default="WARNING",
                        help="Log level")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("test", help="Run SELECT 1 and print the server time")
    sub.add_parser("info", help="Show the configured database URL (password masked)")
    audit = sub.add_parser("audit", help="Write a JSON schema audit")
    audit.add_argument("--output", default=".", help="Directory for the audit file")
    compare = sub.add_parser("compare", help="Compare tables/columns with another database")
    compare.add_argument("--other-url", required=True, help="Database URL to compare against")
    sub.add_parser("ensure-schema", help="Add columns introduced after launch")
    orphans = sub.add_parser("fix-orphans", help="Reassign time entries whose task is missing")
    orphans.add_argument("--reassign-to", type=int, help="Target task id (default: first system task)")
    orphans.add_argument("--dry-run", action="store_true", help="Report without changing data")
    sub.add_parser("clear-timers", help="Stop every running timer")
    backup = sub.add_parser("backup", help="Dump every table to JSON")
    backup.add_argument("--output", default="backups", help="Directory for the backup file")
    sub.add_parser("cleanup-tokens", help="Delete expired sessions, invitations and reset tokens")
    return parser


async def run(args) -> int:
    engine = build_engine(args.url)
    try:
        return await COMMANDS[args.command](engine, args)
    except Exception as e:
        logger.exception(f"Command {args.command} failed")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await engine.dispose()


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(log_level=args.log_level, log_format="simple", force=True)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
