import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "scripts"))

import db_manager  # noqa: E402


def test_every_command_has_a_handler():
    parser = db_manager.build_parser()
    for command in db_manager.COMMANDS:
        args = parser.parse_args(["--url", "sqlite+aiosqlite:///:memory:", command] + (
            ["--other-url", "sqlite+aiosqlite:///:memory:"] if command == "compare" else []
        ))
        assert args.command == command


def test_fix_orphans_options():
    args = db_manager.build_parser().parse_args(["fix-orphans", "--reassign-to", "7", "--dry-run"])
    assert args.reassign_to == 7
    assert args.dry_run is True
    assert args.log_level == "WARNING"


def test_command_is_required():
    with pytest.raises(SystemExit):
        db_manager.build_parser().parse_args([])
