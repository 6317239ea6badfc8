from datetime import datetime, timezone

import pytest

from app.core.errors import InvalidInputError
from app.utils.timezone import (
    calculate_duration,
    create_user_date,
    ensure_utc,
    from_client_millis,
    from_user_iso_string,
    local_to_utc,
    next_day,
    parse_date,
    to_user_iso_string,
)


def test_local_to_utc_applies_browser_offset():
    # UTC-5 reports an offset of +300
    assert local_to_utc("2026-03-02", 9, 30, 300) == datetime(2026, 3, 2, 14, 30, tzinfo=timezone.utc)
    # UTC+2 reports -120 and can land on the previous day
    assert local_to_utc("2026-03-02", 1, 0, -120) == datetime(2026, 3, 1, 23, 0, tzinfo=timezone.utc)
    assert local_to_utc("2026-03-02", 0, 0) == datetime(2026, 3, 2, 0, 0, tzinfo=timezone.utc)


def test_local_to_utc_rejects_bad_components():
    with pytest.raises(InvalidInputError):
        local_to_utc("2026-03-02", 24, 0)
    with pytest.raises(InvalidInputError):
        local_to_utc("not-a-date", 9, 0)


def test_parse_date_and_next_day():
    assert parse_date("2026-02-28T10:00:00Z").isoformat() == "2026-02-28"
    assert next_day("2026-02-28") == "2026-03-01"
    assert next_day("2026-12-31") == "2027-01-01"
    with pytest.raises(InvalidInputError):
        parse_date("02/28/2026")


def test_create_user_date_is_noon_utc():
    assert create_user_date("2026-05-10") == datetime(2026, 5, 10, 12, 0, tzinfo=timezone.utc)


def test_iso_round_trip_formats():
    parsed = from_user_iso_string("2026-05-10T08:15:30.456Z")
    assert parsed == datetime(2026, 5, 10, 8, 15, 30, tzinfo=timezone.utc)
    assert from_user_iso_string("2026-05-10T10:15:30+02:00") == datetime(2026, 5, 10, 8, 15, 30, tzinfo=timezone.utc)
    assert to_user_iso_string(parsed) == "2026-05-10T08:15:30.000Z"
    assert to_user_iso_string(None) is None
    with pytest.raises(InvalidInputError):
        from_user_iso_string("yesterday")
    with pytest.raises(InvalidInputError):
        from_user_iso_string("")


def test_naive_values_are_utc():
    naive = datetime(2026, 1, 1, 12, 0)
    assert ensure_utc(naive).tzinfo == timezone.utc
    assert ensure_utc(None) is None
    assert calculate_duration(naive, datetime(2026, 1, 1, 13, 30, tzinfo=timezone.utc)) == 5400


def test_from_client_millis():
    assert from_client_millis(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
