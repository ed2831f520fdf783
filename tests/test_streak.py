"""Tests for daily streak tracking."""
import json
import sqlite3
from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch

from pyqdeck.db import init_db, kv_set
from pyqdeck.models import StreakRecord
from pyqdeck.streak import (
    STREAK_KEY, advance_streak, check_and_reset_streak, decay_streak, load_streak,
    record_activity, save_streak, utc_today,
)

DAY1 = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)


def day(n: int) -> datetime:
    return DAY1 + timedelta(days=n - 1)


def state(record: StreakRecord) -> dict:
    return {"streak": record.streak, "todayCount": record.today_count, "bestStreak": record.best_streak}


def test_record_activity_scenario(tmp_db):
    assert state(record_activity(tmp_db, day(1))) == {"streak": 1, "todayCount": 1, "bestStreak": 1}
    assert state(record_activity(tmp_db, day(1))) == {"streak": 1, "todayCount": 2, "bestStreak": 1}
    assert state(record_activity(tmp_db, day(2))) == {"streak": 2, "todayCount": 1, "bestStreak": 2}
    assert state(record_activity(tmp_db, day(5))) == {"streak": 1, "todayCount": 1, "bestStreak": 2}
    assert load_streak(tmp_db).last_active_date == "2024-03-05"


def test_future_last_date_resets():
    record = StreakRecord(streak=4, best_streak=4, today_count=2, last_active_date="2024-03-10")
    updated = advance_streak(record, date(2024, 3, 1))
    assert (updated.streak, updated.today_count, updated.best_streak) == (1, 1, 4)
    assert updated.last_active_date == "2024-03-01"


def test_advance_does_not_mutate_input():
    record = StreakRecord(streak=1, best_streak=1, today_count=1, last_active_date="2024-03-01")
    advance_streak(record, date(2024, 3, 2))
    assert record.streak == 1


def test_best_streak_never_below_streak():
    record = StreakRecord()
    for offset in (0, 1, 2, 2, 3, 7, 8):
        record = advance_streak(record, date(2024, 1, 1) + timedelta(days=offset))
        assert record.best_streak >= record.streak
    assert record.best_streak == 4


def test_decay_gap_of_two():
    record = StreakRecord(streak=5, best_streak=7, today_count=3, last_active_date="2024-03-01")
    updated = decay_streak(record, date(2024, 3, 3))
    assert (updated.streak, updated.today_count, updated.best_streak) == (0, 0, 7)


def test_decay_gap_of_one():
    record = StreakRecord(streak=5, best_streak=5, today_count=3, last_active_date="2024-03-01")
    updated = decay_streak(record, date(2024, 3, 2))
    assert (updated.streak, updated.today_count) == (5, 0)


def test_decay_same_day_and_empty_are_noops():
    record = StreakRecord(streak=2, best_streak=2, today_count=1, last_active_date="2024-03-01")
    assert decay_streak(record, date(2024, 3, 1)) == record
    assert decay_streak(StreakRecord(), date(2024, 3, 1)) == StreakRecord()


def test_check_and_reset_persists(tmp_db):
    save_streak(tmp_db, StreakRecord(streak=5, best_streak=6, today_count=3, last_active_date="2024-03-01"))
    result = check_and_reset_streak(tmp_db, day(3))
    assert (result.streak, result.today_count, result.best_streak) == (0, 0, 6)
    assert load_streak(tmp_db) == result


def test_check_and_reset_is_idempotent(tmp_db):
    save_streak(tmp_db, StreakRecord(streak=5, best_streak=5, today_count=3, last_active_date="2024-03-01"))
    first = check_and_reset_streak(tmp_db, day(2))
    second = check_and_reset_streak(tmp_db, day(2))
    assert first == second
    assert (second.streak, second.today_count) == (5, 0)


def test_check_and_record_order_independent(tmp_db, tmp_path):
    start = StreakRecord(streak=5, best_streak=5, today_count=3, last_active_date="2024-03-01")
    save_streak(tmp_db, start)
    check_and_reset_streak(tmp_db, day(2))
    a = record_activity(tmp_db, day(2))

    other_db = str(tmp_path / "other.db")
    init_db(other_db)
    save_streak(other_db, start)
    record_activity(other_db, day(2))
    b = check_and_reset_streak(other_db, day(2))
    assert a == b


def test_utc_day_boundary():
    # 23:30 at UTC-5 on March 1 is already March 2 in UTC
    eastern = timezone(timedelta(hours=-5))
    assert utc_today(datetime(2024, 3, 1, 23, 30, tzinfo=eastern)) == date(2024, 3, 2)
    assert utc_today(datetime(2024, 3, 1, 23, 30)) == date(2024, 3, 1)


def test_load_streak_defaults_on_malformed(tmp_db):
    kv_set(tmp_db, STREAK_KEY, "[]")
    assert load_streak(tmp_db) == StreakRecord()
    kv_set(tmp_db, STREAK_KEY, "nonsense")
    assert load_streak(tmp_db) == StreakRecord()


def test_record_activity_write_failure_returns_previous(tmp_db):
    record_activity(tmp_db, day(1))
    with patch("pyqdeck.streak.kv_set", side_effect=sqlite3.OperationalError("boom")):
        result = record_activity(tmp_db, day(2))
    assert result.streak == 1
    assert load_streak(tmp_db).streak == 1


def test_record_activity_read_failure_keeps_best_streak(tmp_db):
    save_streak(tmp_db, StreakRecord(streak=3, best_streak=20, today_count=1, last_active_date="2024-03-01"))
    with patch("pyqdeck.streak.kv_get", side_effect=sqlite3.OperationalError("boom")):
        record_activity(tmp_db, day(2))
    stored = load_streak(tmp_db)
    assert (stored.streak, stored.best_streak) == (3, 20)


def test_non_string_last_active_date_treated_as_absent(tmp_db):
    kv_set(tmp_db, STREAK_KEY, json.dumps({"streak": 4, "bestStreak": 6, "lastActiveDate": 20240301}))
    assert load_streak(tmp_db).last_active_date is None
    record = record_activity(tmp_db, day(1))
    assert (record.streak, record.today_count, record.best_streak) == (1, 1, 6)


def test_days_since_tolerates_non_string_date():
    record = StreakRecord(streak=2, best_streak=2, last_active_date=20240301)
    assert decay_streak(record, date(2024, 3, 5)) == record
