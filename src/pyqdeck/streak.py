"""Daily study streak tracking.

Days are compared as calendar dates in UTC. A naive ``now`` is taken to be UTC.
"""
import json
import logging
import sqlite3
from dataclasses import asdict, replace
from datetime import date, datetime, timezone

from pyqdeck.db import kv_get, kv_set
from pyqdeck.models import StreakRecord

logger = logging.getLogger(__name__)

STREAK_KEY = "pyqdeck_streak_v1"


def utc_today(now: datetime | None = None) -> date:
    if now is None:
        now = datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.date()


def _days_since(record: StreakRecord, today: date) -> int | None:
    if not record.last_active_date:
        return None
    try:
        last = date.fromisoformat(record.last_active_date)
    except (TypeError, ValueError):
        return None
    return (today - last).days


def advance_streak(record: StreakRecord, today: date) -> StreakRecord:
    """Apply one completion event on ``today``.

    Same day bumps today_count, the next day extends the streak, anything
    else (no history, a gap, or a last date in the future) starts over at 1.
    """
    gap = _days_since(record, today)
    if gap == 0:
        updated = replace(record, today_count=record.today_count + 1)
    elif gap == 1:
        updated = replace(record, streak=record.streak + 1, today_count=1, last_active_date=today.isoformat())
    else:
        updated = replace(record, streak=1, today_count=1, last_active_date=today.isoformat())
    updated.best_streak = max(updated.best_streak, updated.streak)
    return updated


def decay_streak(record: StreakRecord, today: date) -> StreakRecord:
    """Zero out stale counters. Never increments and never touches best_streak."""
    gap = _days_since(record, today)
    if gap is None or gap <= 0:
        return replace(record)
    if gap == 1:
        return replace(record, today_count=0)
    return replace(record, streak=0, today_count=0)


def _from_json(raw: str) -> StreakRecord:
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("streak record is not an object")
    last = data.get("lastActiveDate")
    return StreakRecord(
        streak=max(0, int(data.get("streak", 0))),
        best_streak=max(0, int(data.get("bestStreak", 0))),
        today_count=max(0, int(data.get("todayCount", 0))),
        last_active_date=last if isinstance(last, str) else None,
    )


def _to_json(record: StreakRecord) -> str:
    data = asdict(record)
    return json.dumps({
        "streak": data["streak"],
        "bestStreak": data["best_streak"],
        "todayCount": data["today_count"],
        "lastActiveDate": data["last_active_date"],
    })


def _read_streak(db_path: str) -> StreakRecord:
    raw = kv_get(db_path, STREAK_KEY)
    if raw is None:
        return StreakRecord()
    try:
        return _from_json(raw)
    except (ValueError, TypeError):
        logger.warning("Ignoring malformed streak record: %r", raw)
        return StreakRecord()


def load_streak(db_path: str) -> StreakRecord:
    try:
        return _read_streak(db_path)
    except sqlite3.Error:
        logger.exception("Error loading streak")
        return StreakRecord()


def save_streak(db_path: str, record: StreakRecord) -> bool:
    try:
        kv_set(db_path, STREAK_KEY, _to_json(record))
    except sqlite3.Error:
        logger.exception("Error saving streak")
        return False
    return True


def record_activity(db_path: str, now: datetime | None = None) -> StreakRecord:
    """Count a completion event. Returns the stored record (the old one if saving failed).

    An unreadable record is left alone rather than overwritten with a fresh one.
    """
    try:
        record = _read_streak(db_path)
    except sqlite3.Error:
        logger.exception("Error loading streak; activity not recorded")
        return StreakRecord()
    updated = advance_streak(record, utc_today(now))
    return updated if save_streak(db_path, updated) else record


def check_and_reset_streak(db_path: str, now: datetime | None = None) -> StreakRecord:
    """Decay stale streak state; meant to run once per launch."""
    record = load_streak(db_path)
    updated = decay_streak(record, utc_today(now))
    if updated == record:
        return record
    return updated if save_streak(db_path, updated) else record
