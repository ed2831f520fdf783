"""Per-question completion state, keyed globally by question id."""
import logging
import sqlite3
from datetime import datetime

from pyqdeck.db import kv_get, kv_keys, kv_multi_get, kv_multi_remove, kv_set
from pyqdeck.streak import record_activity

logger = logging.getLogger(__name__)

COMPLETED_PREFIX = "beuApp_vNative_completed_"


def completion_key(question_id: str) -> str:
    return COMPLETED_PREFIX + question_id


def is_completed(db_path: str, question_id: str) -> bool:
    try:
        return kv_get(db_path, completion_key(question_id)) == "true"
    except sqlite3.Error:
        logger.exception("Error reading completion status for %s", question_id)
        return False


def set_completed(db_path: str, question_id: str, completed: bool) -> bool:
    """Persist the flag. Returns False (and logs) when the write fails."""
    try:
        kv_set(db_path, completion_key(question_id), "true" if completed else "false")
    except sqlite3.Error:
        logger.exception("Error saving completion status for %s", question_id)
        return False
    return True


def bulk_load(db_path: str, question_ids: list[str]) -> dict[str, bool]:
    """Completion flags for many questions with batched reads. Absent ids map to False."""
    if not isinstance(question_ids, (list, tuple)):
        logger.error("bulk_load expected a list of ids, got %s", type(question_ids).__name__)
        return {}
    statuses = {qid: False for qid in question_ids}
    if not question_ids:
        return statuses
    try:
        rows = kv_multi_get(db_path, [completion_key(qid) for qid in question_ids])
    except sqlite3.Error:
        logger.exception("Error loading bulk completion statuses")
        return statuses
    for key, value in rows:
        statuses[key[len(COMPLETED_PREFIX):]] = value == "true"
    return statuses


def toggle_completed(db_path: str, question_id: str, now: datetime | None = None) -> bool:
    """Flip a question's completion and return the state that is actually stored.

    A failed write rolls back to the previous state. A successful
    transition to completed counts towards the daily streak.
    """
    previous = is_completed(db_path, question_id)
    desired = not previous
    if not set_completed(db_path, question_id, desired):
        return previous
    if desired:
        record_activity(db_path, now)
    return desired


def clear_completion(db_path: str, question_ids: list[str]) -> bool:
    """Forget completion state for the given questions (e.g. resetting a subject)."""
    if not question_ids:
        return True
    try:
        kv_multi_remove(db_path, [completion_key(qid) for qid in question_ids])
    except sqlite3.Error:
        logger.exception("Error clearing completion data")
        return False
    return True


def clear_all_completion(db_path: str) -> bool:
    """Forget every stored completion flag."""
    try:
        keys = kv_keys(db_path, COMPLETED_PREFIX)
        if keys:
            kv_multi_remove(db_path, keys)
    except sqlite3.Error:
        logger.exception("Error clearing all completion data")
        return False
    logger.info("Cleared %d completion entries", len(keys))
    return True
