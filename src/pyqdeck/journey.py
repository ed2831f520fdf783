"""Last visited subject ("resume") and onboarding selections."""
import json
import logging
import sqlite3

from pyqdeck.db import kv_delete, kv_get, kv_multi_get, kv_multi_remove, kv_multi_set, kv_set
from pyqdeck.models import JourneyRecord

logger = logging.getLogger(__name__)

LAST_JOURNEY_KEY = "pyqdeck_lastJourney_v1"
ONBOARDING_COMPLETED_KEY = "pyqdeck_onboarding_completed"
SELECTED_BRANCH_KEY = "pyqdeck_selected_branch"
SELECTED_SEMESTER_KEY = "pyqdeck_selected_semester"

_JSON_FIELDS = {
    "branch_id": "branchId",
    "sem_id": "semId",
    "subject_id": "subjectId",
    "branch_name": "branchName",
    "semester_name": "semesterName",
    "subject_name": "subjectName",
}
_REQUIRED = ("branch_id", "sem_id", "subject_id")


def _is_valid(journey: JourneyRecord | None) -> bool:
    if journey is None:
        return False
    return all(isinstance(getattr(journey, f), str) and getattr(journey, f).strip() for f in _REQUIRED)


def save_journey(db_path: str, journey: JourneyRecord) -> bool:
    if not _is_valid(journey):
        logger.warning("Refusing to save invalid journey: %r", journey)
        return False
    payload = {
        key: getattr(journey, attr)
        for attr, key in _JSON_FIELDS.items()
        if getattr(journey, attr) is not None
    }
    try:
        kv_set(db_path, LAST_JOURNEY_KEY, json.dumps(payload))
    except sqlite3.Error:
        logger.exception("Error saving last journey")
        return False
    return True


def clear_journey(db_path: str) -> None:
    try:
        kv_delete(db_path, LAST_JOURNEY_KEY)
    except sqlite3.Error:
        logger.exception("Error clearing last journey")


def load_journey(db_path: str) -> JourneyRecord | None:
    """Read the last journey; a malformed record is cleared and reported as absent."""
    try:
        raw = kv_get(db_path, LAST_JOURNEY_KEY)
    except sqlite3.Error:
        logger.exception("Error loading last journey")
        return None
    if raw is None:
        return None
    try:
        data = json.loads(raw)
        journey = JourneyRecord(**{
            attr: data.get(key) for attr, key in _JSON_FIELDS.items()
        }) if isinstance(data, dict) else None
    except json.JSONDecodeError:
        journey = None
    if not _is_valid(journey):
        logger.warning("Clearing malformed journey record: %r", raw)
        clear_journey(db_path)
        return None
    return journey


def save_onboarding_selections(db_path: str, branch_id: str, sem_id: str) -> bool:
    try:
        kv_multi_set(db_path, [
            (ONBOARDING_COMPLETED_KEY, "true"),
            (SELECTED_BRANCH_KEY, branch_id),
            (SELECTED_SEMESTER_KEY, sem_id),
        ])
    except sqlite3.Error:
        logger.exception("Error saving onboarding selections")
        return False
    return True


def get_onboarding_selections(db_path: str) -> dict:
    try:
        rows = kv_multi_get(db_path, [SELECTED_BRANCH_KEY, SELECTED_SEMESTER_KEY])
    except sqlite3.Error:
        logger.exception("Error getting onboarding selections")
        return {"branch_id": None, "sem_id": None}
    branch_id, sem_id = (value for _, value in rows)
    return {"branch_id": branch_id, "sem_id": sem_id}


def is_onboarding_completed(db_path: str) -> bool:
    try:
        return kv_get(db_path, ONBOARDING_COMPLETED_KEY) == "true"
    except sqlite3.Error:
        logger.exception("Error checking onboarding status")
        return False


def clear_onboarding_data(db_path: str) -> bool:
    try:
        kv_multi_remove(db_path, [ONBOARDING_COMPLETED_KEY, SELECTED_BRANCH_KEY, SELECTED_SEMESTER_KEY])
    except sqlite3.Error:
        logger.exception("Error clearing onboarding data")
        return False
    return True
