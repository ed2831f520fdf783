"""Bookmarked questions, stored as one JSON list."""
import json
import logging
import sqlite3

from pyqdeck.catalog import flatten_catalog
from pyqdeck.db import kv_get, kv_set
from pyqdeck.models import Catalog, CatalogEntry

logger = logging.getLogger(__name__)

BOOKMARKS_KEY = "pyqdeck_bookmarked_questions_v1"


def _read_bookmarks(db_path: str) -> list[str]:
    """Stored ids; malformed data reads as empty, storage errors propagate."""
    raw = kv_get(db_path, BOOKMARKS_KEY)
    if raw is None:
        return []
    try:
        ids = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed bookmark data")
        return []
    if not isinstance(ids, list):
        logger.warning("Ignoring bookmark data that is not a list")
        return []
    return [str(i) for i in ids]


def get_bookmarks(db_path: str) -> list[str]:
    try:
        return _read_bookmarks(db_path)
    except sqlite3.Error:
        logger.exception("Error loading bookmarks")
        return []


def is_bookmarked(db_path: str, question_id: str) -> bool:
    return question_id in get_bookmarks(db_path)


def toggle_bookmark(db_path: str, question_id: str) -> bool:
    """Flip membership and write the whole list back. Returns the stored membership, False if the list could not be read."""
    try:
        bookmarks = _read_bookmarks(db_path)
    except sqlite3.Error:
        logger.exception("Error loading bookmarks; leaving them untouched")
        return False
    was_bookmarked = question_id in bookmarks
    if was_bookmarked:
        updated = [i for i in bookmarks if i != question_id]
    else:
        updated = bookmarks + [question_id]
    try:
        kv_set(db_path, BOOKMARKS_KEY, json.dumps(updated))
    except sqlite3.Error:
        logger.exception("Error saving bookmarks")
        return was_bookmarked
    return not was_bookmarked


def list_bookmarks(db_path: str) -> list[str]:
    return get_bookmarks(db_path)


def resolve_bookmarks(catalog: Catalog, question_ids: list[str]) -> list[CatalogEntry]:
    """Full questions with ancestry for the given ids, in catalog order. Unknown ids are dropped."""
    wanted = set(question_ids)
    return [entry for entry in flatten_catalog(catalog) if entry.question.question_id in wanted]
