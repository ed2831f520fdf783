"""Size-limited secret store with chunked storage for large payloads."""
import logging
import sqlite3

from pyqdeck.db import kv_delete, kv_get, kv_set

logger = logging.getLogger(__name__)

TABLE = "secure_store"
MAX_ITEM_SIZE = 2048


class ItemTooLargeError(ValueError):
    """Raised when a single secure item exceeds MAX_ITEM_SIZE characters."""


def secure_get(db_path: str, key: str) -> str | None:
    return kv_get(db_path, key, table=TABLE)


def secure_set(db_path: str, key: str, value: str) -> None:
    if len(value) > MAX_ITEM_SIZE:
        raise ItemTooLargeError(f"{key}: {len(value)} chars exceeds the {MAX_ITEM_SIZE} char limit")
    kv_set(db_path, key, value, table=TABLE)


def secure_delete(db_path: str, key: str) -> None:
    kv_delete(db_path, key, table=TABLE)


def _part_key(base_key: str, index: int) -> str:
    return f"{base_key}_part{index}"


def save_chunked(db_path: str, base_key: str, payload: str, chunk_size: int = MAX_ITEM_SIZE) -> bool:
    """Split payload into chunk_size pieces under base_key_part{N}; store the count under base_key.

    The count is written last so a half-written payload is never reported as available.
    Returns True on success.
    """
    chunks = [payload[i:i + chunk_size] for i in range(0, len(payload), chunk_size)] or [""]
    try:
        for index, chunk in enumerate(chunks):
            secure_set(db_path, _part_key(base_key, index), chunk)
        secure_set(db_path, base_key, str(len(chunks)))
    except sqlite3.Error:
        logger.exception("Failed to save chunked payload %s", base_key)
        return False
    return True


def load_chunked(db_path: str, base_key: str) -> str | None:
    """Reassemble a chunked payload. None when the count or any expected part is missing."""
    try:
        count_text = secure_get(db_path, base_key)
        if count_text is None:
            return None
        count = int(count_text)
        parts = []
        for index in range(count):
            part = secure_get(db_path, _part_key(base_key, index))
            if part is None:
                logger.warning("Chunk %d of %s is missing", index, base_key)
                return None
            parts.append(part)
    except ValueError:
        logger.warning("Invalid chunk count stored under %s", base_key)
        return None
    except sqlite3.Error:
        logger.exception("Failed to load chunked payload %s", base_key)
        return None
    return "".join(parts)


def delete_chunked(db_path: str, base_key: str) -> None:
    try:
        count_text = secure_get(db_path, base_key)
        secure_delete(db_path, base_key)
        if count_text and count_text.isdigit():
            for index in range(int(count_text)):
                secure_delete(db_path, _part_key(base_key, index))
    except sqlite3.Error:
        logger.exception("Failed to delete chunked payload %s", base_key)
