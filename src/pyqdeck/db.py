"""SQLite-backed key-value store and connection management."""
import sqlite3
from pathlib import Path

from pyqdeck.config import DB_PATH

DEFAULT_DB_PATH = DB_PATH

# SQLite caps the number of bound parameters per statement
MAX_KEYS_PER_QUERY = 500

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS secure_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


def _chunks(keys: list[str]) -> list[list[str]]:
    return [keys[i:i + MAX_KEYS_PER_QUERY] for i in range(0, len(keys), MAX_KEYS_PER_QUERY)]


def kv_get(db_path: str, key: str, table: str = "kv_store") -> str | None:
    conn = get_connection(db_path)
    try:
        row = conn.execute(f"SELECT value FROM {table} WHERE key = ?", (key,)).fetchone()
    finally:
        conn.close()
    return row["value"] if row else None


def kv_set(db_path: str, key: str, value: str, table: str = "kv_store") -> None:
    conn = get_connection(db_path)
    try:
        conn.execute(
            f"INSERT INTO {table} (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
            (key, value, value),
        )
        conn.commit()
    finally:
        conn.close()


def kv_delete(db_path: str, key: str, table: str = "kv_store") -> None:
    conn = get_connection(db_path)
    try:
        conn.execute(f"DELETE FROM {table} WHERE key = ?", (key,))
        conn.commit()
    finally:
        conn.close()


def kv_multi_get(db_path: str, keys: list[str]) -> list[tuple[str, str | None]]:
    """Fetch many keys at once. Returns (key, value) pairs in the order asked, None when absent."""
    found: dict[str, str] = {}
    if not keys:
        return []
    conn = get_connection(db_path)
    try:
        for chunk in _chunks(list(dict.fromkeys(keys))):
            placeholders = ",".join("?" for _ in chunk)
            rows = conn.execute(
                f"SELECT key, value FROM kv_store WHERE key IN ({placeholders})", chunk,
            ).fetchall()
            found.update({r["key"]: r["value"] for r in rows})
    finally:
        conn.close()
    return [(key, found.get(key)) for key in keys]


def kv_multi_set(db_path: str, pairs: list[tuple[str, str]]) -> None:
    """Write all pairs in a single transaction."""
    conn = get_connection(db_path)
    try:
        with conn:
            conn.executemany(
                "INSERT INTO kv_store (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                pairs,
            )
    finally:
        conn.close()


def kv_multi_remove(db_path: str, keys: list[str]) -> None:
    conn = get_connection(db_path)
    try:
        with conn:
            conn.executemany("DELETE FROM kv_store WHERE key = ?", [(k,) for k in keys])
    finally:
        conn.close()


def kv_keys(db_path: str, prefix: str = "") -> list[str]:
    conn = get_connection(db_path)
    try:
        rows = conn.execute(
            "SELECT key FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY key",
            (len(prefix), prefix),
        ).fetchall()
    finally:
        conn.close()
    return [r["key"] for r in rows]
