"""
Recycle Bin Operations.

Soft-deleted notes (deleted = 1) stay in the database until they are
restored, purged explicitly, or cleaned up after the retention window.
"""

import logging
import sqlite3
from collections.abc import Iterable
from typing import Any

from utils.db.notes import now_ms
from utils.db.schema import parse_properties

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000


def fetch_trash_items(
    conn: sqlite3.Connection, page: int = 1, limit: int = 50
) -> tuple[list[dict[str, Any]], int]:
    """
    Fetches soft-deleted notes, most recently deleted first.
    Returns (items, total_count).
    """
    offset = (max(page, 1) - 1) * limit
    total_count = fetch_trash_count(conn)

    rows = conn.execute(
        """
        SELECT id, content, created_time, modified_time, custom_properties
        FROM notes
        WHERE deleted = 1
        ORDER BY modified_time DESC
        LIMIT ? OFFSET ?
        """,
        (limit, offset),
    ).fetchall()

    items = [
        {
            "id": row["id"],
            "content": row["content"] or "",
            "created_time": row["created_time"],
            "deleted_time": row["modified_time"],
            "custom_properties": parse_properties(row["custom_properties"]),
        }
        for row in rows
    ]
    return items, total_count


def fetch_trash_count(conn: sqlite3.Connection) -> int:
    """Returns total number of notes in the recycle bin (for badge)."""
    row = conn.execute("SELECT COUNT(*) FROM notes WHERE deleted = 1").fetchone()
    return row[0] if row else 0


def restore_notes(conn: sqlite3.Connection, note_ids: Iterable[int]) -> int:
    """Takes notes out of the recycle bin. Returns the number restored."""
    ids = list(note_ids)
    if not ids:
        return 0
    placeholders = ",".join("?" for _ in ids)
    cur = conn.execute(
        f"UPDATE notes SET deleted = 0, modified_time = ? "
        f"WHERE deleted = 1 AND id IN ({placeholders})",
        [now_ms(), *ids],
    )
    conn.commit()
    return cur.rowcount


def _purge_where(conn: sqlite3.Connection, where_sql: str, params: list) -> int:
    # Delete links explicitly: legacy stores may run without foreign keys.
    conn.execute(
        f"DELETE FROM note_tags WHERE note_id IN (SELECT id FROM notes WHERE {where_sql})",
        params,
    )
    cur = conn.execute(f"DELETE FROM notes WHERE {where_sql}", params)
    conn.commit()
    return cur.rowcount


def purge_notes(conn: sqlite3.Connection, note_ids: Iterable[int]) -> int:
    """
    Permanently deletes notes from the recycle bin.
    Safeguard: only notes with deleted = 1 are removed.
    """
    ids = list(note_ids)
    if not ids:
        return 0
    placeholders = ",".join("?" for _ in ids)
    return _purge_where(conn, f"deleted = 1 AND id IN ({placeholders})", ids)


def empty_trash(conn: sqlite3.Connection) -> int:
    """Permanently deletes every note in the recycle bin."""
    return _purge_where(conn, "deleted = 1", [])


def auto_clean_deleted(
    conn: sqlite3.Connection, retention_days: int, now: int = None
) -> int:
    """
    Permanently deletes soft-deleted notes whose modified_time is older than
    `now - retention_days`. Returns the number of notes removed.
    """
    if retention_days < 0:
        raise ValueError("retention_days must be >= 0")
    if now is None:
        now = now_ms()
    cutoff = now - retention_days * DAY_MS
    removed = _purge_where(
        conn, "deleted = 1 AND COALESCE(modified_time, 0) < ?", [cutoff]
    )
    if removed:
        logger.info(f"Auto-clean removed {removed} notes deleted before {cutoff}")
    return removed
