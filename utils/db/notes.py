"""
Note Database Operations.

Insert, update and fetch notes. Note ids are caller-assigned (creation time
in epoch milliseconds), not store-assigned.
"""

import sqlite3
import time
from typing import Any

from utils.db.schema import dump_properties, parse_properties
from utils.db.tags import add_tag_to_note, fetch_tags_for_note


def now_ms() -> int:
    return int(time.time() * 1000)


def generate_note_id(conn: sqlite3.Connection = None) -> int:
    """
    Returns a new note id based on the current time.
    With a connection, the id is bumped past the current maximum so ids stay
    unique even when two notes are created within the same millisecond.
    """
    candidate = now_ms()
    if conn is not None:
        row = conn.execute("SELECT MAX(id) FROM notes").fetchone()
        if row and row[0] is not None and row[0] >= candidate:
            candidate = row[0] + 1
    return candidate


def _row_to_note(conn: sqlite3.Connection, row: sqlite3.Row) -> dict[str, Any]:
    return {
        "id": row["id"],
        "content": row["content"] or "",
        "created_time": row["created_time"],
        "modified_time": row["modified_time"],
        "custom_properties": parse_properties(row["custom_properties"]),
        "deleted": bool(row["deleted"]),
        "tags": fetch_tags_for_note(conn, row["id"]),
    }


def insert_note(
    conn: sqlite3.Connection,
    content: str,
    note_id: int = None,
    created_time: int = None,
    modified_time: int = None,
    custom_properties: dict[str, str] = None,
    tags: list[str] = None,
) -> int:
    """Inserts a note (and links its tags, creating them if needed). Returns its id."""
    if note_id is None:
        note_id = generate_note_id(conn)
    if created_time is None:
        created_time = now_ms()
    if modified_time is None:
        modified_time = created_time

    conn.execute(
        """INSERT INTO notes (
            id, content, timestamp, created_time, modified_time, custom_properties, deleted
        ) VALUES (?, ?, ?, ?, ?, ?, 0)""",
        (
            note_id,
            content,
            created_time,
            created_time,
            modified_time,
            dump_properties(custom_properties),
        ),
    )
    for tag_name in tags or []:
        add_tag_to_note(conn, note_id, tag_name)
    conn.commit()
    return note_id


def update_note(
    conn: sqlite3.Connection,
    note_id: int,
    content: str,
    custom_properties: dict[str, str] = None,
    tags: list[str] = None,
    modified_time: int = None,
) -> int:
    """
    Updates content and properties and bumps modified_time.
    When `tags` is given, the note's tag links are replaced.
    Returns the number of rows updated.
    """
    if modified_time is None:
        modified_time = now_ms()

    cur = conn.execute(
        "UPDATE notes SET content = ?, custom_properties = ?, modified_time = ? WHERE id = ?",
        (content, dump_properties(custom_properties), modified_time, note_id),
    )
    if cur.rowcount and tags is not None:
        conn.execute("DELETE FROM note_tags WHERE note_id = ?", (note_id,))
        for tag_name in tags:
            add_tag_to_note(conn, note_id, tag_name)
    conn.commit()
    return cur.rowcount


def save_note(conn: sqlite3.Connection, note: dict[str, Any]) -> int:
    """Inserts the note if its id is unknown, otherwise updates it."""
    note_id = note.get("id")
    if note_id is not None and fetch_note(conn, note_id) is not None:
        update_note(
            conn,
            note_id,
            note.get("content", ""),
            custom_properties=note.get("custom_properties"),
            tags=note.get("tags"),
        )
        return note_id
    return insert_note(
        conn,
        note.get("content", ""),
        note_id=note_id,
        created_time=note.get("created_time"),
        custom_properties=note.get("custom_properties"),
        tags=note.get("tags"),
    )


def fetch_note(conn: sqlite3.Connection, note_id: int) -> dict[str, Any] | None:
    """Returns a note by id, including soft-deleted ones."""
    row = conn.execute("SELECT * FROM notes WHERE id = ?", (note_id,)).fetchone()
    if row is None:
        return None
    return _row_to_note(conn, row)


def fetch_notes(conn: sqlite3.Connection) -> list[dict[str, Any]]:
    """Active (not deleted) notes, newest first."""
    rows = conn.execute(
        "SELECT * FROM notes WHERE deleted = 0 ORDER BY created_time DESC"
    ).fetchall()
    return [_row_to_note(conn, row) for row in rows]


def soft_delete_notes(conn: sqlite3.Connection, note_ids: list[int]) -> int:
    """Moves notes to the recycle bin. modified_time records when."""
    ids = list(note_ids)
    if not ids:
        return 0
    placeholders = ",".join("?" for _ in ids)
    cur = conn.execute(
        f"UPDATE notes SET deleted = 1, modified_time = ? WHERE id IN ({placeholders})",
        [now_ms(), *ids],
    )
    conn.commit()
    return cur.rowcount
