"""
Tag Database Operations.

Tags are identified by name (unique, case-sensitive); tag_id is assigned by
the store. Notes and tags are linked through note_tags.
"""

import random
import sqlite3
from typing import Any

from utils.db.connection import DEFAULT_TAG_COLOR

PRESET_COLORS = [
    "#6200EE",  # purple
    "#03DAC6",  # teal
    "#FF6200",  # orange
    "#FF5722",  # deep orange
    "#4CAF50",  # green
    "#2196F3",  # blue
    "#9C27B0",  # magenta
    "#F44336",  # red
    "#795548",  # brown
    "#607D8B",  # blue grey
]


def random_tag_color() -> str:
    return random.choice(PRESET_COLORS)


def text_color_for(background: str) -> str:
    """Black or white text, whichever reads better on the given hex colour."""
    color = (background or DEFAULT_TAG_COLOR).lstrip("#")
    try:
        r, g, b = (int(color[i : i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        return "#FFFFFF"
    brightness = 0.299 * r + 0.587 * g + 0.114 * b
    return "#000000" if brightness > 128 else "#FFFFFF"


def get_tag_id(conn: sqlite3.Connection, tag_name: str) -> int | None:
    row = conn.execute(
        "SELECT tag_id FROM tags WHERE tag_name = ?", (tag_name,)
    ).fetchone()
    return row[0] if row else None


def insert_tag(conn: sqlite3.Connection, tag_name: str, tag_color: str = None) -> int:
    """Creates a tag; an existing name is left untouched. Returns the tag id."""
    existing = get_tag_id(conn, tag_name)
    if existing is not None:
        return existing
    cur = conn.execute(
        "INSERT INTO tags (tag_name, tag_color) VALUES (?, ?)",
        (tag_name, tag_color or random_tag_color()),
    )
    conn.commit()
    return cur.lastrowid


def fetch_tags(conn: sqlite3.Connection) -> list[dict[str, Any]]:
    rows = conn.execute(
        "SELECT tag_id, tag_name, tag_color FROM tags ORDER BY tag_name"
    ).fetchall()
    return [
        {
            "id": row["tag_id"],
            "name": row["tag_name"],
            "color": row["tag_color"] or DEFAULT_TAG_COLOR,
        }
        for row in rows
    ]


def search_tags(conn: sqlite3.Connection, query: str) -> list[str]:
    """Tag names containing `query`, case-insensitive."""
    needle = (query or "").lower()
    return [t["name"] for t in fetch_tags(conn) if needle in t["name"].lower()]


def update_tag_color(conn: sqlite3.Connection, tag_name: str, new_color: str) -> int:
    cur = conn.execute(
        "UPDATE tags SET tag_color = ? WHERE tag_name = ?", (new_color, tag_name)
    )
    conn.commit()
    return cur.rowcount


def delete_tag(conn: sqlite3.Connection, tag_name: str) -> int:
    cur = conn.execute("DELETE FROM tags WHERE tag_name = ?", (tag_name,))
    conn.commit()
    return cur.rowcount


def add_tag_to_note(conn: sqlite3.Connection, note_id: int, tag_name: str) -> None:
    tag_id = get_tag_id(conn, tag_name)
    if tag_id is None:
        tag_id = conn.execute(
            "INSERT INTO tags (tag_name, tag_color) VALUES (?, ?)",
            (tag_name, random_tag_color()),
        ).lastrowid
    conn.execute(
        "INSERT OR IGNORE INTO note_tags (note_id, tag_id) VALUES (?, ?)",
        (note_id, tag_id),
    )


def remove_tag_from_note(conn: sqlite3.Connection, note_id: int, tag_name: str) -> None:
    tag_id = get_tag_id(conn, tag_name)
    if tag_id is None:
        return
    conn.execute(
        "DELETE FROM note_tags WHERE note_id = ? AND tag_id = ?", (note_id, tag_id)
    )
    conn.commit()


def fetch_tags_for_note(conn: sqlite3.Connection, note_id: int) -> list[str]:
    rows = conn.execute(
        """
        SELECT t.tag_name FROM tags t
        INNER JOIN note_tags nt ON t.tag_id = nt.tag_id
        WHERE nt.note_id = ?
        ORDER BY t.tag_name
        """,
        (note_id,),
    ).fetchall()
    return [row[0] for row in rows]


def fetch_notes_by_tag(conn: sqlite3.Connection, tag_name: str) -> list[int]:
    """Ids of active notes carrying the tag, newest first."""
    rows = conn.execute(
        """
        SELECT n.id FROM notes n
        INNER JOIN note_tags nt ON n.id = nt.note_id
        INNER JOIN tags t ON nt.tag_id = t.tag_id
        WHERE t.tag_name = ? AND n.deleted = 0
        ORDER BY n.created_time DESC
        """,
        (tag_name,),
    ).fetchall()
    return [row[0] for row in rows]
