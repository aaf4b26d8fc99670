"""
Notes Service - Web Layer Service for Note and Recycle Bin Operations.

Thin wrapper over core.notes_core for web-specific concerns.
"""

from core import notes_core

# --- Connection Management ---


def closing_connection():
    """Context manager that creates and auto-closes a DB connection."""
    return notes_core.closing_connection()


# --- Recycle Bin Operations ---


def fetch_trash_items(conn, page: int = 1, limit: int = 50) -> tuple[list, int]:
    return notes_core.fetch_trash_items(conn, page=page, limit=limit)


def restore_notes(conn, note_ids: list[int]) -> int:
    return notes_core.restore_from_trash(conn, note_ids)


def purge_notes(conn, note_ids: list[int]) -> int:
    return notes_core.purge_from_trash(conn, note_ids)


def empty_trash(conn) -> int:
    return notes_core.empty_trash(conn)


def get_retention_days() -> int:
    return notes_core.get_retention_days()
