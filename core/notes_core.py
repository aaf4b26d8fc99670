"""
Notes Core - Recycle Bin Access Layer.

Provides a clean interface to recycle bin operations,
serving as an abstraction over utils.db.
"""

import logging

from config import get_config
from utils.db import (
    closing_connection as _closing_connection,
)
from utils.db import (
    empty_trash as _empty_trash,
)
from utils.db import (
    fetch_trash_items as _fetch_trash_items,
)
from utils.db import (
    purge_notes as _purge_notes,
)
from utils.db import (
    restore_notes as _restore_notes,
)

logger = logging.getLogger(__name__)


# --- Connection Management ---


def closing_connection():
    return _closing_connection()


# --- Recycle Bin ---


def fetch_trash_items(conn, page: int = 1, limit: int = 50) -> tuple[list, int]:
    return _fetch_trash_items(conn, page=page, limit=limit)


def restore_from_trash(conn, note_ids: list[int]) -> int:
    return _restore_notes(conn, note_ids)


def purge_from_trash(conn, note_ids: list[int]) -> int:
    count = _purge_notes(conn, note_ids)
    logger.info(f"Permanently deleted {count} notes")
    return count


def empty_trash(conn) -> int:
    count = _empty_trash(conn)
    logger.info(f"Recycle bin emptied ({count} notes)")
    return count


def get_retention_days() -> int:
    return int(get_config()["RECYCLE_RETENTION_DAYS"])
