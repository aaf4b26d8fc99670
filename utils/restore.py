# ------------------------------------------------------------------------------
# Restore Utilities for NoteSafe
# utils/restore.py
# ------------------------------------------------------------------------------
"""
Restore functionality for database snapshots.
Implements live DB replacement and the restart-required marker.
"""

import logging
import shutil
from datetime import UTC, datetime
from pathlib import Path

logger = logging.getLogger(__name__)


# Persistent restart-required marker functions
def set_restart_required(pm) -> None:
    """Creates marker file indicating restart is required after restore."""
    marker = pm.get_restart_required_marker()
    marker.write_text(datetime.now(UTC).isoformat())
    logger.info(f"Restart required marker created: {marker}")


def clear_restart_required(pm) -> None:
    """Removes restart marker (called on fresh app start)."""
    marker = pm.get_restart_required_marker()
    if marker.exists():
        marker.unlink()
        logger.info("Restart required marker cleared")


def is_restart_required(pm) -> bool:
    """Returns True if restart is required after a previous restore."""
    return pm.get_restart_required_marker().exists()


def replace_database(backup_db_path: Path, current_db_path: Path) -> None:
    """
    Replaces the live DB file with the bytes of a snapshot.

    Raises FileNotFoundError if the snapshot is gone and OSError if the copy
    fails. Open connections elsewhere keep seeing the old data until the
    process restarts.
    """
    backup_db_path = Path(backup_db_path)
    current_db_path = Path(current_db_path)
    if not backup_db_path.exists():
        raise FileNotFoundError(f"Backup file does not exist: {backup_db_path}")

    # Copy to temp first: a failed copy leaves the live DB and its WAL untouched
    temp_new = current_db_path.with_name(current_db_path.name + ".new")
    try:
        shutil.copyfile(backup_db_path, temp_new)
    except OSError:
        temp_new.unlink(missing_ok=True)
        raise

    # SQLite in WAL mode keeps .db-shm and .db-wal files.
    # If we only replace .db, SQLite reads stale data from old WAL files.
    wal_file = current_db_path.with_name(current_db_path.name + "-wal")
    shm_file = current_db_path.with_name(current_db_path.name + "-shm")
    for sidecar in (wal_file, shm_file):
        if sidecar.exists():
            sidecar.unlink()
            logger.info(f"Deleted {sidecar.name}")

    # On Unix, rename is atomic
    temp_new.replace(current_db_path)

    logger.info(f"DB replaced from {backup_db_path.name}. Restart required.")
