"""
Backup & Restore Service - Web Layer Service for Backup and Restore Operations.

Thin wrapper over core.backup_restore_core for web-specific concerns.
"""

from collections.abc import Generator
from typing import Any

from core import backup_restore_core

# --- Snapshots ---


def list_backups() -> dict[str, Any]:
    """All snapshots (newest first) plus the backup directory size."""
    core = backup_restore_core.get_backup_core()
    return {
        "backups": [s.to_dict() for s in core.list_backups()],
        "total_size": core.backup_directory_size(),
    }


def get_backup(file_name: str):
    return backup_restore_core.get_backup_core().get_backup(file_name)


def create_backup(is_auto: bool = False) -> bool:
    return backup_restore_core.get_backup_core().create_backup(is_auto=is_auto)


def delete_backup(snapshot) -> bool:
    return backup_restore_core.get_backup_core().delete_backup(snapshot)


def delete_all_backups() -> dict[str, Any]:
    return backup_restore_core.get_backup_core().delete_all_backups().to_dict()


# --- Restore & Merge ---


def restore_backup(snapshot) -> tuple[bool, dict[str, Any]]:
    """Returns (replaced, outcome_dict)."""
    core = backup_restore_core.get_backup_core()
    outcome, replaced = core.restore_detailed(snapshot)
    return replaced, outcome.to_dict()


def merge_backup(snapshot, strategy: str | None = None) -> dict[str, Any]:
    """
    Merges a snapshot into the live store.
    Raises ValueError for an unknown strategy name.
    """
    if strategy is None:
        strategy = backup_restore_core.get_default_strategy()
    else:
        strategy = backup_restore_core.ConflictStrategy.parse(strategy)
    return backup_restore_core.get_backup_core().merge(snapshot, strategy).to_dict()


# --- Export ---


def stream_backup(snapshot=None) -> Generator[bytes, None, None]:
    """Raw bytes of a snapshot, or of a consistent copy of the live store."""
    return backup_restore_core.get_backup_core().export_stream(snapshot)


# --- Restart State ---


def is_restart_required() -> bool:
    return backup_restore_core.get_backup_core().is_restart_required()


def clear_restart_marker() -> None:
    backup_restore_core.get_backup_core().clear_restart_required()


# --- Recycle Bin Maintenance ---


def auto_clean_deleted(retention_days: int) -> int:
    return backup_restore_core.get_backup_core().auto_clean_deleted(retention_days)
