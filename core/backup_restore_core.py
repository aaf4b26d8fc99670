"""
Backup & Restore Core - Business Logic for Backup, Restore and Merge.

Wraps the snapshot store and the merge engine so that every mutating
operation on the live database is preceded by a safety backup, and every
failure is reported as a value (bool, PartialOutcome, MergeResult) instead
of an exception.

Callers must serialize access: the live database is assumed to have a
single writer for the duration of any call.
"""

import logging
from collections.abc import Generator
from pathlib import Path

from config import get_config
from utils.backup import (
    BackupSnapshot,
    PartialOutcome,
    SnapshotStore,
    copy_database,
    iter_file_bytes,
)
from utils.conflict import ConflictStrategy
from utils.db import auto_clean_deleted as _auto_clean_deleted
from utils.db import SCHEMA_VERSION, get_connection, migrate_schema, open_store
from utils.merge import MergeResult, merge_databases
from utils.path_manager import PathManager, get_path_manager
from utils.restore import (
    clear_restart_required,
    is_restart_required,
    replace_database,
    set_restart_required,
)

logger = logging.getLogger(__name__)


class BackupRestoreCore:
    def __init__(
        self,
        db_path: str | Path,
        snapshot_store: SnapshotStore,
        path_manager: PathManager = None,
        max_auto_backups: int = 0,
    ):
        self.db_path = Path(db_path)
        self.snapshots = snapshot_store
        self.path_manager = path_manager
        self.max_auto_backups = max_auto_backups

    # --- Snapshots ---

    def create_backup(
        self, is_auto: bool = False, protect: BackupSnapshot = None
    ) -> bool:
        """
        Takes a snapshot of the live database. Automatic snapshots are pruned
        to `max_auto_backups` afterwards; `protect` is never pruned.
        """
        try:
            self.snapshots.create(is_auto=is_auto)
        except Exception as e:
            logger.error(f"Failed to create database backup: {e}", exc_info=True)
            return False

        if is_auto and self.max_auto_backups > 0:
            exclude = [protect.file_name] if protect is not None else []
            self.snapshots.prune_auto(self.max_auto_backups, exclude=exclude)
        return True

    def list_backups(self) -> list[BackupSnapshot]:
        try:
            return self.snapshots.list()
        except OSError as e:
            logger.error(f"Failed to get backup list: {e}")
            return []

    def get_backup(self, file_name: str) -> BackupSnapshot | None:
        return self.snapshots.get(file_name)

    def delete_backup(self, snapshot: BackupSnapshot) -> bool:
        return self.snapshots.delete(snapshot)

    def delete_all_backups(self) -> PartialOutcome:
        return self.snapshots.delete_all()

    def backup_directory_size(self) -> int:
        return self.snapshots.total_size()

    # --- Restore ---

    def restore_with_outcome(self, snapshot: BackupSnapshot) -> PartialOutcome:
        return self.restore_detailed(snapshot)[0]

    def restore(self, snapshot: BackupSnapshot) -> bool:
        """True when the live database was replaced (even without a safety copy)."""
        return self.restore_detailed(snapshot)[1]

    def restore_detailed(self, snapshot: BackupSnapshot) -> tuple[PartialOutcome, bool]:
        """
        Replaces the live database with a snapshot.

        Steps: safety auto backup, then the file replacement. A failed safety
        backup is recorded but does not stop the restore. A missing snapshot
        fails fast before anything is touched.
        """
        outcome = PartialOutcome()

        if not Path(snapshot.file_path).exists():
            logger.error(f"Backup file does not exist: {snapshot.file_path}")
            outcome.record(False, f"Backup file does not exist: {snapshot.file_name}")
            return outcome, False

        outcome.record(
            self.create_backup(is_auto=True, protect=snapshot),
            "Safety backup failed; restoring without a rollback copy",
        )

        try:
            replace_database(Path(snapshot.file_path), self.db_path)
        except Exception as e:
            logger.error(
                f"Failed to restore from backup: {snapshot.file_name}", exc_info=True
            )
            outcome.record(False, f"Restore failed: {e}")
            return outcome, False

        outcome.record(True)
        if self.path_manager is not None:
            set_restart_required(self.path_manager)
        logger.info(f"Database restored from backup: {snapshot.file_name}")
        return outcome, True

    # --- Merge ---

    def merge(
        self,
        snapshot: BackupSnapshot,
        strategy: ConflictStrategy | str = ConflictStrategy.KEEP_NEWER,
    ) -> MergeResult:
        backup_conn = None
        live_conn = None
        try:
            strategy = ConflictStrategy.parse(strategy)
            if not Path(snapshot.file_path).exists():
                logger.error(f"Backup file does not exist: {snapshot.file_path}")
                return MergeResult(False, "Backup file does not exist")

            self.create_backup(is_auto=True, protect=snapshot)

            backup_conn = open_store(snapshot.file_path, read_only=True)
            live_conn = open_store(self.db_path)
            result = merge_databases(backup_conn, live_conn, strategy)
            logger.info(f"Database merge completed: {result.message}")
            return result
        except Exception as e:
            logger.error(f"Failed to merge database: {snapshot.file_name}", exc_info=True)
            return MergeResult(False, f"Merge failed: {e}")
        finally:
            for conn in (backup_conn, live_conn):
                if conn is not None:
                    conn.close()

    # --- Recycle bin ---

    def auto_clean_deleted(self, retention_days: int, now_ms: int = None) -> int:
        """Permanently removes notes deleted more than `retention_days` ago."""
        conn = get_connection(self.db_path)
        try:
            return _auto_clean_deleted(conn, retention_days, now=now_ms)
        finally:
            conn.close()

    # --- Export ---

    def export_stream(self, snapshot: BackupSnapshot = None) -> Generator[bytes, None, None]:
        """
        Yields raw database bytes for the caller to write wherever it wants.
        Without a snapshot, a consistent copy of the live database is exported.
        """
        if snapshot is not None:
            yield from iter_file_bytes(snapshot.file_path)
            return

        if not self.db_path.exists():
            raise FileNotFoundError(f"Database file does not exist: {self.db_path}")

        if self.path_manager is not None:
            tmp_path = self.path_manager.get_export_tmp_db_path()
        else:
            tmp_path = self.db_path.with_name(self.db_path.name + ".export")
        try:
            copy_database(self.db_path, tmp_path)
            yield from iter_file_bytes(tmp_path)
        finally:
            tmp_path.unlink(missing_ok=True)

    # --- Migration ---

    def schema_version(self) -> int:
        conn = open_store(self.db_path)
        try:
            return conn.execute("PRAGMA user_version;").fetchone()[0]
        finally:
            conn.close()

    def migrate_database(self) -> bool:
        """
        Brings an old live database up to the current schema.
        A safety auto backup is taken only when there is something to migrate.
        """
        if not self.db_path.exists():
            logger.error(f"Database file does not exist: {self.db_path}")
            return False

        try:
            old_version = self.schema_version()
            if old_version >= SCHEMA_VERSION:
                return True

            self.create_backup(is_auto=True)
            conn = get_connection(self.db_path)
            try:
                _, new_version = migrate_schema(conn)
            finally:
                conn.close()
        except Exception as e:
            logger.error(f"Failed to migrate old database: {e}", exc_info=True)
            return False

        logger.info(f"Database migrated from version {old_version} to {new_version}")
        return True

    # --- Restart Required State ---

    def is_restart_required(self) -> bool:
        if self.path_manager is None:
            return False
        return is_restart_required(self.path_manager)

    def clear_restart_required(self) -> None:
        if self.path_manager is not None:
            clear_restart_required(self.path_manager)


# Global Instance - built lazily from config
_instance = None


def get_backup_core() -> BackupRestoreCore:
    global _instance
    if _instance is None:
        cfg = get_config()
        pm = get_path_manager()
        store = SnapshotStore(pm.get_backup_dir(), pm.get_db_path())
        _instance = BackupRestoreCore(
            pm.get_db_path(),
            store,
            path_manager=pm,
            max_auto_backups=int(cfg["MAX_AUTO_BACKUPS"]),
        )
    return _instance


def reset_backup_core() -> None:
    global _instance
    _instance = None


def get_default_strategy() -> ConflictStrategy:
    """Conflict strategy from config; an unknown value falls back to keep_newer."""
    raw = get_config().get("DEFAULT_CONFLICT_STRATEGY", ConflictStrategy.KEEP_NEWER.value)
    try:
        return ConflictStrategy.parse(raw)
    except ValueError:
        logger.warning(f"Unknown DEFAULT_CONFLICT_STRATEGY '{raw}', using keep_newer")
        return ConflictStrategy.KEEP_NEWER
