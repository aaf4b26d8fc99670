# ------------------------------------------------------------------------------
# Backup Utilities for NoteSafe
# utils/backup.py
# ------------------------------------------------------------------------------
"""
Snapshot store for the note database.

A snapshot is a complete copy of the live database file in the backup
directory. File names are part of the on-disk contract:

    notes_backup_[autobackup_]YYYYMMDD_HHMMSS.db

Listing relies on the prefix and extension, so anything else placed in the
directory is ignored (but still counted by total_size()).
"""

import logging
import os
import sqlite3
from collections.abc import Generator, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "notes_backup_"
AUTO_BACKUP_MARKER = "autobackup_"
BACKUP_EXTENSION = ".db"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
EXPORT_CHUNK_SIZE = 64 * 1024


class SnapshotError(RuntimeError):
    """Raised when a snapshot cannot be written."""


@dataclass(frozen=True)
class BackupSnapshot:
    file_name: str
    file_path: str
    file_size: int
    created_time: int  # epoch milliseconds, from file mtime

    @property
    def is_auto(self) -> bool:
        return self.file_name.startswith(BACKUP_PREFIX + AUTO_BACKUP_MARKER)

    @classmethod
    def from_path(cls, path: Path) -> "BackupSnapshot":
        stat = path.stat()
        return cls(
            file_name=path.name,
            file_path=str(path.resolve()),
            file_size=stat.st_size,
            created_time=int(stat.st_mtime * 1000),
        )

    def formatted_size(self) -> str:
        kb = self.file_size / 1024.0
        mb = kb / 1024.0
        if mb >= 1:
            return f"{mb:.2f} MB"
        if kb >= 1:
            return f"{kb:.2f} KB"
        return f"{self.file_size} B"

    def formatted_date(self) -> str:
        return datetime.fromtimestamp(self.created_time / 1000).strftime(
            "%Y-%m-%d %H:%M:%S"
        )

    def to_dict(self) -> dict:
        return {
            "file_name": self.file_name,
            "file_path": self.file_path,
            "file_size": self.file_size,
            "created_time": self.created_time,
            "is_auto": self.is_auto,
            "formatted_size": self.formatted_size(),
            "formatted_date": self.formatted_date(),
        }


@dataclass
class PartialOutcome:
    """Result of a multi-step, continue-on-error operation."""

    attempted: int = 0
    succeeded: int = 0
    failures: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def record(self, success: bool, failure_message: str = "") -> None:
        self.attempted += 1
        if success:
            self.succeeded += 1
        else:
            self.failures.append(failure_message)

    def to_dict(self) -> dict:
        return {
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failures": list(self.failures),
            "ok": self.ok,
        }


def is_snapshot_name(name: str) -> bool:
    return (
        name.startswith(BACKUP_PREFIX)
        and name.endswith(BACKUP_EXTENSION)
        and "/" not in name
        and "\\" not in name
    )


def copy_database(source_path: Path, dest_path: Path) -> None:
    """
    Creates a consistent copy of a SQLite database using the backup API.

    The copy is switched to rollback-journal mode so it is a single
    self-contained file, even when the source runs in WAL mode.
    """
    source_conn = sqlite3.connect(str(source_path))
    try:
        dest_conn = sqlite3.connect(str(dest_path))
        try:
            source_conn.backup(dest_conn)
            dest_conn.execute("PRAGMA journal_mode=DELETE;")
        finally:
            dest_conn.close()
    finally:
        source_conn.close()


class SnapshotStore:
    def __init__(self, backup_dir: str | Path, db_path: str | Path):
        self.backup_dir = Path(backup_dir)
        self.db_path = Path(db_path)

    def _ensure_dir(self) -> Path:
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        return self.backup_dir

    def _next_backup_path(self, is_auto: bool) -> Path:
        timestamp = datetime.now().strftime(TIMESTAMP_FORMAT)
        marker = AUTO_BACKUP_MARKER if is_auto else ""
        stem = f"{BACKUP_PREFIX}{marker}{timestamp}"
        candidate = self.backup_dir / f"{stem}{BACKUP_EXTENSION}"
        counter = 1
        while candidate.exists():
            candidate = self.backup_dir / f"{stem}_{counter}{BACKUP_EXTENSION}"
            counter += 1
        return candidate

    def create(self, is_auto: bool = False) -> BackupSnapshot:
        """
        Copies the live database into the backup directory.

        The copy is written to a hidden temp file and published with an
        atomic rename, so a failed copy never leaves a visible snapshot.
        """
        if not self.db_path.exists():
            raise FileNotFoundError(f"Database file does not exist: {self.db_path}")

        self._ensure_dir()
        target = self._next_backup_path(is_auto)
        tmp_path = self.backup_dir / f".{target.name}.tmp"

        try:
            copy_database(self.db_path, tmp_path)
            os.replace(tmp_path, target)
        except (OSError, sqlite3.Error) as e:
            tmp_path.unlink(missing_ok=True)
            raise SnapshotError(f"Failed to create backup {target.name}: {e}") from e

        logger.info(f"Database backup created: {target}")
        return BackupSnapshot.from_path(target)

    def list(self) -> list[BackupSnapshot]:
        """All snapshots in the backup directory, newest first."""
        if not self.backup_dir.exists():
            return []

        snapshots = []
        for path in self.backup_dir.iterdir():
            if not (path.is_file() and is_snapshot_name(path.name)):
                continue
            try:
                snapshots.append(BackupSnapshot.from_path(path))
            except OSError as e:
                # Deleted between iterdir() and stat()
                logger.warning(f"Could not stat backup {path.name}: {e}")

        snapshots.sort(key=lambda s: (s.created_time, s.file_name), reverse=True)
        return snapshots

    def get(self, file_name: str) -> BackupSnapshot | None:
        """Looks up a snapshot by file name; foreign or unsafe names return None."""
        if not file_name or not is_snapshot_name(file_name):
            return None
        path = self.backup_dir / file_name
        if not path.is_file():
            return None
        return BackupSnapshot.from_path(path)

    def delete(self, snapshot: BackupSnapshot) -> bool:
        path = Path(snapshot.file_path)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.error(f"Failed to delete backup: {snapshot.file_name} (missing)")
            return False
        except OSError as e:
            logger.error(f"Failed to delete backup: {snapshot.file_name} ({e})")
            return False
        logger.info(f"Backup deleted: {snapshot.file_name}")
        return True

    def delete_all(self) -> PartialOutcome:
        """Deletes every snapshot; one failure does not stop the rest."""
        outcome = PartialOutcome()
        for snapshot in self.list():
            outcome.record(
                self.delete(snapshot), f"Could not delete {snapshot.file_name}"
            )
        if outcome.failures:
            logger.warning(
                f"Deleted {outcome.succeeded}/{outcome.attempted} backups, "
                f"{len(outcome.failures)} failed"
            )
        return outcome

    def prune_auto(self, keep: int, exclude: Iterable[str] = ()) -> PartialOutcome:
        """
        Deletes the oldest automatic snapshots beyond `keep` (0 keeps all).
        Snapshots named in `exclude` are neither counted nor deleted.
        """
        outcome = PartialOutcome()
        if keep <= 0:
            return outcome
        protected = set(exclude)
        autos = [s for s in self.list() if s.is_auto and s.file_name not in protected]
        for snapshot in autos[keep:]:
            outcome.record(
                self.delete(snapshot), f"Could not delete {snapshot.file_name}"
            )
        return outcome

    def total_size(self) -> int:
        """Sum of file sizes under the backup directory."""
        if not self.backup_dir.exists():
            return 0
        total = 0
        for f in self.backup_dir.rglob("*"):
            try:
                if f.is_file():
                    total += f.stat().st_size
            except OSError as e:
                logger.warning(f"Could not stat {f}: {e}")
        return total


def iter_file_bytes(
    path: str | Path, chunk_size: int = EXPORT_CHUNK_SIZE
) -> Generator[bytes, None, None]:
    """Yields the raw bytes of a file in chunks."""
    with open(path, "rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            yield chunk
