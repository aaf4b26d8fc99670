from pathlib import Path


# Directory structure:
# data/
# ├── notes.db
# ├── settings.yaml
# ├── restart_required
# └── database_backups/
#     ├── notes_backup_YYYYMMDD_HHMMSS.db
#     └── notes_backup_autobackup_YYYYMMDD_HHMMSS.db


class PathManager:
    def __init__(
        self,
        base_dir: str,
        db_filename: str = "notes.db",
        backup_dir_name: str = "database_backups",
    ):
        self.base_dir = Path(base_dir)
        self.db_path = self.base_dir / db_filename
        # Backup directory
        self.backup_dir = self.base_dir / backup_dir_name

    def get_db_path(self) -> Path:
        """Returns the live database path, creating its parent directory."""
        self.base_dir.mkdir(parents=True, exist_ok=True)
        return self.db_path

    # -------------------------------------------------------------------------
    # Backup Path Methods
    # -------------------------------------------------------------------------
    def get_backup_dir(self) -> Path:
        """Returns the backup directory, creates if needed."""
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        return self.backup_dir

    def get_export_tmp_db_path(self) -> Path:
        """
        Returns a unique temp DB path for exporting the live store.
        Format: .export_tmp_YYYYMMDD_HHMMSS_ffffff.db (hidden, never listed as a snapshot)
        """
        from datetime import datetime

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        return self.get_backup_dir() / f".export_tmp_{timestamp}.db"

    def get_restart_required_marker(self) -> Path:
        """Marker file written after a restore replaced the live database."""
        self.base_dir.mkdir(parents=True, exist_ok=True)
        return self.base_dir / "restart_required"


# Global Instance - to be initialized by app with config["DATA_DIR"]
_instance = None


def get_path_manager(data_dir: str = None) -> PathManager:
    global _instance
    if _instance is None:
        from config import get_config

        cfg = get_config()
        if data_dir is None:
            # Default fallback if called before init
            data_dir = cfg["DATA_DIR"]
        _instance = PathManager(
            data_dir,
            db_filename=cfg["DB_FILENAME"],
            backup_dir_name=cfg["BACKUP_DIR_NAME"],
        )
    return _instance


def reset_path_manager() -> None:
    global _instance
    _instance = None
