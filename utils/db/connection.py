"""
Database Connection and Schema Management.

This module handles SQLite connection creation, schema initialization and
the additive migrations that bring older note databases up to date.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path

SCHEMA_VERSION = 6
DEFAULT_TAG_COLOR = "#6200EE"

# Module-level cache: initialize schema once per database path.
# Tests point at temp directories, so schema init must be keyed by db path (not process-global).
_schema_initialized_paths: set[Path] = set()


def _get_db_path() -> Path:
    from utils.path_manager import get_path_manager

    return get_path_manager().get_db_path()


def get_connection(db_path: str | Path = None) -> sqlite3.Connection:
    global _schema_initialized_paths
    db_path = Path(db_path) if db_path is not None else _get_db_path()
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    if db_path not in _schema_initialized_paths or not _has_notes_table(conn):
        _init_schema(conn)
        _schema_initialized_paths.add(db_path)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def closing_connection(db_path: str | Path = None):
    """Context manager that creates a DB connection and guarantees it is closed.

    IMPORTANT: `with sqlite3.Connection as conn:` only manages transactions
    (commit/rollback); it does NOT call conn.close(). This context manager
    ensures the file descriptor is released when the block exits.

    Usage:
        with closing_connection() as conn:
            conn.execute("SELECT ...")
    """
    conn = get_connection(db_path)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def open_store(db_path: str | Path, read_only: bool = False) -> sqlite3.Connection:
    """
    Opens a raw handle on a note database without touching its schema.

    Used for backup files and for the live store during a merge, where the
    schema has to be observed as-is. Read-only handles use a URI so SQLite
    refuses any write. A missing file raises FileNotFoundError instead of
    silently creating an empty database.
    """
    path = Path(db_path)
    if not path.exists():
        raise FileNotFoundError(f"Database file does not exist: {path}")

    if read_only:
        conn = sqlite3.connect(f"{path.resolve().as_uri()}?mode=ro", uri=True)
    else:
        conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    return conn


def _has_notes_table(conn: sqlite3.Connection) -> bool:
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type='table' AND name='notes'"
    ).fetchone()
    return row is not None


def _init_schema(conn: sqlite3.Connection) -> None:
    conn.execute("""
        CREATE TABLE IF NOT EXISTS notes (
            id INTEGER PRIMARY KEY,
            content TEXT,
            timestamp INTEGER,
            created_time INTEGER,
            modified_time INTEGER,
            custom_properties TEXT DEFAULT '{}',
            deleted INTEGER DEFAULT 0
        );
        """)

    conn.execute(f"""
        CREATE TABLE IF NOT EXISTS tags (
            tag_id INTEGER PRIMARY KEY AUTOINCREMENT,
            tag_name TEXT UNIQUE,
            tag_color TEXT DEFAULT '{DEFAULT_TAG_COLOR}'
        );
        """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS note_tags (
            note_id INTEGER,
            tag_id INTEGER,
            PRIMARY KEY (note_id, tag_id),
            FOREIGN KEY (note_id) REFERENCES notes(id) ON DELETE CASCADE,
            FOREIGN KEY (tag_id) REFERENCES tags(tag_id) ON DELETE CASCADE
        );
        """)

    migrate_schema(conn)

    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_notes_deleted_modified ON notes(deleted, modified_time);"
    )
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_note_tags_tag_id ON note_tags(tag_id);"
    )

    conn.commit()


def migrate_schema(conn: sqlite3.Connection) -> tuple[int, int]:
    """
    Brings an existing note database up to SCHEMA_VERSION.

    Only additive changes: missing columns are added and backfilled from the
    legacy single `timestamp` column. Returns (old_version, new_version).
    """
    old_version = conn.execute("PRAGMA user_version;").fetchone()[0]

    # v5: tag colours
    _ensure_column_on_table(conn, "tags", "tag_color", f"TEXT DEFAULT '{DEFAULT_TAG_COLOR}'")

    # v6: timestamps split, custom properties, soft delete
    _ensure_column_on_table(conn, "notes", "created_time", "INTEGER")
    _ensure_column_on_table(conn, "notes", "modified_time", "INTEGER")
    _ensure_column_on_table(conn, "notes", "custom_properties", "TEXT DEFAULT '{}'")
    _ensure_column_on_table(conn, "notes", "deleted", "INTEGER DEFAULT 0")

    conn.execute(
        "UPDATE notes SET created_time = timestamp WHERE created_time IS NULL"
    )
    conn.execute(
        "UPDATE notes SET modified_time = COALESCE(created_time, timestamp) "
        "WHERE modified_time IS NULL"
    )
    conn.execute(
        "UPDATE notes SET custom_properties = '{}' WHERE custom_properties IS NULL"
    )
    conn.execute("UPDATE notes SET deleted = 0 WHERE deleted IS NULL")
    conn.execute(
        f"UPDATE tags SET tag_color = '{DEFAULT_TAG_COLOR}' WHERE tag_color IS NULL"
    )

    new_version = max(old_version, SCHEMA_VERSION)
    if new_version != old_version:
        conn.execute(f"PRAGMA user_version = {new_version};")
    conn.commit()
    return old_version, new_version


def _ensure_column_on_table(
    conn: sqlite3.Connection, table: str, column: str, coltype: str
) -> None:
    cur = conn.execute(f"PRAGMA table_info({table});")
    cols = {row[1] for row in cur.fetchall()}
    if column not in cols:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {coltype};")
        conn.commit()
