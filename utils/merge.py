# ------------------------------------------------------------------------------
# Merge Engine for NoteSafe
# utils/merge.py
# ------------------------------------------------------------------------------
"""
Merges a backup database into the live database.

Strategy:
- Introspect both schemas; a table missing on either side is skipped
- Tags are matched by name (natural key), notes by id
- Note-tag pairs are copied as-is when absent (set semantics, no remapping)
- Columns missing from the backup get typed defaults via RowView
- Only columns that exist in the live table are written

Order is fixed: tags, notes, note_tags. All writes to the live store happen
in one transaction; any error rolls it back and is reported in the result.
"""

import logging
import sqlite3
from dataclasses import asdict, dataclass

from utils.conflict import ConflictStrategy, Decision, resolve
from utils.db.connection import DEFAULT_TAG_COLOR
from utils.db.schema import RowView, SchemaDescriptor, describe_schema, dump_properties

logger = logging.getLogger(__name__)

TABLE_NOTES = "notes"
TABLE_TAGS = "tags"
TABLE_NOTE_TAGS = "note_tags"


@dataclass(frozen=True)
class MergeResult:
    success: bool
    message: str
    merged_notes: int = 0
    merged_tags: int = 0
    conflicts: int = 0
    merged_associations: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class _TableStats:
    merged: int = 0
    conflicts: int = 0
    skipped: int = 0


def merge_databases(
    backup_conn: sqlite3.Connection,
    live_conn: sqlite3.Connection,
    strategy: ConflictStrategy = ConflictStrategy.KEEP_NEWER,
) -> MergeResult:
    """
    Merges everything in `backup_conn` into `live_conn`.

    Returns a MergeResult in every case; exceptions are caught, the live
    transaction is rolled back and success is False.
    """
    try:
        strategy = ConflictStrategy.parse(strategy)

        backup_schema = describe_schema(backup_conn)
        live_schema = describe_schema(live_conn)

        tag_stats = _TableStats()
        note_stats = _TableStats()
        assoc_stats = _TableStats()

        if _in_both(TABLE_TAGS, backup_schema, live_schema):
            tag_stats = _merge_tags(backup_conn, live_conn, backup_schema, live_schema, strategy)
        else:
            logger.info("Skipping tags: table missing in backup or live store")

        if _in_both(TABLE_NOTES, backup_schema, live_schema):
            note_stats = _merge_notes(backup_conn, live_conn, backup_schema, live_schema, strategy)
        else:
            logger.info("Skipping notes: table missing in backup or live store")

        if _in_both(TABLE_NOTE_TAGS, backup_schema, live_schema):
            assoc_stats = _merge_note_tags(backup_conn, live_conn, backup_schema)
        else:
            logger.info("Skipping note_tags: table missing in backup or live store")

        live_conn.commit()

        conflicts = tag_stats.conflicts + note_stats.conflicts
        message = (
            f"Merge complete: {note_stats.merged} notes, "
            f"{tag_stats.merged} tags, {conflicts} conflicts"
        )
        logger.info(
            f"{message} ({assoc_stats.merged} note-tag links added, "
            f"{assoc_stats.skipped} rejected by the store)"
        )
        return MergeResult(
            success=True,
            message=message,
            merged_notes=note_stats.merged,
            merged_tags=tag_stats.merged,
            conflicts=conflicts,
            merged_associations=assoc_stats.merged,
        )

    except Exception as e:
        logger.error(f"DB merge failed: {e}", exc_info=True)
        try:
            live_conn.rollback()
        except sqlite3.Error as rollback_error:
            logger.error(f"Rollback after failed merge also failed: {rollback_error}")
        return MergeResult(success=False, message=f"Merge failed: {e}")


def _in_both(table: str, backup_schema: SchemaDescriptor, live_schema: SchemaDescriptor) -> bool:
    return backup_schema.has_table(table) and live_schema.has_table(table)


def _merge_tags(
    backup_conn: sqlite3.Connection,
    live_conn: sqlite3.Connection,
    backup_schema: SchemaDescriptor,
    live_schema: SchemaDescriptor,
    strategy: ConflictStrategy,
) -> _TableStats:
    stats = _TableStats()
    live_has_color = live_schema.has_column(TABLE_TAGS, "tag_color")
    # A backup from before tag colours existed has no opinion on colour.
    backup_has_color = backup_schema.has_column(TABLE_TAGS, "tag_color")
    color_select = "tag_color" if live_has_color else "NULL"

    for tag in RowView.iter_table(backup_conn, TABLE_TAGS, backup_schema):
        tag_name = tag.get("tag_name")
        if tag_name is None or tag_name == "":
            stats.skipped += 1
            continue
        tag_color = tag.get_str("tag_color", DEFAULT_TAG_COLOR)

        existing = live_conn.execute(
            f"SELECT {color_select} FROM tags WHERE tag_name = ?", (tag_name,)
        ).fetchone()

        if existing is None:
            if live_has_color:
                live_conn.execute(
                    "INSERT INTO tags (tag_name, tag_color) VALUES (?, ?)",
                    (tag_name, tag_color),
                )
            else:
                live_conn.execute("INSERT INTO tags (tag_name) VALUES (?)", (tag_name,))
            stats.merged += 1
            continue

        if not (live_has_color and backup_has_color):
            continue

        existing_color = existing[0] or DEFAULT_TAG_COLOR
        if existing_color == tag_color:
            continue

        stats.conflicts += 1
        # Tags carry no modification time, so KEEP_NEWER degrades to KEEP_BACKUP.
        if resolve(None, None, strategy) == Decision.TAKE_INCOMING:
            live_conn.execute(
                "UPDATE tags SET tag_color = ? WHERE tag_name = ?", (tag_color, tag_name)
            )
            stats.merged += 1

    return stats


def _read_backup_note(note: RowView) -> dict:
    """Builds a full note record from a backup row, defaulting absent columns."""
    timestamp = note.get_int("timestamp", 0, fallbacks=("created_time", "modified_time"))
    created_time = note.get_int("created_time", timestamp, fallbacks=("timestamp",))
    modified_time = note.get_int("modified_time", created_time, fallbacks=("timestamp",))
    return {
        "id": note.get_int("id"),
        "content": note.get_str("content", ""),
        "timestamp": timestamp,
        "created_time": created_time,
        "modified_time": modified_time,
        "custom_properties": dump_properties(note.get_properties("custom_properties")),
        "deleted": 1 if note.get_bool("deleted", False) else 0,
    }


def _merge_notes(
    backup_conn: sqlite3.Connection,
    live_conn: sqlite3.Connection,
    backup_schema: SchemaDescriptor,
    live_schema: SchemaDescriptor,
    strategy: ConflictStrategy,
) -> _TableStats:
    stats = _TableStats()

    if not backup_schema.has_column(TABLE_NOTES, "id"):
        logger.warning("Backup notes table has no 'id' column - skipping notes")
        return stats

    live_columns = set(live_schema.columns(TABLE_NOTES))
    live_has_modified = "modified_time" in live_columns

    for note in RowView.iter_table(backup_conn, TABLE_NOTES, backup_schema):
        if note.get("id") is None:
            stats.skipped += 1
            continue
        record = _read_backup_note(note)
        writable = {k: v for k, v in record.items() if k in live_columns}

        modified_select = "modified_time" if live_has_modified else "NULL"
        existing = live_conn.execute(
            f"SELECT {modified_select} AS modified_time FROM notes WHERE id = ?",
            (record["id"],),
        ).fetchone()

        if existing is None:
            columns = list(writable)
            placeholders = ", ".join("?" for _ in columns)
            live_conn.execute(
                f"INSERT INTO notes ({', '.join(columns)}) VALUES ({placeholders})",
                [writable[c] for c in columns],
            )
            stats.merged += 1
            continue

        stats.conflicts += 1
        decision = resolve(existing[0], record["modified_time"], strategy)
        if decision == Decision.TAKE_INCOMING:
            updates = [c for c in writable if c != "id"]
            assignments = ", ".join(f"{c} = ?" for c in updates)
            live_conn.execute(
                f"UPDATE notes SET {assignments} WHERE id = ?",
                [writable[c] for c in updates] + [record["id"]],
            )
            stats.merged += 1

    return stats


def _merge_note_tags(
    backup_conn: sqlite3.Connection,
    live_conn: sqlite3.Connection,
    backup_schema: SchemaDescriptor,
) -> _TableStats:
    stats = _TableStats()

    if not (
        backup_schema.has_column(TABLE_NOTE_TAGS, "note_id")
        and backup_schema.has_column(TABLE_NOTE_TAGS, "tag_id")
    ):
        logger.warning("Backup note_tags table lacks note_id/tag_id - skipping links")
        return stats

    for link in RowView.iter_table(backup_conn, TABLE_NOTE_TAGS, backup_schema):
        note_id = link.get("note_id")
        tag_id = link.get("tag_id")
        if note_id is None or tag_id is None:
            stats.skipped += 1
            continue

        exists = live_conn.execute(
            "SELECT 1 FROM note_tags WHERE note_id = ? AND tag_id = ?",
            (note_id, tag_id),
        ).fetchone()
        if exists:
            continue

        try:
            cur = live_conn.execute(
                "INSERT OR IGNORE INTO note_tags (note_id, tag_id) VALUES (?, ?)",
                (note_id, tag_id),
            )
        except sqlite3.IntegrityError as e:
            # Dangling reference refused by the store's foreign keys.
            logger.debug(f"Skipping note_tags ({note_id}, {tag_id}): {e}")
            stats.skipped += 1
            continue
        if cur.rowcount > 0:
            stats.merged += 1

    return stats
