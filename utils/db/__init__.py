"""
NoteSafe Database Module.

This package provides modular database access for the note store.
All functions are re-exported here so callers can import from one place.

Usage:
    from utils.db import get_connection, insert_note, fetch_trash_items
    # or
    from utils.db.notes import insert_note
"""

# Connection and Schema
from utils.db.connection import (
    DEFAULT_TAG_COLOR,
    SCHEMA_VERSION,
    _ensure_column_on_table,
    _get_db_path,
    _init_schema,
    closing_connection,
    get_connection,
    migrate_schema,
    open_store,
)

# Note Operations
from utils.db.notes import (
    fetch_note,
    fetch_notes,
    generate_note_id,
    insert_note,
    now_ms,
    save_note,
    soft_delete_notes,
    update_note,
)

# Schema Introspection
from utils.db.schema import (
    RowView,
    SchemaDescriptor,
    describe_schema,
    dump_properties,
    parse_properties,
)

# Tag Operations
from utils.db.tags import (
    add_tag_to_note,
    delete_tag,
    fetch_notes_by_tag,
    fetch_tags,
    fetch_tags_for_note,
    insert_tag,
    remove_tag_from_note,
    search_tags,
    text_color_for,
    update_tag_color,
)

# Recycle Bin Operations
from utils.db.trash import (
    auto_clean_deleted,
    empty_trash,
    fetch_trash_count,
    fetch_trash_items,
    purge_notes,
    restore_notes,
)

__all__ = [
    # Connection
    "DEFAULT_TAG_COLOR",
    "SCHEMA_VERSION",
    "_get_db_path",
    "_init_schema",
    "_ensure_column_on_table",
    "closing_connection",
    "get_connection",
    "migrate_schema",
    "open_store",
    # Schema
    "RowView",
    "SchemaDescriptor",
    "describe_schema",
    "dump_properties",
    "parse_properties",
    # Notes
    "fetch_note",
    "fetch_notes",
    "generate_note_id",
    "insert_note",
    "now_ms",
    "save_note",
    "soft_delete_notes",
    "update_note",
    # Tags
    "add_tag_to_note",
    "delete_tag",
    "fetch_notes_by_tag",
    "fetch_tags",
    "fetch_tags_for_note",
    "insert_tag",
    "remove_tag_from_note",
    "search_tags",
    "text_color_for",
    "update_tag_color",
    # Trash
    "auto_clean_deleted",
    "empty_trash",
    "fetch_trash_count",
    "fetch_trash_items",
    "purge_notes",
    "restore_notes",
]
