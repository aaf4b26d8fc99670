"""Tests for merging a backup database into the live database."""

import sqlite3

import pytest

from utils.conflict import ConflictStrategy
from utils.db.connection import _init_schema
from utils.merge import MergeResult, merge_databases


def _current_store() -> sqlite3.Connection:
    conn = sqlite3.connect(":memory:")
    _init_schema(conn)
    return conn


def _add_note(conn, note_id, content, modified, created=None, props="{}", deleted=0):
    created = modified if created is None else created
    conn.execute(
        "INSERT INTO notes (id, content, timestamp, created_time, modified_time, "
        "custom_properties, deleted) VALUES (?, ?, ?, ?, ?, ?, ?)",
        (note_id, content, created, created, modified, props, deleted),
    )
    conn.commit()


def _add_tag(conn, name, color):
    cur = conn.execute(
        "INSERT INTO tags (tag_name, tag_color) VALUES (?, ?)", (name, color)
    )
    conn.commit()
    return cur.lastrowid


def _note(conn, note_id):
    return conn.execute(
        "SELECT content, modified_time, custom_properties, deleted FROM notes WHERE id = ?",
        (note_id,),
    ).fetchone()


def _count(conn, table):
    return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


@pytest.fixture
def live():
    conn = _current_store()
    yield conn
    conn.close()


@pytest.fixture
def backup():
    conn = _current_store()
    yield conn
    conn.close()


def test_live_note_wins_and_new_tag_is_inserted(live, backup):
    _add_note(live, 1, "A", modified=100)
    _add_note(backup, 1, "B", modified=50)
    _add_tag(backup, "work", "#111111")

    result = merge_databases(backup, live, ConflictStrategy.KEEP_NEWER)

    assert result.success is True
    assert result.conflicts == 1
    assert result.merged_notes == 0
    assert result.merged_tags == 1
    assert _note(live, 1)[0] == "A"
    color = live.execute(
        "SELECT tag_color FROM tags WHERE tag_name = 'work'"
    ).fetchone()[0]
    assert color == "#111111"
    assert result.message == "Merge complete: 0 notes, 1 tags, 1 conflicts"


def test_keep_newer_takes_newer_backup_note(live, backup):
    _add_note(live, 7, "old", modified=100)
    _add_note(backup, 7, "new", modified=200, props='{"k":"v"}', deleted=1)

    result = merge_databases(backup, live, ConflictStrategy.KEEP_NEWER)

    assert result.success
    assert result.conflicts == 1
    assert result.merged_notes == 1
    content, modified, props, deleted = _note(live, 7)
    assert content == "new"
    assert modified == 200
    assert props == '{"k":"v"}'
    assert deleted == 1


def test_keep_newer_keeps_newer_live_note(live, backup):
    _add_note(live, 7, "live", modified=200)
    _add_note(backup, 7, "backup", modified=100)

    result = merge_databases(backup, live, ConflictStrategy.KEEP_NEWER)

    assert result.merged_notes == 0
    assert result.conflicts == 1
    assert _note(live, 7)[0] == "live"


def test_keep_newer_equal_timestamps_keep_live(live, backup):
    _add_note(live, 7, "live", modified=100)
    _add_note(backup, 7, "backup", modified=100)

    merge_databases(backup, live, ConflictStrategy.KEEP_NEWER)

    assert _note(live, 7)[0] == "live"


@pytest.mark.parametrize("live_modified,backup_modified", [(100, 200), (200, 100)])
def test_keep_current_never_changes_existing_rows(live, backup, live_modified, backup_modified):
    _add_note(live, 1, "live", modified=live_modified)
    _add_note(backup, 1, "backup", modified=backup_modified)
    _add_tag(live, "work", "#000000")
    _add_tag(backup, "work", "#FFFFFF")

    result = merge_databases(backup, live, ConflictStrategy.KEEP_CURRENT)

    assert result.success
    assert result.conflicts == 2
    assert result.merged_notes == 0
    assert result.merged_tags == 0
    assert _note(live, 1)[0] == "live"
    assert live.execute("SELECT tag_color FROM tags").fetchone()[0] == "#000000"


@pytest.mark.parametrize("live_modified,backup_modified", [(100, 200), (200, 100)])
def test_keep_backup_always_takes_incoming(live, backup, live_modified, backup_modified):
    _add_note(live, 1, "live", modified=live_modified)
    _add_note(backup, 1, "backup", modified=backup_modified)

    result = merge_databases(backup, live, ConflictStrategy.KEEP_BACKUP)

    assert result.merged_notes == 1
    assert _note(live, 1)[0] == "backup"


def test_keep_newer_takes_backup_tag_colour(live, backup):
    _add_tag(live, "work", "#000000")
    _add_tag(backup, "work", "#FFFFFF")

    result = merge_databases(backup, live, "keep_newer")

    assert result.conflicts == 1
    assert result.merged_tags == 1
    assert live.execute("SELECT tag_color FROM tags").fetchone()[0] == "#FFFFFF"
    assert _count(live, "tags") == 1


def test_new_note_is_inserted_with_backup_fields(live, backup):
    _add_note(backup, 42, "hello", modified=300, created=250, props='{"a":"1"}')

    result = merge_databases(backup, live, ConflictStrategy.KEEP_NEWER)

    assert result.merged_notes == 1
    assert result.conflicts == 0
    row = live.execute(
        "SELECT content, created_time, modified_time, custom_properties, deleted "
        "FROM notes WHERE id = 42"
    ).fetchone()
    assert row == ("hello", 250, 300, '{"a":"1"}', 0)


def test_second_merge_of_same_backup_changes_nothing(live, backup):
    _add_tag(live, "home", "#000000")
    _add_tag(backup, "home", "#FFFFFF")
    _add_tag(backup, "work", "#111111")
    _add_note(backup, 1, "note", modified=10)

    first = merge_databases(backup, live, ConflictStrategy.KEEP_NEWER)
    second = merge_databases(backup, live, ConflictStrategy.KEEP_NEWER)

    assert first.merged_tags == 2
    assert first.conflicts == 1
    assert second.merged_tags == 0
    assert second.merged_notes == 0
    assert _count(live, "tags") == 2


def test_second_merge_of_tags_only_backup_has_no_conflicts(live, backup):
    _add_tag(backup, "home", "#FFFFFF")
    _add_tag(backup, "work", "#111111")

    first = merge_databases(backup, live, ConflictStrategy.KEEP_NEWER)
    second = merge_databases(backup, live, ConflictStrategy.KEEP_NEWER)

    assert first.merged_tags == 2
    assert first.conflicts == 0
    assert second.success
    assert second.conflicts == 0
    assert second.merged_tags == 0
    assert _count(live, "tags") == 2


def test_backup_without_custom_properties_column():
    live = _current_store()
    backup = sqlite3.connect(":memory:")
    backup.execute(
        "CREATE TABLE notes (id INTEGER PRIMARY KEY, content TEXT, timestamp INTEGER)"
    )
    backup.execute("INSERT INTO notes VALUES (5, 'legacy', 1234)")
    backup.commit()

    result = merge_databases(backup, live, ConflictStrategy.KEEP_NEWER)

    assert result.success
    assert result.merged_notes == 1
    row = live.execute(
        "SELECT content, created_time, modified_time, custom_properties, deleted "
        "FROM notes WHERE id = 5"
    ).fetchone()
    assert row == ("legacy", 1234, 1234, "{}", 0)


def test_legacy_tags_without_colour_get_default_and_no_conflicts(live):
    backup = sqlite3.connect(":memory:")
    backup.execute(
        "CREATE TABLE tags (tag_id INTEGER PRIMARY KEY AUTOINCREMENT, tag_name TEXT UNIQUE)"
    )
    backup.execute("INSERT INTO tags (tag_name) VALUES ('work'), ('home')")
    backup.commit()
    _add_tag(live, "home", "#123456")

    result = merge_databases(backup, live, ConflictStrategy.KEEP_BACKUP)

    assert result.success
    assert result.merged_tags == 1
    assert result.conflicts == 0
    colors = dict(live.execute("SELECT tag_name, tag_color FROM tags").fetchall())
    assert colors == {"home": "#123456", "work": "#6200EE"}


def test_malformed_properties_become_empty_map(live, backup):
    _add_note(backup, 3, "x", modified=1, props="{not json")

    result = merge_databases(backup, live, ConflictStrategy.KEEP_NEWER)

    assert result.success
    assert _note(live, 3)[2] == "{}"


def test_existing_association_is_not_duplicated(live, backup):
    for conn in (live, backup):
        _add_note(conn, 1, "n", modified=1)
        _add_tag(conn, "a", "#000000")
        tag_id = _add_tag(conn, "b", "#000000")
        conn.execute("INSERT INTO note_tags VALUES (1, ?)", (tag_id,))
        conn.commit()
    assert _count(live, "note_tags") == 1

    result = merge_databases(backup, live, ConflictStrategy.KEEP_NEWER)

    assert result.success
    assert result.merged_associations == 0
    assert _count(live, "note_tags") == 1


def test_new_association_is_added(live, backup):
    _add_note(live, 1, "n", modified=1)
    _add_note(backup, 1, "n", modified=1)
    _add_tag(live, "a", "#000000")
    tag_id = _add_tag(backup, "a", "#000000")
    backup.execute("INSERT INTO note_tags VALUES (1, ?)", (tag_id,))
    backup.commit()

    result = merge_databases(backup, live, ConflictStrategy.KEEP_NEWER)

    assert result.merged_associations == 1
    assert live.execute("SELECT note_id, tag_id FROM note_tags").fetchall() == [(1, 1)]


def test_association_rejected_by_foreign_keys_is_skipped(backup):
    live = _current_store()
    live.execute("PRAGMA foreign_keys=ON")
    backup.execute("INSERT INTO note_tags VALUES (99, 99)")
    backup.commit()

    result = merge_databases(backup, live, ConflictStrategy.KEEP_NEWER)

    assert result.success
    assert result.merged_associations == 0
    assert _count(live, "note_tags") == 0


def test_table_missing_in_backup_is_skipped(live):
    backup = sqlite3.connect(":memory:")
    backup.execute("CREATE TABLE unrelated (x INTEGER)")
    backup.commit()
    _add_note(live, 1, "keep", modified=1)

    result = merge_databases(backup, live, ConflictStrategy.KEEP_BACKUP)

    assert result.success
    assert result == MergeResult(True, "Merge complete: 0 notes, 0 tags, 0 conflicts")
    assert _note(live, 1)[0] == "keep"


def test_failure_rolls_back_and_reports_cause(live, backup):
    _add_tag(backup, "work", "#111111")
    _add_note(backup, 1, "x", modified=1)
    # A live notes table that rejects every insert.
    live.execute("CREATE TRIGGER no_notes BEFORE INSERT ON notes BEGIN SELECT RAISE(ABORT, 'boom'); END")
    live.commit()

    result = merge_databases(backup, live, ConflictStrategy.KEEP_NEWER)

    assert result.success is False
    assert result.message.startswith("Merge failed:")
    assert "boom" in result.message
    assert _count(live, "tags") == 0


def test_unknown_strategy_yields_failed_result(live, backup):
    result = merge_databases(backup, live, "newest_wins")

    assert result.success is False
    assert "Unknown conflict strategy" in result.message
