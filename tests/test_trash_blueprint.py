"""Tests for the recycle bin API."""

import sqlite3
from unittest.mock import patch

from utils.db import get_connection, insert_note, soft_delete_notes
from utils.db.trash import DAY_MS


def _seed(db_path, deleted_ids=(1, 2)):
    conn = get_connection(db_path)
    try:
        for note_id in (1, 2, 3):
            insert_note(conn, f"note {note_id}", note_id=note_id, created_time=note_id)
        soft_delete_notes(conn, list(deleted_ids))
    finally:
        conn.close()


def _ids(db_path, deleted):
    conn = get_connection(db_path)
    try:
        rows = conn.execute(
            "SELECT id FROM notes WHERE deleted = ? ORDER BY id", (deleted,)
        ).fetchall()
        return [r[0] for r in rows]
    finally:
        conn.close()


def test_trash_list(client, backup_core):
    _seed(backup_core.db_path)

    data = client.get("/api/trash?limit=1").get_json()

    assert data["total_items"] == 2
    assert data["total_pages"] == 2
    assert len(data["items"]) == 1


def test_trash_list_rejects_bad_limit(client):
    assert client.get("/api/trash?limit=0").status_code == 400


def test_trash_restore(client, backup_core):
    _seed(backup_core.db_path)

    response = client.post("/api/trash/restore", json={"ids": [1]})

    assert response.status_code == 200
    assert response.get_json()["result"]["restored"] == 1
    assert _ids(backup_core.db_path, 1) == [2]


def test_trash_restore_requires_ids(client):
    assert client.post("/api/trash/restore", json={}).status_code == 400
    assert client.post("/api/trash/restore", json={"ids": ["x"]}).status_code == 400


def test_trash_purge(client, backup_core):
    _seed(backup_core.db_path)

    response = client.post("/api/trash/purge", json={"ids": [1, 3]})

    assert response.get_json()["result"]["rows_deleted"] == 1
    assert _ids(backup_core.db_path, 0) == [3]
    assert _ids(backup_core.db_path, 1) == [2]


def test_trash_empty(client, backup_core):
    _seed(backup_core.db_path)

    response = client.post("/api/trash/empty")

    assert response.get_json()["result"]["rows_deleted"] == 2
    assert _ids(backup_core.db_path, 1) == []


def test_trash_auto_clean(client, backup_core):
    _seed(backup_core.db_path)
    conn = get_connection(backup_core.db_path)
    conn.execute("UPDATE notes SET modified_time = ? WHERE id = 1", (10 * DAY_MS,))
    conn.commit()
    conn.close()

    response = client.post("/api/trash/auto-clean", json={"retention_days": 30})

    assert response.status_code == 200
    assert response.get_json()["result"]["rows_deleted"] == 1
    assert _ids(backup_core.db_path, 1) == [2]


def test_trash_auto_clean_rejects_negative_days(client):
    response = client.post("/api/trash/auto-clean", json={"retention_days": -1})
    assert response.status_code == 400


def test_trash_purge_failure_leaves_notes_in_place(client, backup_core):
    _seed(backup_core.db_path)

    with patch(
        "core.notes_core._purge_notes", side_effect=sqlite3.OperationalError("locked")
    ):
        response = client.post("/api/trash/purge", json={"ids": [1]})

    assert response.status_code == 500
    assert "locked" in response.get_json()["message"]
    assert _ids(backup_core.db_path, 1) == [1, 2]
