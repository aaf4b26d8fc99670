"""Tests for the backup, restore and merge API."""

import sqlite3
from unittest.mock import patch

from utils.db import get_connection, insert_note


def _add_note(db_path, note_id, content, modified):
    conn = get_connection(db_path)
    try:
        insert_note(conn, content, note_id=note_id, created_time=modified)
    finally:
        conn.close()


def _snapshot_name(client):
    return client.get("/api/backups").get_json()["backups"][0]["file_name"]


def test_create_and_list_backups(client):
    response = client.post("/api/backups", json={})
    assert response.status_code == 201

    data = client.get("/api/backups").get_json()
    assert len(data["backups"]) == 1
    assert data["backups"][0]["is_auto"] is False
    assert data["total_size"] == data["backups"][0]["file_size"]


def test_create_backup_failure(client, backup_core):
    with patch.object(backup_core, "create_backup", return_value=False):
        response = client.post("/api/backups")

    assert response.status_code == 500
    assert "error" in response.get_json()


def test_delete_backup(client):
    client.post("/api/backups")
    name = _snapshot_name(client)

    assert client.delete(f"/api/backups/{name}").status_code == 200
    assert client.delete(f"/api/backups/{name}").status_code == 404
    assert client.get("/api/backups").get_json()["backups"] == []


def test_delete_all_backups(client):
    client.post("/api/backups")
    client.post("/api/backups", json={"auto": True})

    data = client.delete("/api/backups").get_json()

    assert data["status"] == "success"
    assert data["result"]["attempted"] == 2
    assert data["result"]["ok"] is True


def test_download_backup_streams_file(client, backup_core):
    client.post("/api/backups")
    name = _snapshot_name(client)

    response = client.get(f"/api/backups/{name}/download")

    assert response.status_code == 200
    assert response.data.startswith(b"SQLite format 3")
    assert name in response.headers["Content-Disposition"]


def test_download_unknown_backup(client):
    response = client.get("/api/backups/notes_backup_nope.db/download")
    assert response.status_code == 404


def test_export_live_database(client):
    response = client.get("/api/export")

    assert response.status_code == 200
    assert response.data.startswith(b"SQLite format 3")
    assert "notes_export_" in response.headers["Content-Disposition"]


def test_restore_backup(client, backup_core):
    _add_note(backup_core.db_path, 1, "snapshot", 1)
    client.post("/api/backups")
    name = _snapshot_name(client)
    _add_note(backup_core.db_path, 2, "later", 2)

    response = client.post(f"/api/backups/{name}/restore")

    assert response.status_code == 200
    assert response.get_json()["restart_required"] is True
    conn = sqlite3.connect(backup_core.db_path)
    try:
        assert [r[0] for r in conn.execute("SELECT id FROM notes")] == [1]
    finally:
        conn.close()
    assert client.get("/api/restore/status").get_json() == {"restart_required": True}


def test_restore_unknown_backup(client):
    assert client.post("/api/backups/notes_backup_nope.db/restore").status_code == 404


def test_merge_backup(client, backup_core):
    _add_note(backup_core.db_path, 1, "snapshot", 1)
    client.post("/api/backups")
    name = _snapshot_name(client)
    conn = get_connection(backup_core.db_path)
    conn.execute("DELETE FROM notes")
    conn.commit()
    conn.close()

    response = client.post(f"/api/backups/{name}/merge", json={"strategy": "keep_backup"})

    assert response.status_code == 200
    result = response.get_json()["result"]
    assert result["success"] is True
    assert result["merged_notes"] == 1


def test_merge_uses_default_strategy(client):
    client.post("/api/backups")
    name = _snapshot_name(client)

    response = client.post(f"/api/backups/{name}/merge")

    assert response.status_code == 200


def test_merge_rejects_unknown_strategy(client):
    client.post("/api/backups")
    name = _snapshot_name(client)

    response = client.post(f"/api/backups/{name}/merge", json={"strategy": "mine"})

    assert response.status_code == 400


def test_restore_status_without_restore(client):
    assert client.get("/api/restore/status").get_json() == {"restart_required": False}
