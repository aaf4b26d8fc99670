"""
Backup Blueprint.

Handles backup, restore and merge routes:
- GET /api/backups - List snapshots and backup directory size
- POST /api/backups - Create a snapshot
- DELETE /api/backups - Delete all snapshots
- DELETE /api/backups/<name> - Delete one snapshot
- GET /api/backups/<name>/download - Stream a snapshot file
- GET /api/export - Stream a consistent copy of the live database
- POST /api/backups/<name>/restore - Replace the live database with a snapshot
- POST /api/backups/<name>/merge - Merge a snapshot into the live database
- GET /api/restore/status - Restart-required state after a restore
"""

import itertools
from datetime import datetime

from flask import Blueprint, Response, jsonify, request
from werkzeug.utils import secure_filename

from logging_config import get_logger
from web.services import backup_restore_service

logger = get_logger(__name__)

backup_bp = Blueprint("backup", __name__)


def _stream_response(chunks, filename: str) -> Response:
    """
    Wraps a byte generator as a file download.
    The first chunk is pulled eagerly so a missing source fails before headers are sent.
    """
    first = next(chunks, b"")
    return Response(
        itertools.chain([first], chunks),
        mimetype="application/x-sqlite3",
        headers={
            "Content-Disposition": f"attachment; filename={secure_filename(filename)}",
            "Cache-Control": "no-cache",
        },
    )


def _not_found(name: str):
    return jsonify({"error": f"Backup not found: {name}"}), 404


@backup_bp.route("/api/backups", methods=["GET"])
def backups_list():
    """Returns all snapshots (newest first) and the backup directory size."""
    try:
        return jsonify(backup_restore_service.list_backups())
    except Exception as e:
        logger.error(f"Backup list error: {e}")
        return jsonify({"error": str(e)}), 500


@backup_bp.route("/api/backups", methods=["POST"])
def backups_create():
    data = request.get_json(silent=True) or {}
    is_auto = bool(data.get("auto", False))
    if not backup_restore_service.create_backup(is_auto=is_auto):
        return jsonify({"error": "Failed to create backup"}), 500
    return jsonify({"status": "success"}), 201


@backup_bp.route("/api/backups", methods=["DELETE"])
def backups_delete_all():
    """Deletes every snapshot. Partial failures are reported, not fatal."""
    outcome = backup_restore_service.delete_all_backups()
    return jsonify({"status": "success" if outcome["ok"] else "partial", "result": outcome})


@backup_bp.route("/api/backups/<name>", methods=["DELETE"])
def backups_delete(name):
    snapshot = backup_restore_service.get_backup(name)
    if snapshot is None:
        return _not_found(name)
    if not backup_restore_service.delete_backup(snapshot):
        return jsonify({"error": f"Failed to delete backup: {name}"}), 500
    return jsonify({"status": "success"})


@backup_bp.route("/api/backups/<name>/download", methods=["GET"])
def backups_download(name):
    snapshot = backup_restore_service.get_backup(name)
    if snapshot is None:
        return _not_found(name)
    try:
        chunks = backup_restore_service.stream_backup(snapshot)
        return _stream_response(chunks, snapshot.file_name)
    except OSError as e:
        logger.error(f"Backup download error: {e}")
        return jsonify({"error": str(e)}), 500


@backup_bp.route("/api/export", methods=["GET"])
def export_database():
    """Streams a consistent copy of the live database as an attachment."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    try:
        chunks = backup_restore_service.stream_backup()
        return _stream_response(chunks, f"notes_export_{timestamp}.db")
    except FileNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        logger.error(f"Export error: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@backup_bp.route("/api/backups/<name>/restore", methods=["POST"])
def backups_restore(name):
    """
    Replaces the live database with a snapshot.
    A safety backup is taken first; the app should be restarted afterwards.
    """
    snapshot = backup_restore_service.get_backup(name)
    if snapshot is None:
        return _not_found(name)

    replaced, outcome = backup_restore_service.restore_backup(snapshot)
    if not replaced:
        return jsonify({"error": "Restore failed", "result": outcome}), 500

    logger.info(f"Restore: live database replaced from {name}")
    return jsonify(
        {
            "status": "success",
            "restart_required": True,
            "result": outcome,
        }
    )


@backup_bp.route("/api/backups/<name>/merge", methods=["POST"])
def backups_merge(name):
    """
    Merges a snapshot into the live database.
    Accepts: { strategy: "keep_current" | "keep_backup" | "keep_newer" } (optional)
    """
    data = request.get_json(silent=True) or {}
    snapshot = backup_restore_service.get_backup(name)
    if snapshot is None:
        return _not_found(name)

    try:
        result = backup_restore_service.merge_backup(snapshot, data.get("strategy"))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    if not result["success"]:
        return jsonify({"error": result["message"], "result": result}), 500
    return jsonify({"status": "success", "result": result})


@backup_bp.route("/api/restore/status", methods=["GET"])
def restore_status():
    """Returns whether a restore happened since the last start."""
    return jsonify({"restart_required": backup_restore_service.is_restart_required()})
