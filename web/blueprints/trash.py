"""
Trash Blueprint.

Handles all recycle bin routes:
- GET /api/trash - List soft-deleted notes (paginated)
- POST /api/trash/restore - Restore notes from the recycle bin
- POST /api/trash/purge - Permanently delete specific notes
- POST /api/trash/empty - Empty the entire recycle bin
- POST /api/trash/auto-clean - Remove notes older than the retention window
"""

import math

from flask import Blueprint, jsonify, request

from logging_config import get_logger
from web.services import backup_restore_service, notes_service

logger = get_logger(__name__)

trash_bp = Blueprint("trash", __name__)


def _note_ids(data) -> list[int] | None:
    """Extracts `ids` from the request body; None when missing or not integers."""
    if not isinstance(data, dict):
        return None
    ids = data.get("ids")
    if not isinstance(ids, list):
        return None
    try:
        return [int(i) for i in ids]
    except (TypeError, ValueError):
        return None


@trash_bp.route("/api/trash", methods=["GET"])
def trash_list():
    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", 50, type=int)
    if limit <= 0:
        return jsonify({"error": "limit must be positive"}), 400

    with notes_service.closing_connection() as conn:
        items, total_count = notes_service.fetch_trash_items(conn, page=page, limit=limit)

    return jsonify(
        {
            "items": items,
            "page": page,
            "total_pages": math.ceil(total_count / limit),
            "total_items": total_count,
        }
    )


@trash_bp.route("/api/trash/restore", methods=["POST"])
def trash_restore():
    """
    Restores notes from the recycle bin.
    Accepts: { ids: [...] }
    """
    ids = _note_ids(request.get_json(silent=True) or {})
    if ids is None:
        return jsonify({"error": "ids (list of note ids) required"}), 400
    try:
        with notes_service.closing_connection() as conn:
            restored = notes_service.restore_notes(conn, ids)
        return jsonify({"status": "success", "result": {"restored": restored}})
    except Exception as e:
        logger.error(f"Error restoring trash: {e}")
        return jsonify({"status": "error", "message": str(e)}), 500


@trash_bp.route("/api/trash/purge", methods=["POST"])
def trash_purge():
    """
    Permanently deletes notes from the recycle bin.
    Accepts: { ids: [...] }
    """
    ids = _note_ids(request.get_json(silent=True) or {})
    if ids is None:
        return jsonify({"error": "ids (list of note ids) required"}), 400
    try:
        with notes_service.closing_connection() as conn:
            purged = notes_service.purge_notes(conn, ids)
        logger.info(f"Trash purge: {purged} notes deleted")
        return jsonify({"status": "success", "result": {"rows_deleted": purged}})
    except Exception as e:
        logger.error(f"Error purging trash: {e}")
        return jsonify({"status": "error", "message": str(e)}), 500


@trash_bp.route("/api/trash/empty", methods=["POST"])
def trash_empty():
    try:
        with notes_service.closing_connection() as conn:
            purged = notes_service.empty_trash(conn)
        return jsonify({"status": "success", "result": {"rows_deleted": purged}})
    except Exception as e:
        logger.error(f"Error emptying trash: {e}")
        return jsonify({"status": "error", "message": str(e)}), 500


@trash_bp.route("/api/trash/auto-clean", methods=["POST"])
def trash_auto_clean():
    """
    Removes notes deleted longer ago than the retention window.
    Accepts: { retention_days: int } (optional, defaults to config)
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    try:
        retention_days = int(
            data.get("retention_days", notes_service.get_retention_days())
        )
    except (TypeError, ValueError):
        return jsonify({"error": "retention_days must be an integer"}), 400
    if retention_days < 0:
        return jsonify({"error": "retention_days must be >= 0"}), 400

    try:
        removed = backup_restore_service.auto_clean_deleted(retention_days)
        return jsonify({"status": "success", "result": {"rows_deleted": removed}})
    except Exception as e:
        logger.error(f"Error during auto-clean: {e}")
        return jsonify({"status": "error", "message": str(e)}), 500
