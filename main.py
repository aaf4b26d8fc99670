# ------------------------------------------------------------------------------
# Main Script for the NoteSafe Backup & Merge Service
# main.py
# ------------------------------------------------------------------------------
import json

from config import get_config

config = get_config()
from logging_config import get_logger

logger = get_logger(__name__)

from core.backup_restore_core import get_backup_core

# --------------------------------------------------------------------------
# Configuration Parameters
# --------------------------------------------------------------------------
_debug = config["DEBUG_MODE"]

logger.info(f"Debug mode is {'enabled' if _debug else 'disabled'}.")
logger.info(f"Configuration: {json.dumps(config, indent=2)}")

# -----------------------------
# Startup Maintenance
# -----------------------------
backup_core = get_backup_core()

# A fresh start picks up any database swapped in by a restore.
if backup_core.is_restart_required():
    logger.info("Previous restore detected, starting on the restored database.")
backup_core.clear_restart_required()

if backup_core.db_path.exists():
    backup_core.migrate_database()

if config["AUTO_CLEAN_ON_START"]:
    try:
        backup_core.auto_clean_deleted(config["RECYCLE_RETENTION_DAYS"])
    except ValueError as e:
        logger.warning(f"Recycle bin auto-clean skipped: {e}")

# -----------------------------
# Import and Run the Web Interface
# -----------------------------
from web.web_interface import create_web_interface

# Expose the Flask server as the WSGI app.
interface = create_web_interface()
app = interface["server"]

if __name__ == "__main__":
    try:
        interface["run"](debug=_debug)
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt received. Shutting down.")
