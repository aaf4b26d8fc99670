# ------------------------------------------------------------------------------
# web_interface.py
# ------------------------------------------------------------------------------

from flask import Flask, jsonify

from config import get_config
from logging_config import get_logger
from web.blueprints.backup import backup_bp
from web.blueprints.trash import trash_bp

logger = get_logger(__name__)


def create_web_interface():
    """
    Creates and returns the Flask server for the local backup API.

    Returns a dict with:
      - server: the Flask app (usable as a WSGI app)
      - run: function starting the development server
    """
    config = get_config()

    server = Flask(__name__)
    server.json.sort_keys = False

    server.register_blueprint(backup_bp)
    server.register_blueprint(trash_bp)

    @server.route("/api/health")
    def health():
        return jsonify({"status": "ok"})

    # -----------------------------
    # Function to Start the Web Interface
    # -----------------------------
    def run(debug=False, host=None, port=None):
        host = host or config["WEB_HOST"]
        port = port or config["WEB_PORT"]
        logger.info(f"Starting Flask server on http://{host}:{port}")
        server.run(host=host, port=port, debug=debug)

    return {"server": server, "run": run}
