# logging_config.py
import logging

from config import get_config

config = get_config()
DEBUG_MODE = config["DEBUG_MODE"]

# Configure logging once for the entire application.
logging.basicConfig(
    level=logging.DEBUG if DEBUG_MODE else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Request lines from the development server only in debug mode.
logging.getLogger("werkzeug").setLevel(logging.INFO if DEBUG_MODE else logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Returns a logger for a NoteSafe module (web layer entry point).
    """
    return logging.getLogger(name)
