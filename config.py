# config.py
import os

from dotenv import load_dotenv

from utils.settings import load_settings_yaml, save_settings_yaml

# Load environment variables from .env file.
load_dotenv()

# Keys that may be overridden at runtime through settings.yaml.
RUNTIME_KEYS = frozenset(
    [
        "RECYCLE_RETENTION_DAYS",
        "DEFAULT_CONFLICT_STRATEGY",
        "MAX_AUTO_BACKUPS",
        "AUTO_CLEAN_ON_START",
    ]
)

_config = None


def _env_int(name, default):
    try:
        return int(float(os.getenv(name, default)))
    except (TypeError, ValueError):
        return default


def _env_bool(name, default):
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() == "true"


def load_config():
    """
    Loads configuration from environment variables and returns a dictionary.
    """
    config = {
        # General Settings
        "DEBUG_MODE": _env_bool("DEBUG_MODE", False),
        "DATA_DIR": os.getenv("DATA_DIR", "data"),
        "DB_FILENAME": os.getenv("DB_FILENAME", "notes.db"),
        "BACKUP_DIR_NAME": os.getenv("BACKUP_DIR_NAME", "database_backups"),

        # Recycle Bin
        "RECYCLE_RETENTION_DAYS": _env_int("RECYCLE_RETENTION_DAYS", 30),
        "AUTO_CLEAN_ON_START": _env_bool("AUTO_CLEAN_ON_START", True),

        # Backup & Merge
        "DEFAULT_CONFLICT_STRATEGY": os.getenv("DEFAULT_CONFLICT_STRATEGY", "keep_newer"),
        "MAX_AUTO_BACKUPS": _env_int("MAX_AUTO_BACKUPS", 0),

        # Web Interface
        "WEB_HOST": os.getenv("WEB_HOST", "127.0.0.1"),
        "WEB_PORT": _env_int("WEB_PORT", 8060),
    }
    return config


def get_config():
    """
    Returns the cached configuration with runtime overrides from settings.yaml applied.
    """
    global _config
    if _config is None:
        config = load_config()
        overrides = load_settings_yaml(config["DATA_DIR"])
        for key, value in overrides.items():
            if key in RUNTIME_KEYS:
                config[key] = value
        _config = config
    return _config


def update_runtime_settings(updates):
    """
    Persists runtime overrides to settings.yaml and applies them to the cached config.
    Keys outside RUNTIME_KEYS raise ValueError.
    """
    unknown = set(updates) - RUNTIME_KEYS
    if unknown:
        raise ValueError(f"Not a runtime setting: {', '.join(sorted(unknown))}")

    config = get_config()
    current = load_settings_yaml(config["DATA_DIR"])
    current.update(updates)
    save_settings_yaml(current, config["DATA_DIR"])
    config.update(updates)
    return config


def reset_config_cache():
    """Drops the cached configuration (used by tests that patch the environment)."""
    global _config
    _config = None


if __name__ == "__main__":
    # For testing purposes, print the configuration
    config = load_config()
    from pprint import pprint

    pprint(config)
