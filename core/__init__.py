"""
NoteSafe Core Package.

This package contains the core business logic of the application,
separated from the web layer. All database, backup and merge operations
are coordinated through core modules.

ARCHITECTURE RULES:
- core/ modules may only import from:
  - Python standard library
  - utils/ (storage, snapshot and merge primitives)
  - config (for global configuration)

- core/ modules MUST NOT import from:
  - web/ (no Flask dependencies)
  - flask, werkzeug, or any web-specific packages
"""

__all__ = [
    "backup_restore_core",
    "notes_core",
]
