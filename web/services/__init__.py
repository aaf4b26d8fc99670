"""
NoteSafe Services Package.

This package contains service layer modules that encapsulate business logic,
separating it from Flask routes for better testability and maintainability.

ARCHITECTURE RULE:
- Services may ONLY import from core/* modules
- Services MUST NOT import directly from utils/
"""

from web.services import backup_restore_service, notes_service

__all__ = [
    "backup_restore_service",
    "notes_service",
]
