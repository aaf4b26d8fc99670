"""Shared fixtures: an isolated data directory wired into the app singletons."""

import pytest
from flask import Flask

from core import backup_restore_core
from utils import path_manager
from utils.backup import SnapshotStore
from utils.db.connection import get_connection


@pytest.fixture
def pm(tmp_path, monkeypatch):
    manager = path_manager.PathManager(tmp_path / "data")
    monkeypatch.setattr(path_manager, "_instance", manager)
    return manager


@pytest.fixture
def backup_core(pm, monkeypatch):
    db_path = pm.get_db_path()
    get_connection(db_path).close()
    core = backup_restore_core.BackupRestoreCore(
        db_path, SnapshotStore(pm.get_backup_dir(), db_path), path_manager=pm
    )
    monkeypatch.setattr(backup_restore_core, "_instance", core)
    return core


@pytest.fixture
def app(backup_core):
    app = Flask(__name__)
    app.config["TESTING"] = True

    from web.blueprints.backup import backup_bp
    from web.blueprints.trash import trash_bp

    app.register_blueprint(backup_bp)
    app.register_blueprint(trash_bp)
    return app


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client
