"""Tests for the SQLite handle and schema migrations."""

import tempfile
from pathlib import Path

import pytest

from devassist.errors import StorageUnavailable
from devassist.storage.database import Database
from devassist.storage.migrations import LATEST_VERSION, MIGRATIONS, Migration


def test_open_creates_file_and_applies_all_migrations():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "nested" / "dev.db"
        with Database(path) as db:
            assert path.exists()
            assert db.schema_version() == LATEST_VERSION
            tables = {r["name"] for r in db.query("SELECT name FROM sqlite_master WHERE type = 'table'")}
            assert {"facts", "rule_deployments", "rule_files", "schema_migrations"} <= tables


def test_migrate_is_idempotent():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "dev.db"
        with Database(path):
            pass
        with Database(path) as db:
            assert db.migrate() == []
            rows = db.query("SELECT version FROM schema_migrations ORDER BY version")
            assert [r["version"] for r in rows] == [m.version for m in MIGRATIONS]


def test_new_migration_applies_on_reopen():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "dev.db"
        with Database(path):
            pass

        extra = Migration(
            version=LATEST_VERSION + 1,
            description="notes table",
            statements=("CREATE TABLE IF NOT EXISTS notes (id INTEGER PRIMARY KEY)",),
        )
        with Database(path, migrations=[*MIGRATIONS, extra]) as db:
            assert db.schema_version() == LATEST_VERSION + 1


def test_history_tables_reject_update_and_delete():
    with Database(":memory:") as db:
        with db.transaction() as conn:
            conn.execute(
                "INSERT INTO rule_deployments (template_version, deployed_at, file_count) "
                "VALUES ('1.0.0', '2026-01-01T00:00:00+00:00', 0)"
            )

        with pytest.raises(StorageUnavailable):
            with db.transaction() as conn:
                conn.execute("UPDATE rule_deployments SET template_version = '9.9.9'")

        with pytest.raises(StorageUnavailable):
            with db.transaction() as conn:
                conn.execute("DELETE FROM rule_deployments")

        row = db.query_one("SELECT template_version FROM rule_deployments")
        assert row["template_version"] == "1.0.0"


def test_transaction_rolls_back_on_error():
    with Database(":memory:") as db:
        with pytest.raises(RuntimeError):
            with db.transaction() as conn:
                conn.execute(
                    "INSERT INTO facts (category, fact, tags, created_at, updated_at) "
                    "VALUES ('c', 'f', '[]', 'now', 'now')"
                )
                raise RuntimeError("boom")
        assert db.query("SELECT * FROM facts") == []


def test_closed_database_raises_storage_unavailable():
    db = Database(":memory:")
    with pytest.raises(StorageUnavailable):
        db.query("SELECT 1")


def test_unopenable_path_raises_storage_unavailable():
    with tempfile.TemporaryDirectory() as tmpdir:
        # A directory cannot be opened as a database file
        with pytest.raises(StorageUnavailable):
            Database(Path(tmpdir)).open()
