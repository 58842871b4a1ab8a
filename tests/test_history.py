"""Tests for the deployment history store."""

import pytest

from devassist.errors import InvalidReference
from devassist.rules.history import DeploymentHistoryStore
from devassist.storage.database import Database


def test_empty_store_has_no_latest_deployment():
    with Database(":memory:") as db:
        store = DeploymentHistoryStore(db)
        assert store.latest_deployment() is None
        assert store.files_of_latest_deployment() == []
        assert store.latest_file_hashes() == {}
        assert store.history(10) == []


def test_record_writes_deployment_and_files_together():
    with Database(":memory:") as db:
        store = DeploymentHistoryStore(db)
        deployment = store.record(
            "2.0.0",
            {"a.mdc": "h1", "b.mdc": "h2"},
            deployed_by="alice",
            backup_path="/tmp/backups/backup-1",
        )

        assert deployment.file_count == 2
        assert deployment.deployed_by == "alice"
        assert store.latest_deployment() == deployment
        assert store.latest_file_hashes() == {"a.mdc": "h1", "b.mdc": "h2"}


def test_latest_deployment_is_the_newest():
    with Database(":memory:") as db:
        store = DeploymentHistoryStore(db)
        store.record("1.0.0", {"a.mdc": "old"})
        second = store.record("2.0.0", {"a.mdc": "new"})

        assert store.latest_deployment().id == second.id
        assert store.latest_file_hashes() == {"a.mdc": "new"}


def test_two_step_recording():
    with Database(":memory:") as db:
        store = DeploymentHistoryStore(db)
        deployment_id = store.record_deployment("2.0.0", 1, deployed_by="bob")
        store.record_deployed_file(deployment_id, "a.mdc", "h1")

        files = store.files_of(deployment_id)
        assert [(f.filename, f.content_hash) for f in files] == [("a.mdc", "h1")]


def test_record_file_for_unknown_deployment_is_invalid_reference():
    with Database(":memory:") as db:
        store = DeploymentHistoryStore(db)
        with pytest.raises(InvalidReference):
            store.record_deployed_file(999, "a.mdc", "h1")
        assert db.query("SELECT * FROM rule_files") == []


def test_history_is_newest_first_and_bounded():
    with Database(":memory:") as db:
        store = DeploymentHistoryStore(db)
        ids = [store.record(f"1.0.{i}", {"a.mdc": str(i)}).id for i in range(5)]

        recent = store.history(3)
        assert [d.id for d in recent] == list(reversed(ids))[:3]
        assert store.history(0) == []


def test_history_only_grows_and_rows_never_change():
    with Database(":memory:") as db:
        store = DeploymentHistoryStore(db)
        first = store.record("1.0.0", {"a.mdc": "h1"})
        before = store.history(100)

        store.record("1.1.0", {"a.mdc": "h2"})
        after = store.history(100)

        assert len(after) >= len(before)
        assert store.get_deployment(first.id) == first
