"""Tests for the backup manager."""

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

from devassist.errors import BackupFailed
from devassist.rules.backup import BACKUP_DIR, BACKUP_PREFIX, BackupManager


def _fixed_clock():
    return datetime(2026, 3, 1, 12, 30, 45, 123456, tzinfo=timezone.utc)


def test_nothing_to_back_up_returns_none():
    with tempfile.TemporaryDirectory() as tmpdir:
        assert BackupManager().backup(tmpdir, []) is None
        assert not (Path(tmpdir) / BACKUP_DIR).exists()


def test_backup_copies_files_verbatim():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "a.mdc").write_text("edited by hand")
        (root / "b.mdc").write_text("original")

        snapshot = BackupManager(clock=_fixed_clock).backup(root, ["a.mdc", "b.mdc"])

        assert snapshot.parent == root / BACKUP_DIR
        assert snapshot.name == f"{BACKUP_PREFIX}2026-03-01T12-30-45-123456+00-00"
        assert (snapshot / "a.mdc").read_text() == "edited by hand"
        assert (snapshot / "b.mdc").read_text() == "original"


def test_same_instant_gets_a_distinct_snapshot():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "a.mdc").write_text("x")
        manager = BackupManager(clock=_fixed_clock)

        first = manager.backup(root, ["a.mdc"])
        second = manager.backup(root, ["a.mdc"])

        assert first != second
        assert second.name == first.name + "-1"
        assert manager.list_backups(root)[0] == second


def test_missing_source_file_raises_backup_failed():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(BackupFailed):
            BackupManager().backup(tmpdir, ["missing.mdc"])


@pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0, reason="needs POSIX permissions as non-root")
def test_unwritable_backup_root_raises_backup_failed():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "a.mdc").write_text("x")
        (root / BACKUP_DIR).mkdir()
        os.chmod(root / BACKUP_DIR, 0o500)
        try:
            with pytest.raises(BackupFailed):
                BackupManager().backup(root, ["a.mdc"])
        finally:
            os.chmod(root / BACKUP_DIR, 0o700)
