"""Backups — snapshot managed rule files before they are overwritten.

Snapshots live next to the rules they protect::

    .cursor/rules/
    ├── code-style.mdc
    ├── ...
    └── backups/
        └── backup-2026-10-19T16-08-01-123456+00-00/
            ├── code-style.mdc
            └── ...

A snapshot is written once and never touched again. A failed copy leaves
the partial snapshot in place and raises BackupFailed.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from pathlib import Path

from devassist.errors import BackupFailed

logger = logging.getLogger(__name__)

BACKUP_DIR = "backups"
BACKUP_PREFIX = "backup-"


class BackupManager:
    """Creates timestamped snapshot directories of managed files."""

    def __init__(self, clock: Callable[[], datetime] | None = None):
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def backup(self, source_dir: str | Path, filenames: Iterable[str]) -> Path | None:
        """Copy ``filenames`` from ``source_dir`` into a fresh snapshot directory.

        Returns the snapshot path, or None when there is nothing to back up.

        Raises:
            BackupFailed: If the snapshot directory or any copy fails.
        """
        names = list(filenames)
        if not names:
            return None

        source = Path(source_dir)
        try:
            snapshot = self._create_snapshot_dir(source / BACKUP_DIR)
        except OSError as e:
            raise BackupFailed(f"Cannot create backup directory under {source}: {e}") from e

        for name in names:
            try:
                shutil.copy2(source / name, snapshot / name)
            except OSError as e:
                raise BackupFailed(
                    f"Backup of {name} into {snapshot} failed: {e}"
                ) from e

        logger.info("Backed up %d file(s) to %s", len(names), snapshot)
        return snapshot

    def list_backups(self, source_dir: str | Path) -> list[Path]:
        """Existing snapshot directories, newest first."""
        root = Path(source_dir) / BACKUP_DIR
        if not root.is_dir():
            return []
        return sorted(
            (p for p in root.iterdir() if p.is_dir() and p.name.startswith(BACKUP_PREFIX)),
            key=lambda p: p.name,
            reverse=True,
        )

    def _create_snapshot_dir(self, backups_root: Path) -> Path:
        backups_root.mkdir(parents=True, exist_ok=True)
        stamp = self._clock().isoformat(timespec="microseconds")
        base = BACKUP_PREFIX + stamp.replace(":", "-").replace(".", "-")

        candidate = backups_root / base
        suffix = 0
        while True:
            try:
                candidate.mkdir()
                return candidate
            except FileExistsError:
                suffix += 1
                candidate = backups_root / f"{base}-{suffix}"
