"""File watcher — track recent changes in the project tree.

Uses watchdog to observe the project directory. Changes are kept in a
bounded, newest-first buffer; notable ones (new files, config edits) are
also stored as facts so they survive restarts.
"""

from __future__ import annotations

import logging
import re
import threading
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from devassist.errors import DevAssistError
from devassist.facts.store import FactStore
from devassist.utils.file_scanner import IgnoreRules

logger = logging.getLogger(__name__)

CHANGE_TYPES = ("added", "changed", "removed")

SIGNIFICANT_EXTENSIONS = {
    ".ts", ".js", ".tsx", ".jsx", ".vue", ".svelte", ".py", ".java",
    ".cpp", ".c", ".cs", ".go", ".rs", ".md", ".json", ".yaml", ".yml",
    ".toml", ".sql", ".graphql", ".proto",
}

_CONFIG_FILE_RE = re.compile(
    r"\.(config|rc)\.|package\.json|tsconfig|pyproject\.toml|webpack|babel|eslint|prettier"
)


@dataclass
class FileChange:
    """One observed change, with a project-relative path."""

    path: str
    type: str
    timestamp: str
    size: int | None = None

    def to_dict(self) -> dict:
        return asdict(self)


class _ChangeHandler(FileSystemEventHandler):
    """Translates watchdog events into FileWatcher records."""

    def __init__(self, watcher: FileWatcher):
        self.watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.watcher.record(event.src_path, "added")

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.watcher.record(event.src_path, "changed")

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.watcher.record(event.src_path, "removed")

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.watcher.record(event.src_path, "removed")
            self.watcher.record(event.dest_path, "added")


class FileWatcher:
    """Watches a project directory and keeps a buffer of recent changes.

    The buffer is safe to read from other threads while the observer runs.
    """

    def __init__(
        self,
        project_path: str | Path,
        facts: FactStore | None = None,
        max_recent_changes: int = 100,
    ):
        self.project_path = Path(project_path).resolve()
        self.facts = facts
        self.max_recent_changes = max_recent_changes
        self.ignore_rules = IgnoreRules.for_project(self.project_path)
        self._changes: deque[FileChange] = deque(maxlen=max_recent_changes)
        self._lock = threading.Lock()
        self._observer: Observer | None = None

    @property
    def running(self) -> bool:
        return self._observer is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._observer is not None:
            self.stop()

        observer = Observer()
        observer.schedule(_ChangeHandler(self), str(self.project_path), recursive=True)
        observer.start()
        self._observer = observer
        logger.info("File watcher started for %s", self.project_path)

    def stop(self) -> None:
        """Stop the observer and join its thread."""
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None
        logger.info("File watcher stopped for %s", self.project_path)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record(self, file_path: str | Path, change_type: str) -> FileChange | None:
        """Record a change to ``file_path``. Returns None if it is ignored."""
        if change_type not in CHANGE_TYPES:
            raise ValueError(f"Unknown change type: {change_type}")

        path = Path(file_path)
        if not path.is_absolute():
            path = self.project_path / path
        try:
            relative = path.relative_to(self.project_path).as_posix()
        except ValueError:
            return None
        if self.ignore_rules.ignores(relative):
            return None

        size = None
        if change_type != "removed":
            try:
                size = path.stat().st_size
            except OSError:
                pass

        change = FileChange(
            path=relative,
            type=change_type,
            timestamp=datetime.now(timezone.utc).isoformat(timespec="microseconds"),
            size=size,
        )
        with self._lock:
            self._changes.appendleft(change)

        logger.debug("%s %s", change_type, relative)
        self._remember(change)
        return change

    def _remember(self, change: FileChange) -> None:
        if self.facts is None:
            return

        ext = Path(change.path).suffix.lower()
        if ext not in SIGNIFICANT_EXTENSIONS:
            return

        if change.type == "added":
            category = "new-files"
            fact = f"New {ext} file created: {change.path}"
        elif _CONFIG_FILE_RE.search(change.path):
            category = "config-changes"
            fact = f"Configuration file modified: {change.path}"
        else:
            return

        try:
            self.facts.store_fact(
                category,
                fact,
                f"Detected at {change.timestamp}",
                ["auto-detected", "file-system", ext[1:]],
            )
        except DevAssistError as e:
            # Runs on the observer thread; there is no caller to report to
            logger.error("Failed to store file change fact: %s", e)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_recent_changes(self, limit: int | None = None) -> list[FileChange]:
        with self._lock:
            changes = list(self._changes)
        return changes[: limit or self.max_recent_changes]

    def get_changes_since(self, timestamp: str | datetime) -> list[FileChange]:
        since = _parse_timestamp(timestamp)
        return [c for c in self.get_recent_changes() if _parse_timestamp(c.timestamp) > since]

    def get_changes_for_file(self, file_path: str) -> list[FileChange]:
        wanted = Path(file_path).as_posix()
        return [c for c in self.get_recent_changes() if c.path == wanted]

    def clear_recent_changes(self) -> None:
        with self._lock:
            self._changes.clear()


def _parse_timestamp(value: str | datetime) -> datetime:
    dt = value if isinstance(value, datetime) else datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
