"""SQLite handle shared by the fact store and the deployment history store.

There is no module-level connection: callers open a ``Database`` explicitly
and pass it to the stores that need it::

    with Database(settings.database_path) as db:
        history = DeploymentHistoryStore(db)
        ...
    # connection closed here, even on error

Opening the handle applies any pending schema migrations.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from devassist.errors import StorageUnavailable
from devassist.storage.migrations import BOOTSTRAP, MIGRATIONS, Migration

logger = logging.getLogger(__name__)


class Database:
    """A single SQLite connection with migration and transaction helpers.

    Access is serialized with a re-entrant lock so the file watcher's
    observer thread can share the handle with the request thread.
    """

    def __init__(self, path: str | Path, migrations: Sequence[Migration] = MIGRATIONS):
        self.path = Path(path)
        self._migrations = sorted(migrations, key=lambda m: m.version)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> "Database":
        """Connect and migrate. Safe to call on an already open handle."""
        if self._conn is not None:
            return self
        try:
            if str(self.path) != ":memory:":
                self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                str(self.path), isolation_level=None, check_same_thread=False
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
        except (OSError, sqlite3.Error) as e:
            raise StorageUnavailable(f"Cannot open database {self.path}: {e}") from e

        self._conn = conn
        try:
            self.migrate()
        except StorageUnavailable:
            self.close()
            raise
        logger.debug("Database opened at %s (schema v%d)", self.path, self.schema_version())
        return self

    def close(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            try:
                self._conn.close()
            finally:
                self._conn = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageUnavailable(f"Database {self.path} is not open")
        return self._conn

    # ------------------------------------------------------------------
    # Migrations
    # ------------------------------------------------------------------

    def schema_version(self) -> int:
        row = self.query_one("SELECT MAX(version) AS version FROM schema_migrations")
        return (row["version"] or 0) if row else 0

    def migrate(self) -> list[int]:
        """Apply pending migrations in order. Returns the versions applied."""
        with self.transaction() as conn:
            conn.execute(BOOTSTRAP)

        current = self.schema_version()
        applied: list[int] = []
        for migration in self._migrations:
            if migration.version <= current:
                continue
            with self.transaction() as conn:
                for stmt in migration.statements:
                    conn.execute(stmt)
                conn.execute(
                    "INSERT INTO schema_migrations (version, description, applied_at) "
                    "VALUES (?, ?, ?)",
                    (migration.version, migration.description, _utc_now()),
                )
            logger.info("Applied migration %d: %s", migration.version, migration.description)
            applied.append(migration.version)
        return applied

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block atomically: commit on success, roll back on error.

        sqlite3 errors are re-raised as StorageUnavailable; other exceptions
        propagate unchanged after the rollback.
        """
        with self._lock:
            conn = self.connection
            try:
                conn.execute("BEGIN")
                yield conn
                conn.commit()
            except sqlite3.Error as e:
                _rollback(conn)
                raise StorageUnavailable(f"Database write failed: {e}") from e
            except BaseException:
                _rollback(conn)
                raise

    def query(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        with self._lock:
            try:
                return self.connection.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StorageUnavailable(f"Database read failed: {e}") from e

    def query_one(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Row | None:
        rows = self.query(sql, params)
        return rows[0] if rows else None


def _rollback(conn: sqlite3.Connection) -> None:
    try:
        conn.rollback()
    except sqlite3.Error:
        logger.warning("Rollback failed", exc_info=True)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()
