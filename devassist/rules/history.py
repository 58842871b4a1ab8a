"""Deployment history — the append-only audit log of rule deployments.

Every successful write of the rule bundle creates one deployment row plus one
file row per rule written, holding the content hash that was deployed. Rows
are never updated or deleted (the schema enforces it); a correction is simply
a newer deployment.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone

from devassist.errors import InvalidReference, StorageUnavailable
from devassist.storage.database import Database

logger = logging.getLogger(__name__)

_LATEST_ORDER = "ORDER BY deployed_at DESC, id DESC"


@dataclass(frozen=True)
class Deployment:
    """One recorded write of the full rule bundle."""

    id: int
    template_version: str
    deployed_at: str
    deployed_by: str | None = None
    file_count: int = 0
    backup_path: str | None = None


@dataclass(frozen=True)
class DeployedFileRecord:
    """The hash of one rule file as written by a deployment."""

    id: int
    deployment_id: int
    filename: str
    content_hash: str
    recorded_at: str


class DeploymentHistoryStore:
    """Records and queries rule deployments in the shared database."""

    def __init__(self, database: Database):
        self.db = database

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_deployment(
        self,
        template_version: str,
        file_count: int,
        deployed_by: str | None = None,
        backup_path: str | None = None,
    ) -> int:
        """Append a deployment row and return its id."""
        with self.db.transaction() as conn:
            return self._insert_deployment(
                conn, template_version, file_count, deployed_by, backup_path
            )

    def record_deployed_file(self, deployment_id: int, filename: str, content_hash: str) -> None:
        """Append one file record under an existing deployment."""
        with self.db.transaction() as conn:
            self._insert_file(conn, deployment_id, filename, content_hash)

    def record(
        self,
        template_version: str,
        file_hashes: Mapping[str, str],
        deployed_by: str | None = None,
        backup_path: str | None = None,
        before_commit: Callable[[], None] | None = None,
    ) -> Deployment:
        """Record a deployment and all of its files as one transaction.

        Readers never see the deployment without its file records.
        ``before_commit`` runs after the rows are inserted but before they
        are committed; if it raises, the rows are rolled back.
        """
        with self.db.transaction() as conn:
            deployment_id = self._insert_deployment(
                conn, template_version, len(file_hashes), deployed_by, backup_path
            )
            for filename, content_hash in file_hashes.items():
                self._insert_file(conn, deployment_id, filename, content_hash)
            if before_commit is not None:
                before_commit()

        deployment = self.get_deployment(deployment_id)
        if deployment is None:
            raise StorageUnavailable(f"Deployment {deployment_id} vanished after commit")
        logger.info(
            "Recorded deployment %d (v%s, %d files)",
            deployment.id, deployment.template_version, deployment.file_count,
        )
        return deployment

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def latest_deployment(self) -> Deployment | None:
        """The most recent deployment, or None before the first one."""
        row = self.db.query_one(f"SELECT * FROM rule_deployments {_LATEST_ORDER} LIMIT 1")
        return _row_to_deployment(row) if row else None

    def files_of_latest_deployment(self) -> list[DeployedFileRecord]:
        latest = self.latest_deployment()
        if latest is None:
            return []
        return self.files_of(latest.id)

    def latest_file_hashes(self) -> dict[str, str]:
        """Map filename → hash for the latest deployment (empty if none)."""
        return {r.filename: r.content_hash for r in self.files_of_latest_deployment()}

    def files_of(self, deployment_id: int) -> list[DeployedFileRecord]:
        rows = self.db.query(
            "SELECT * FROM rule_files WHERE deployment_id = ? ORDER BY id",
            (deployment_id,),
        )
        return [_row_to_file(r) for r in rows]

    def get_deployment(self, deployment_id: int) -> Deployment | None:
        row = self.db.query_one(
            "SELECT * FROM rule_deployments WHERE id = ?", (deployment_id,)
        )
        return _row_to_deployment(row) if row else None

    def history(self, limit: int = 20) -> list[Deployment]:
        """Deployments newest first, at most ``limit`` of them."""
        if limit <= 0:
            return []
        rows = self.db.query(
            f"SELECT * FROM rule_deployments {_LATEST_ORDER} LIMIT ?", (limit,)
        )
        return [_row_to_deployment(r) for r in rows]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _insert_deployment(
        self,
        conn: sqlite3.Connection,
        template_version: str,
        file_count: int,
        deployed_by: str | None,
        backup_path: str | None,
    ) -> int:
        cur = conn.execute(
            "INSERT INTO rule_deployments "
            "(template_version, deployed_at, deployed_by, file_count, backup_path) "
            "VALUES (?, ?, ?, ?, ?)",
            (template_version, _utc_now(), deployed_by, file_count, backup_path),
        )
        return int(cur.lastrowid)

    def _insert_file(
        self,
        conn: sqlite3.Connection,
        deployment_id: int,
        filename: str,
        content_hash: str,
    ) -> None:
        exists = conn.execute(
            "SELECT 1 FROM rule_deployments WHERE id = ?", (deployment_id,)
        ).fetchone()
        if exists is None:
            raise InvalidReference(f"No deployment with id {deployment_id}")
        conn.execute(
            "INSERT INTO rule_files (deployment_id, filename, content_hash, recorded_at) "
            "VALUES (?, ?, ?, ?)",
            (deployment_id, filename, content_hash, _utc_now()),
        )


def _row_to_deployment(row: sqlite3.Row) -> Deployment:
    return Deployment(
        id=row["id"],
        template_version=row["template_version"],
        deployed_at=row["deployed_at"],
        deployed_by=row["deployed_by"],
        file_count=row["file_count"],
        backup_path=row["backup_path"],
    )


def _row_to_file(row: sqlite3.Row) -> DeployedFileRecord:
    return DeployedFileRecord(
        id=row["id"],
        deployment_id=row["deployment_id"],
        filename=row["filename"],
        content_hash=row["content_hash"],
        recorded_at=row["recorded_at"],
    )


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")
