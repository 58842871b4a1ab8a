"""Ordered schema migrations for the dev-assistant database.

Each migration runs once, inside its own transaction, and is recorded in
``schema_migrations``. Statements are written with ``IF NOT EXISTS`` so a
migration re-applied against a half-migrated file is harmless.

Append new migrations to the end of MIGRATIONS; never edit a released one.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Migration:
    """One versioned schema step."""

    version: int
    description: str
    statements: tuple[str, ...] = field(default_factory=tuple)


BOOTSTRAP = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version INTEGER PRIMARY KEY,
    description TEXT NOT NULL,
    applied_at TEXT NOT NULL
)
"""

MIGRATIONS: list[Migration] = [
    Migration(
        version=1,
        description="facts table",
        statements=(
            """
            CREATE TABLE IF NOT EXISTS facts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                category TEXT NOT NULL,
                fact TEXT NOT NULL,
                context TEXT,
                tags TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """,
            "CREATE INDEX IF NOT EXISTS idx_facts_category ON facts(category)",
            "CREATE INDEX IF NOT EXISTS idx_facts_created_at ON facts(created_at)",
        ),
    ),
    Migration(
        version=2,
        description="rule deployment history",
        statements=(
            """
            CREATE TABLE IF NOT EXISTS rule_deployments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                template_version TEXT NOT NULL,
                deployed_at TEXT NOT NULL,
                deployed_by TEXT,
                file_count INTEGER NOT NULL,
                backup_path TEXT
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS rule_files (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                deployment_id INTEGER NOT NULL REFERENCES rule_deployments(id),
                filename TEXT NOT NULL,
                content_hash TEXT NOT NULL,
                recorded_at TEXT NOT NULL,
                UNIQUE (deployment_id, filename)
            )
            """,
            "CREATE INDEX IF NOT EXISTS idx_rule_deployments_deployed_at "
            "ON rule_deployments(deployed_at, id)",
            "CREATE INDEX IF NOT EXISTS idx_rule_files_deployment ON rule_files(deployment_id)",
        ),
    ),
    Migration(
        version=3,
        description="append-only guards on deployment history",
        statements=tuple(
            f"""
            CREATE TRIGGER IF NOT EXISTS {table}_no_{verb.lower()}
            BEFORE {verb} ON {table}
            BEGIN
                SELECT RAISE(ABORT, '{table} is append-only');
            END
            """
            for table in ("rule_deployments", "rule_files")
            for verb in ("UPDATE", "DELETE")
        ),
    ),
]

LATEST_VERSION = MIGRATIONS[-1].version
