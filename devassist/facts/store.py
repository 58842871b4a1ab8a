"""Fact memory — categorized, tagged notes about the project.

Facts are plain rows in the shared database. Tags are stored as a JSON
array; tag filters match any of the requested tags.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from devassist.storage.database import Database

logger = logging.getLogger(__name__)


@dataclass
class StoredFact:
    """A single remembered fact."""

    id: int
    category: str
    fact: str
    context: str | None = None
    tags: list[str] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""


class FactStore:
    """CRUD and search over the ``facts`` table."""

    def __init__(self, database: Database):
        self.db = database

    def store_fact(
        self,
        category: str,
        fact: str,
        context: str | None = None,
        tags: Iterable[str] = (),
    ) -> int:
        """Persist a fact and return its id."""
        now = _utc_now()
        with self.db.transaction() as conn:
            cur = conn.execute(
                "INSERT INTO facts (category, fact, context, tags, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (category, fact, context, json.dumps(list(tags)), now, now),
            )
            fact_id = int(cur.lastrowid)
        logger.debug("Stored fact %d in category %s", fact_id, category)
        return fact_id

    def get_facts(
        self,
        category: str | None = None,
        tags: Iterable[str] | None = None,
        search: str | None = None,
        limit: int = 20,
    ) -> list[StoredFact]:
        """Return facts matching every given filter, newest first."""
        sql = "SELECT * FROM facts WHERE 1=1"
        params: list = []

        if category:
            sql += " AND category = ?"
            params.append(category)

        if search:
            sql += " AND (fact LIKE ? ESCAPE '\\' OR context LIKE ? ESCAPE '\\')"
            pattern = f"%{_escape_like(search)}%"
            params.extend([pattern, pattern])

        tag_list = list(tags or [])
        if tag_list:
            sql += " AND (" + " OR ".join("tags LIKE ? ESCAPE '\\'" for _ in tag_list) + ")"
            params.extend(f"%{_escape_like(json.dumps(tag))}%" for tag in tag_list)

        sql += " ORDER BY created_at DESC, id DESC LIMIT ?"
        params.append(limit)

        return [_row_to_fact(r) for r in self.db.query(sql, params)]

    def get_fact(self, fact_id: int) -> StoredFact | None:
        row = self.db.query_one("SELECT * FROM facts WHERE id = ?", (fact_id,))
        return _row_to_fact(row) if row else None

    def update_fact(
        self,
        fact_id: int,
        *,
        category: str | None = None,
        fact: str | None = None,
        context: str | None = None,
        tags: Iterable[str] | None = None,
    ) -> bool:
        """Update the given fields. Returns False if nothing changed or no such fact."""
        fields: list[str] = []
        params: list = []

        if category is not None:
            fields.append("category = ?")
            params.append(category)
        if fact is not None:
            fields.append("fact = ?")
            params.append(fact)
        if context is not None:
            fields.append("context = ?")
            params.append(context)
        if tags is not None:
            fields.append("tags = ?")
            params.append(json.dumps(list(tags)))

        if not fields:
            return False

        fields.append("updated_at = ?")
        params.extend([_utc_now(), fact_id])

        with self.db.transaction() as conn:
            cur = conn.execute(f"UPDATE facts SET {', '.join(fields)} WHERE id = ?", params)
            return cur.rowcount > 0

    def delete_fact(self, fact_id: int) -> bool:
        with self.db.transaction() as conn:
            cur = conn.execute("DELETE FROM facts WHERE id = ?", (fact_id,))
            return cur.rowcount > 0

    def get_categories(self) -> list[str]:
        rows = self.db.query("SELECT DISTINCT category FROM facts ORDER BY category")
        return [r["category"] for r in rows]

    def get_all_tags(self) -> list[str]:
        rows = self.db.query("SELECT DISTINCT tags FROM facts WHERE tags IS NOT NULL")
        all_tags: set[str] = set()
        for row in rows:
            all_tags.update(_parse_tags(row["tags"]))
        return sorted(all_tags)


def _parse_tags(raw: str | None) -> list[str]:
    try:
        tags = json.loads(raw or "[]")
    except json.JSONDecodeError:
        return []
    if not isinstance(tags, list):
        return []
    return [t for t in tags if isinstance(t, str)]


def _row_to_fact(row: sqlite3.Row) -> StoredFact:
    return StoredFact(
        id=row["id"],
        category=row["category"],
        fact=row["fact"],
        context=row["context"],
        tags=_parse_tags(row["tags"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
