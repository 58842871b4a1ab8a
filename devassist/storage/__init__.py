"""Storage — the explicit SQLite handle and its versioned schema."""

from devassist.storage.database import Database
from devassist.storage.migrations import LATEST_VERSION, MIGRATIONS, Migration

__all__ = ["Database", "LATEST_VERSION", "MIGRATIONS", "Migration"]
