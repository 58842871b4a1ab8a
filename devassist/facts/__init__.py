"""Fact memory — persistent notes about the project, searchable by category, tag and text."""

from devassist.facts.store import FactStore, StoredFact

__all__ = ["FactStore", "StoredFact"]
