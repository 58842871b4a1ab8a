"""Tests for the fact store."""

from devassist.facts.store import FactStore
from devassist.storage.database import Database


def test_store_and_recall():
    with Database(":memory:") as db:
        store = FactStore(db)
        fact_id = store.store_fact("architecture", "Uses SQLite for persistence", "decided early", ["db"])

        fact = store.get_fact(fact_id)
        assert fact.category == "architecture"
        assert fact.context == "decided early"
        assert fact.tags == ["db"]
        assert fact.created_at == fact.updated_at


def test_filters_combine():
    with Database(":memory:") as db:
        store = FactStore(db)
        store.store_fact("architecture", "Uses SQLite", tags=["db"])
        store.store_fact("architecture", "Uses click for the CLI", tags=["cli"])
        store.store_fact("decisions", "SQLite over Postgres", tags=["db"])

        assert len(store.get_facts(category="architecture")) == 2
        assert [f.fact for f in store.get_facts(category="architecture", tags=["db"])] == ["Uses SQLite"]
        assert len(store.get_facts(search="sqlite")) == 2


def test_tag_filter_matches_any_tag_exactly():
    with Database(":memory:") as db:
        store = FactStore(db)
        store.store_fact("c", "one", tags=["api"])
        store.store_fact("c", "two", tags=["api-v2"])
        store.store_fact("c", "three", tags=["cli"])

        found = {f.fact for f in store.get_facts(tags=["api", "cli"])}
        assert found == {"one", "three"}


def test_wildcards_in_filters_match_literally():
    with Database(":memory:") as db:
        store = FactStore(db)
        store.store_fact("c", "set max_retries to 3", tags=["retry_policy"])
        store.store_fact("c", "set maxXretries to 3", tags=["retryXpolicy"])
        store.store_fact("c", "coverage is 100% now", tags=["a\\b"])

        assert [f.fact for f in store.get_facts(search="max_retries")] == ["set max_retries to 3"]
        assert [f.fact for f in store.get_facts(tags=["retry_policy"])] == ["set max_retries to 3"]
        assert [f.fact for f in store.get_facts(search="100%")] == ["coverage is 100% now"]
        assert [f.fact for f in store.get_facts(tags=["a\\b"])] == ["coverage is 100% now"]


def test_newest_first_and_limit():
    with Database(":memory:") as db:
        store = FactStore(db)
        for i in range(5):
            store.store_fact("c", f"fact {i}")

        recent = store.get_facts(limit=2)
        assert [f.fact for f in recent] == ["fact 4", "fact 3"]


def test_update_fact():
    with Database(":memory:") as db:
        store = FactStore(db)
        fact_id = store.store_fact("c", "old")

        assert store.update_fact(fact_id) is False
        assert store.update_fact(fact_id, fact="new", tags=["t"]) is True
        assert store.update_fact(999, fact="nope") is False

        fact = store.get_fact(fact_id)
        assert fact.fact == "new"
        assert fact.tags == ["t"]
        assert fact.updated_at >= fact.created_at


def test_delete_fact():
    with Database(":memory:") as db:
        store = FactStore(db)
        fact_id = store.store_fact("c", "gone soon")
        assert store.delete_fact(fact_id)
        assert store.get_fact(fact_id) is None
        assert not store.delete_fact(fact_id)


def test_categories_and_tags():
    with Database(":memory:") as db:
        store = FactStore(db)
        store.store_fact("b", "x", tags=["two", "one"])
        store.store_fact("a", "y", tags=["one"])

        assert store.get_categories() == ["a", "b"]
        assert store.get_all_tags() == ["one", "two"]
