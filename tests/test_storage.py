"""Tests for the package cache backends."""

from __future__ import annotations

import sqlite3

import pytest

from docker_datasource.modules.keepers import MemoryCache, SqliteCache, init_database

NAMESPACE = "datasource-docker-labels"


@pytest.fixture(params=["memory", "sqlite"])
def cache(request, tmp_path, clock):
    if request.param == "memory":
        return MemoryCache(clock=clock)
    return SqliteCache(str(tmp_path / "cache.db"), clock=clock)


def test_miss_returns_none(cache) -> None:
    assert cache.get(NAMESPACE, "missing") is None


def test_value_fresh_until_ttl(cache, clock) -> None:
    cache.set(NAMESPACE, "key", {"maintainer": "team"}, 60)

    clock.advance(59)
    assert cache.get(NAMESPACE, "key") == {"maintainer": "team"}

    clock.advance(1)
    assert cache.get(NAMESPACE, "key") is None


def test_empty_mapping_is_a_hit(cache) -> None:
    cache.set(NAMESPACE, "key", {}, 60)

    assert cache.get(NAMESPACE, "key") == {}


def test_namespaces_are_separate(cache) -> None:
    cache.set(NAMESPACE, "key", {"a": "1"}, 60)

    assert cache.get("other-namespace", "key") is None


def test_set_overwrites(cache) -> None:
    cache.set(NAMESPACE, "key", {"a": "1"}, 60)
    cache.set(NAMESPACE, "key", {"a": "2"}, 60)

    assert cache.get(NAMESPACE, "key") == {"a": "2"}


def test_memory_cache_returns_copies(clock) -> None:
    cache = MemoryCache(clock=clock)
    cache.set(NAMESPACE, "key", {"a": "1"}, 60)

    cache.get(NAMESPACE, "key")["a"] = "mutated"

    assert cache.get(NAMESPACE, "key") == {"a": "1"}


def test_init_database_creates_parent_directory(tmp_path) -> None:
    db_path = tmp_path / "nested" / "dir" / "cache.db"

    conn = init_database(str(db_path))
    conn.close()

    assert db_path.exists()


def test_sqlite_cache_persists_across_instances(tmp_path, clock) -> None:
    db_path = str(tmp_path / "cache.db")
    SqliteCache(db_path, clock=clock).set(NAMESPACE, "key", {"a": "1"}, 60)

    assert SqliteCache(db_path, clock=clock).get(NAMESPACE, "key") == {"a": "1"}


def test_sqlite_cache_deletes_expired_rows(tmp_path, clock) -> None:
    db_path = str(tmp_path / "cache.db")
    cache = SqliteCache(db_path, clock=clock)
    cache.set(NAMESPACE, "key", {"a": "1"}, 60)

    clock.advance(61)
    assert cache.get(NAMESPACE, "key") is None

    conn = sqlite3.connect(db_path)
    try:
        count = conn.execute("SELECT COUNT(*) FROM package_cache").fetchone()[0]
    finally:
        conn.close()
    assert count == 0
