# storage.py - Package cache persistence (in-memory and SQLite)
#
# Lookup results are cached per (namespace, key) with a TTL in minutes.
# Entries are never revalidated against the registry while they are fresh.

import os
import json
import sqlite3
import time
from typing import Any, Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


# =============================================================================
# Cache Interface
# =============================================================================

class PackageCache:
    """
    Key/namespace store with TTL.

    get() returns None on a miss; stored values must be JSON serialisable
    and never None themselves.
    """

    def get(self, namespace: str, key: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, namespace: str, key: str, value: Any, ttl_minutes: int) -> None:
        raise NotImplementedError


# =============================================================================
# In-Memory Cache
# =============================================================================

class MemoryCache(PackageCache):
    """Process-local cache, handy for one-shot CLI runs and tests."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: dict[tuple[str, str], tuple[float, str]] = {}

    def get(self, namespace: str, key: str) -> Optional[Any]:
        entry = self._entries.get((namespace, key))
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= self._clock():
            del self._entries[(namespace, key)]
            return None
        return json.loads(value)

    def set(self, namespace: str, key: str, value: Any, ttl_minutes: int) -> None:
        # Stored serialised so callers can't mutate a cached value in place
        expires_at = self._clock() + ttl_minutes * 60
        self._entries[(namespace, key)] = (expires_at, json.dumps(value))


# =============================================================================
# SQLite Cache
# =============================================================================

def init_database(db_path: str) -> sqlite3.Connection:
    """
    Initialize SQLite database with the package cache schema.

    Creates the database file and table if they don't exist.

    Args:
        db_path: Path to SQLite database file

    Returns:
        sqlite3.Connection to the database
    """
    db_dir = os.path.dirname(db_path)
    if db_dir and not os.path.exists(db_dir):
        os.makedirs(db_dir)

    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row

    cursor = conn.cursor()
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS package_cache (
            namespace TEXT NOT NULL,
            key TEXT NOT NULL,
            value TEXT NOT NULL,
            expires_at REAL NOT NULL,
            PRIMARY KEY (namespace, key)
        )
    """)
    conn.commit()
    return conn


class SqliteCache(PackageCache):
    """
    Package cache persisted to SQLite.

    Usage:
        cache = SqliteCache("data/docker-datasource.db")
        cache.set("datasource-docker-labels", key, labels, 60)
        cache.get("datasource-docker-labels", key)
    """

    def __init__(self, db_path: str, clock: Callable[[], float] = time.time):
        self.db_path = db_path
        self._clock = clock
        init_database(db_path).close()

    def _connect(self) -> sqlite3.Connection:
        # schema already created in __init__
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def get(self, namespace: str, key: str) -> Optional[Any]:
        conn = self._connect()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT value, expires_at FROM package_cache WHERE namespace = ? AND key = ?",
                (namespace, key)
            )
            row = cursor.fetchone()
            if row is None:
                return None
            if row["expires_at"] <= self._clock():
                cursor.execute(
                    "DELETE FROM package_cache WHERE namespace = ? AND key = ?",
                    (namespace, key)
                )
                conn.commit()
                logger.debug("package_cache_expired", namespace=namespace, key=key)
                return None
            return json.loads(row["value"])
        finally:
            conn.close()

    def set(self, namespace: str, key: str, value: Any, ttl_minutes: int) -> None:
        expires_at = self._clock() + ttl_minutes * 60
        conn = self._connect()
        try:
            conn.execute("""
                INSERT OR REPLACE INTO package_cache (namespace, key, value, expires_at)
                VALUES (?, ?, ?, ?)
            """, (namespace, key, json.dumps(value), expires_at))
            conn.commit()
        finally:
            conn.close()
