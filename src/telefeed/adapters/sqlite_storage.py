"""SQLite storage adapter.

Implements the core SeenStorePort using a simple SQLite database.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
import sqlite3
from typing import Iterator

from telefeed.core.errors import StoreUnavailable

# Seconds a connection waits for another writer before giving up.
BUSY_TIMEOUT = 30.0


class SQLiteSeenStore:
    """Thin SQLite wrapper that satisfies the SeenStorePort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside a transaction, closing it afterwards.

        Any SQLite failure (missing directory, lock timeout, corrupt file,
        permission denied) surfaces as StoreUnavailable.
        """

        try:
            conn = sqlite3.connect(self._db_path, timeout=BUSY_TIMEOUT)
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Cannot open store {self._db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Store {self._db_path} failed: {e}") from e
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - feeds: one row per feed namespace
        - seen_entries: links already delivered, keyed by (feed_name, link)
        """

        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS feeds (
                    feed_name TEXT PRIMARY KEY,
                    created_at TIMESTAMP NOT NULL
                )
                """
            )
            # seen_entries is the delivery receipt log. Fields:
            # - feed_name: namespace the link belongs to
            # - link: entry link, the per-feed identity
            # - snapshot: JSON of the entry as delivered, for auditing only
            # - recorded_at: UTC time of the (latest) successful delivery
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS seen_entries (
                    feed_name TEXT NOT NULL,
                    link TEXT NOT NULL,
                    snapshot TEXT NOT NULL,
                    recorded_at TIMESTAMP NOT NULL,
                    PRIMARY KEY (feed_name, link)
                )
                """
            )

    def ensure_namespace(self, feed_name: str) -> None:
        """Create the feed namespace if it is missing."""

        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO feeds (feed_name, created_at) VALUES (?, ?)",
                (feed_name, now.isoformat()),
            )

    def contains(self, feed_name: str, link: str) -> bool:
        """Check if a link has already been delivered for a feed."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM seen_entries WHERE feed_name = ? AND link = ?",
                (feed_name, link),
            ).fetchone()
        return row is not None

    def record(self, feed_name: str, link: str, snapshot: str) -> None:
        """Upsert a delivery receipt; repeating it for the same key is harmless."""

        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO feeds (feed_name, created_at) VALUES (?, ?)",
                (feed_name, now.isoformat()),
            )
            conn.execute(
                """
                INSERT INTO seen_entries (feed_name, link, snapshot, recorded_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(feed_name, link) DO UPDATE SET
                    snapshot = excluded.snapshot,
                    recorded_at = excluded.recorded_at
                """,
                (feed_name, link, snapshot, now.isoformat()),
            )

    def count(self, feed_name: str) -> int:
        """Return the number of delivered links recorded for a feed."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS total FROM seen_entries WHERE feed_name = ?",
                (feed_name,),
            ).fetchone()
        return int(row["total"])
