"""Result store interface and SQLite implementation."""

import json
import sqlite3
import threading
import time
from pathlib import Path
from typing import Any, Protocol, Self


class ResultStore(Protocol):
    """Keyed document store with whole-document upsert.

    Documents are CorrelationResult.to_dict() payloads; each carries its
    "accountId" so that all of an account's results can be removed.
    """

    def get(self, key: str) -> dict[str, Any] | None: ...

    def put(self, key: str, document: dict[str, Any]) -> None: ...

    def delete(self, key: str) -> bool: ...

    def delete_account(self, account_id: str) -> int: ...


class SQLiteResultStore:
    """Stores correlation results in a SQLite database.

    One row per key; put() replaces the whole row, so the last writer wins.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the store with database path.

        Args:
            db_path: Path to SQLite database file. Parent directories
                     will be created if they don't exist.
        """
        self._db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self.ensure_schema()

    def ensure_schema(self) -> None:
        """Create the vibe_history table if it doesn't exist."""
        with self._lock:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS vibe_history (
                    key TEXT PRIMARY KEY,
                    account_id TEXT NOT NULL,
                    repo_full_name TEXT NOT NULL,
                    document TEXT NOT NULL,
                    analyzed_at TEXT,
                    updated_at INTEGER
                )
            """)
            self._conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_vibe_history_account ON vibe_history(account_id)"
            )
            self._conn.commit()

    def get(self, key: str) -> dict[str, Any] | None:
        """Get the stored document for a key.

        Args:
            key: Result key

        Returns:
            Decoded document if found, None otherwise
        """
        with self._lock:
            row = self._conn.execute(
                "SELECT document FROM vibe_history WHERE key = ?",
                (key,),
            ).fetchone()
        if row is None:
            return None
        return json.loads(row["document"])

    def put(self, key: str, document: dict[str, Any]) -> None:
        """Insert or replace the document for a key."""
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO vibe_history (key, account_id, repo_full_name, document, analyzed_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    account_id = excluded.account_id,
                    repo_full_name = excluded.repo_full_name,
                    document = excluded.document,
                    analyzed_at = excluded.analyzed_at,
                    updated_at = excluded.updated_at
                """,
                (
                    key,
                    document.get("accountId", ""),
                    document.get("repoFullName", ""),
                    json.dumps(document),
                    document.get("analyzedAt"),
                    int(time.time()),
                ),
            )
            self._conn.commit()

    def delete(self, key: str) -> bool:
        """Delete the document for a key.

        Returns:
            True if a document was removed
        """
        with self._lock:
            cursor = self._conn.execute("DELETE FROM vibe_history WHERE key = ?", (key,))
            self._conn.commit()
        return cursor.rowcount > 0

    def delete_account(self, account_id: str) -> int:
        """Delete every document belonging to an account.

        Returns:
            Number of documents removed
        """
        with self._lock:
            cursor = self._conn.execute("DELETE FROM vibe_history WHERE account_id = ?", (account_id,))
            self._conn.commit()
        return cursor.rowcount

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> Self:
        """Enter context manager."""
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        """Exit context manager, closing database connection."""
        self.close()
