"""SQLite repository implementation for envelopes."""

from __future__ import annotations

from pathlib import Path
import json
import logging
import sqlite3
from typing import Any

from envelopes.exceptions import StorageError
from envelopes.persistence import PersistenceBackend, generate_key
from envelopes.schema import RECORD_TABLE_DDL

logger = logging.getLogger(__name__)


class Repository(PersistenceBackend):
    """SQLite-backed keyed-record store.

    Each record is a JSON payload in the ``Record`` table, addressed by its
    collection path and key. The autoincrement ``seq`` column preserves
    insertion order for ``list_all``.
    """

    def __init__(self, db_path: str | Path) -> None:
        """Create a repository for the given database path."""
        self.db_path = Path(db_path)
        self.connection: sqlite3.Connection | None = None

    def connect(self) -> None:
        """Open the database connection and create the schema if needed."""
        if self.connection is None:
            try:
                self.connection = sqlite3.connect(self.db_path, isolation_level=None)
                self.connection.row_factory = sqlite3.Row
                self.connection.execute(RECORD_TABLE_DDL)
            except sqlite3.Error as exc:
                logger.error("Failed to open %s: %s", self.db_path, exc)
                raise StorageError(f"Cannot open database {self.db_path}") from exc

    def close(self) -> None:
        """Close the database connection."""
        if self.connection is not None:
            self.connection.close()
            self.connection = None

    def begin_transaction(self) -> None:
        """Begin a database transaction."""
        self._execute("BEGIN")

    def commit(self) -> None:
        """Commit the current transaction."""
        self._ensure_connection()
        if self.connection.in_transaction:
            self._execute("COMMIT")

    def rollback(self) -> None:
        """Rollback the current transaction."""
        self._ensure_connection()
        if self.connection.in_transaction:
            self._execute("ROLLBACK")

    def list_all(self, path: str) -> list[dict[str, Any]]:
        """Return records of a collection ordered by insertion."""
        rows = self._execute(
            "SELECT key, payload FROM Record WHERE collection = ? ORDER BY seq",
            (path,),
        ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def get_by_id(self, path: str, key: str) -> dict[str, Any] | None:
        """Fetch a single record by key."""
        row = self._execute(
            "SELECT key, payload FROM Record WHERE collection = ? AND key = ?",
            (path, key),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_record(row)

    def insert(self, path: str, record: dict[str, Any], key: str | None = None) -> str:
        """Insert a new record and return its key."""
        record_key = key or self._next_key(path)
        payload = {name: value for name, value in record.items() if name != "key"}
        self._execute(
            "INSERT INTO Record (collection, key, payload) VALUES (?, ?, ?)",
            (path, record_key, json.dumps(payload)),
        )
        return record_key

    def patch(self, path: str, key: str, fields: dict[str, Any]) -> bool:
        """Merge fields into an existing record."""
        current = self.get_by_id(path, key)
        if current is None:
            return False
        current.pop("key", None)
        current.update(fields)
        self._execute(
            "UPDATE Record SET payload = ? WHERE collection = ? AND key = ?",
            (json.dumps(current), path, key),
        )
        return True

    def delete(self, path: str, key: str) -> bool:
        """Delete a record by key."""
        cursor = self._execute(
            "DELETE FROM Record WHERE collection = ? AND key = ?",
            (path, key),
        )
        return cursor.rowcount > 0

    def _next_key(self, path: str) -> str:
        """Return a clock-based key that is unused in the collection."""
        key = generate_key()
        while self.get_by_id(path, key) is not None:
            key = str(int(key) + 1)
        return key

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> dict[str, Any]:
        try:
            payload = json.loads(row["payload"])
        except json.JSONDecodeError as exc:
            raise StorageError(f"Corrupt payload for record {row['key']}") from exc
        payload["key"] = row["key"]
        return payload

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        self._ensure_connection()
        try:
            return self.connection.execute(sql, params)
        except sqlite3.Error as exc:
            logger.error("SQLite statement failed: %s", exc)
            raise StorageError(str(exc)) from exc

    def _ensure_connection(self) -> None:
        """Ensure the connection is initialized before use."""
        if self.connection is None:
            raise RuntimeError("Repository connection is not initialized")
