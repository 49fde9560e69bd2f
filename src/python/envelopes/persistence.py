"""Persistence interfaces for envelopes storage backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
import time
from typing import Any


def generate_key() -> str:
    """Return a local clock-based record key (milliseconds since the epoch)."""
    return str(time.time_ns() // 1_000_000)


class PersistenceBackend(ABC):
    """Abstract interface for keyed-record stores.

    Records live in collections addressed by a slash separated path. Every
    record returned by a backend carries its identifier under ``key``.
    """

    @abstractmethod
    def connect(self) -> None:
        """Establish a backend connection."""

    @abstractmethod
    def close(self) -> None:
        """Close the backend connection."""

    @abstractmethod
    def begin_transaction(self) -> None:
        """Start a transaction."""

    @abstractmethod
    def commit(self) -> None:
        """Commit the active transaction."""

    @abstractmethod
    def rollback(self) -> None:
        """Rollback the active transaction."""

    @abstractmethod
    def list_all(self, path: str) -> list[dict[str, Any]]:
        """Return every record of a collection in insertion order."""

    @abstractmethod
    def get_by_id(self, path: str, key: str) -> dict[str, Any] | None:
        """Return a single record, or None when it does not exist."""

    @abstractmethod
    def insert(self, path: str, record: dict[str, Any], key: str | None = None) -> str:
        """Insert a record and return its key, assigning one when not given."""

    @abstractmethod
    def patch(self, path: str, key: str, fields: dict[str, Any]) -> bool:
        """Merge fields into a record. Return False when the record is missing."""

    @abstractmethod
    def delete(self, path: str, key: str) -> bool:
        """Remove a record. Return False when the record is missing."""
