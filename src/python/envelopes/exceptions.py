"""Custom exception types for envelopes."""

from __future__ import annotations

from typing import Any


class ValidationError(ValueError):
    """Raised when input is malformed or a required field is missing."""


class NotFoundError(Exception):
    """Raised when a requested period or expense does not exist."""


class StorageError(Exception):
    """Raised when the underlying store fails to read or write."""


class ConflictError(Exception):
    """Raised when a period is opened while another one is still open."""

    def __init__(self, message: str, details: dict[str, Any]) -> None:
        super().__init__(message)
        self.details = details
