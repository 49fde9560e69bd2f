from __future__ import annotations

from envelopes.exceptions import ConflictError, ValidationError


def test_conflict_error_details() -> None:
    details = {"key": "1709283600000", "name": "March"}
    error = ConflictError("A cycle is already open", details)

    assert error.details == details
    assert "already open" in str(error)


def test_validation_error_is_value_error() -> None:
    assert issubclass(ValidationError, ValueError)
