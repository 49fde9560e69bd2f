"""Shared CLI helpers."""

from __future__ import annotations

from contextlib import contextmanager
import datetime as dt
from decimal import Decimal
from typing import Iterator

import click

from envelopes.client import EnvelopeClient
from envelopes.exceptions import ConflictError, NotFoundError, StorageError, ValidationError
from envelopes.ledger import Ledger
from envelopes.models import PeriodRecord


def parse_date(value: str | None, field_name: str) -> dt.date | None:
    """Parse an ISO date string into a date."""
    if value is None:
        return None
    try:
        return dt.date.fromisoformat(value)
    except ValueError as exc:
        raise click.BadParameter("Use YYYY-MM-DD format.", param_hint=field_name) from exc


def get_client(ctx: click.Context) -> EnvelopeClient:
    """Build an envelopes client from Click context."""
    payload = ctx.obj or {}
    try:
        return EnvelopeClient(
            db_path=payload.get("db_path"),
            owner_id=payload.get("owner_id"),
        )
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc


@contextmanager
def domain_errors(label: str) -> Iterator[None]:
    """Report domain errors as Click errors, leaving stored state unchanged."""
    try:
        yield
    except ValidationError as exc:
        raise click.ClickException(f"{label} failed: {exc}") from exc
    except NotFoundError as exc:
        raise click.ClickException(f"{label} failed: {exc}") from exc
    except ConflictError as exc:
        raise click.ClickException(
            f"{label} failed: {exc} ({exc.details['name']!r}, id {exc.details['key']}). "
            "Close it first."
        ) from exc
    except StorageError as exc:
        raise click.ClickException(f"{label} failed: storage error: {exc}") from exc


def resolve_period_id(ledger: Ledger, period_id: str | None) -> str:
    """Use the given period id, or the current open period when omitted."""
    if period_id:
        return period_id
    current = ledger.get_current()
    if current is None:
        raise click.ClickException(
            f"No open {ledger.kind.name}. Pass --period or open a new {ledger.kind.name}."
        )
    return current.key


def format_amount(amount: Decimal) -> str:
    """Format an amount with thousands separators and two decimals."""
    return f"{amount:,.2f}"


def format_period_line(period: PeriodRecord) -> str:
    """Format a period as a tab separated line."""
    start = period.start_date.isoformat() if period.start_date else ""
    end = period.end_date.isoformat() if period.end_date else "open"
    return (
        f"{period.key}\t{period.name}\t{start}\t{end}\t"
        f"{format_amount(period.initial_amount)}\t{format_amount(period.total_spent)}\t"
        f"{format_amount(period.remaining_amount)}"
    )
