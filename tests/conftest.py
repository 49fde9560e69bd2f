"""Pytest configuration and fixtures.

Integration tests run the ledger against a throwaway SQLite store in the
pytest temporary directory, or against an in-memory fake of the REST API.
"""
from __future__ import annotations

import datetime as dt
from pathlib import Path
import sys

import pytest

SRC_DIR = Path(__file__).resolve().parents[1] / "src" / "python"
ROOT_DIR = Path(__file__).resolve().parents[1]

for entry in (SRC_DIR, ROOT_DIR):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))

from envelopes.ledger import CYCLE, TRIP, Ledger, LedgerContext, OpenPolicy  # noqa: E402
from envelopes.repository import Repository  # noqa: E402
from tests.utils.clock import SteppingClock  # noqa: E402

CLOCK_START = dt.datetime(2026, 3, 1, 9, 0, tzinfo=dt.timezone.utc)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point config discovery at a file that does not exist."""
    path = tmp_path / "missing-config.json"
    monkeypatch.setenv("ENVELOPES_CONFIG", str(path))
    return path


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    """Path for a fresh SQLite database."""
    return tmp_path / "envelopes.db"


@pytest.fixture()
def clock() -> SteppingClock:
    return SteppingClock(CLOCK_START)


@pytest.fixture()
def repository(db_path: Path):
    repo = Repository(db_path)
    repo.connect()
    yield repo
    repo.close()


@pytest.fixture()
def context(repository: Repository, clock: SteppingClock) -> LedgerContext:
    return LedgerContext(owner_id="tester", backend=repository, clock=clock)


@pytest.fixture()
def cycles(context: LedgerContext) -> Ledger:
    return Ledger(context, CYCLE)


@pytest.fixture()
def trips(context: LedgerContext) -> Ledger:
    return Ledger(context, TRIP)


@pytest.fixture()
def replacing_cycles(repository: Repository, clock: SteppingClock) -> Ledger:
    """Cycle ledger that closes the open cycle when a new one is opened."""
    context = LedgerContext(
        owner_id="tester",
        backend=repository,
        clock=clock,
        open_policy=OpenPolicy.CLOSE_PREVIOUS,
    )
    return Ledger(context, CYCLE)


@pytest.fixture()
def sample_expense_payload() -> dict:
    return {
        "amount": "25.50",
        "category": "Food",
        "date": "2026-03-02",
        "description": "Fixture expense",
    }
