"""Client orchestration layer for envelopes."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, TypeVar
import datetime as dt
from decimal import Decimal
import json
import logging
import os

from envelopes.ledger import CYCLE, TRIP, Ledger, LedgerContext, OpenPolicy, utc_now
from envelopes.models import CycleExpenseRecord, ExpenseRecord, PeriodRecord
from envelopes.persistence import PersistenceBackend
from envelopes.remote import RestBackend
from envelopes.repository import Repository

T = TypeVar("T")

# Configure logging for the whole package
package_logger = logging.getLogger("envelopes")
log_level = os.environ.get('LOGGING_LEVEL', 'INFO').upper()
package_logger.setLevel(getattr(logging, log_level, logging.INFO))
if not package_logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter('%(levelname)s - %(name)s - %(message)s'))
    package_logger.addHandler(handler)
logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "ENVELOPES_CONFIG"
DEFAULT_CONFIG_NAME = "envelopes-config.json"
DEFAULT_OWNER_ID = "local"
BACKEND_SQLITE = "sqlite"
BACKEND_REST = "rest"
PERIOD_KINDS = {CYCLE.name: CYCLE, TRIP.name: TRIP}


def default_config_path() -> Path:
    """Return the config file location, honouring the ENVELOPES_CONFIG variable."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return Path.home() / ".envelopes" / DEFAULT_CONFIG_NAME


class EnvelopeClient:
    """Coordinate ledger operations, storage and transactions."""

    def __init__(
        self,
        db_path: str | Path | None = None,
        owner_id: str | None = None,
        backend: PersistenceBackend | None = None,
        open_policy: OpenPolicy | str | None = None,
        config_path: str | Path | None = None,
        clock: Callable[[], dt.datetime] = utc_now,
    ) -> None:
        """Initialize the client with a storage backend.

        Args:
            db_path: Path to the SQLite database, overrides the config file
            owner_id: Owner whose cycles and trips are managed
            backend: Optional custom persistence backend
            open_policy: Behaviour when opening a period while one is open
            config_path: Optional config file location
            clock: Source of timestamps for new periods and expenses
        """
        self.config = self._load_config(config_path)
        self.backend = backend or self._build_backend(db_path)
        policy = open_policy or self.config.get("open_policy") or OpenPolicy.REJECT
        self.context = LedgerContext(
            owner_id=owner_id or self.config.get("owner_id") or DEFAULT_OWNER_ID,
            backend=self.backend,
            clock=clock,
            open_policy=OpenPolicy(policy),
        )
        self.cycles: Ledger[CycleExpenseRecord] = Ledger(self.context, CYCLE)
        self.trips: Ledger[ExpenseRecord] = Ledger(self.context, TRIP)

    def __enter__(self) -> "EnvelopeClient":
        """Open the backend connection."""
        self.backend.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        """Close the backend connection."""
        self.close()

    def close(self) -> None:
        """Close the backend connection."""
        self.backend.close()

    def _load_config(self, config_path: str | Path | None) -> dict[str, Any]:
        """Load config file if present, else return empty config."""
        path = Path(config_path) if config_path is not None else default_config_path()
        if not path.exists():
            return {}
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        if not isinstance(payload, dict):
            return {}
        return payload

    def _build_backend(self, db_path: str | Path | None) -> PersistenceBackend:
        """Create the configured backend."""
        backend_name = self.config.get("backend", BACKEND_SQLITE)
        if db_path is None and backend_name == BACKEND_REST:
            return RestBackend(self.config.get("rest", {}))
        if backend_name not in (BACKEND_SQLITE, BACKEND_REST):
            raise ValueError(f"Unknown backend {backend_name!r}")
        resolved = db_path or self.config.get("db_path")
        if not resolved:
            raise ValueError("db_path is required when config file is missing")
        return Repository(Path(resolved).expanduser())

    def ledger(self, kind: str) -> Ledger:
        """Return the ledger for ``cycle`` or ``trip``."""
        if kind not in PERIOD_KINDS:
            raise ValueError(f"Unknown period kind {kind!r}")
        return self.cycles if kind == CYCLE.name else self.trips

    def _run_transaction(self, action: Callable[[], T]) -> T:
        """Run backend work inside a transaction, rolling back on failure."""
        self.backend.begin_transaction()
        try:
            result = action()
            self.backend.commit()
            return result
        except Exception as exc:
            logger.debug("Rolling back transaction after %s", type(exc).__name__)
            self.backend.rollback()
            raise

    def open_period(
        self,
        kind: str,
        name: str,
        allocation: Decimal | str | int | float,
        notes: str = "",
        start_date: dt.date | str | None = None,
    ) -> PeriodRecord:
        """Open a cycle or trip."""
        ledger = self.ledger(kind)
        return self._run_transaction(
            lambda: ledger.open_period(name, allocation, notes=notes, start_date=start_date)
        )

    def close_period(self, kind: str, period_id: str) -> bool:
        """Close a cycle or trip."""
        ledger = self.ledger(kind)
        return self._run_transaction(lambda: ledger.close_period(period_id))

    def record_expense(
        self,
        kind: str,
        period_id: str,
        amount: Decimal | str | int | float,
        category: str,
        date: dt.date | str | None,
        description: str = "",
        recurrent: bool = False,
    ) -> ExpenseRecord:
        """Record an expense against a cycle or trip."""
        ledger = self.ledger(kind)
        return self._run_transaction(
            lambda: ledger.record_expense(
                period_id,
                amount,
                category,
                date,
                description=description,
                recurrent=recurrent,
            )
        )

    def remove_expense(self, kind: str, period_id: str, expense_id: str) -> bool:
        """Remove an expense from a cycle or trip."""
        ledger = self.ledger(kind)
        return self._run_transaction(lambda: ledger.remove_expense(period_id, expense_id))

    def add_category(self, kind: str, name: str) -> bool:
        """Extend the category set of a kind."""
        ledger = self.ledger(kind)
        return self._run_transaction(lambda: ledger.add_category(name))
