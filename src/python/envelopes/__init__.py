"""Public envelopes package exports."""

from __future__ import annotations

from envelopes.__version__ import __version__
from envelopes.client import EnvelopeClient
from envelopes.exceptions import ConflictError, NotFoundError, StorageError, ValidationError
from envelopes.ledger import CYCLE, TRIP, Ledger, LedgerContext, OpenPolicy
from envelopes.models import (
    CategoryTotal,
    CycleExpenseRecord,
    ExpenseRecord,
    PeriodComparison,
    PeriodRecord,
    PeriodSummary,
)
from envelopes.persistence import PersistenceBackend
from envelopes.remote import RestBackend
from envelopes.repository import Repository

__all__ = [
    "__version__",
    "EnvelopeClient",
    "ConflictError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
    "CYCLE",
    "TRIP",
    "Ledger",
    "LedgerContext",
    "OpenPolicy",
    "CategoryTotal",
    "CycleExpenseRecord",
    "ExpenseRecord",
    "PeriodComparison",
    "PeriodRecord",
    "PeriodSummary",
    "PersistenceBackend",
    "RestBackend",
    "Repository",
]
