"""Budget period ledger shared by cycles and trips."""

from __future__ import annotations

from dataclasses import dataclass
import datetime as dt
from decimal import ROUND_HALF_UP, Decimal, localcontext
from enum import Enum
import logging
from typing import Any, Callable, Generic, TypeVar

from envelopes.exceptions import ConflictError, NotFoundError, ValidationError
from envelopes.models import (
    ZERO,
    CategoryTotal,
    CycleExpenseDTO,
    CycleExpenseRecord,
    ExpenseDTO,
    ExpenseRecord,
    PeriodComparison,
    PeriodDTO,
    PeriodKind,
    PeriodRecord,
    PeriodSummary,
    format_moment,
    ledger_fields,
    moment_sort_key,
)
from envelopes.persistence import PersistenceBackend
from envelopes.schema import (
    CATEGORIES_COLLECTION,
    CATEGORY_NAMES_FIELD,
    CURRENT_PERIOD_FIELD,
    CYCLES_COLLECTION,
    DEFAULT_CYCLE_CATEGORIES,
    DEFAULT_TRIP_CATEGORIES,
    POINTERS_COLLECTION,
    TRIPS_COLLECTION,
    collection_path,
)

E = TypeVar("E", bound=ExpenseRecord)

logger = logging.getLogger(__name__)

PERCENT = Decimal("100")
WHOLE_PERCENT = Decimal("1")
HUNDREDTH_PERCENT = Decimal("0.01")
PERCENT_PRECISION = 60

CYCLE = PeriodKind(
    name="cycle",
    collection=CYCLES_COLLECTION,
    expense_dto=CycleExpenseDTO,
    expense_record=CycleExpenseRecord,
    default_categories=tuple(DEFAULT_CYCLE_CATEGORIES),
)

TRIP = PeriodKind(
    name="trip",
    collection=TRIPS_COLLECTION,
    expense_dto=ExpenseDTO,
    expense_record=ExpenseRecord,
    default_categories=tuple(DEFAULT_TRIP_CATEGORIES),
    requires_start_date=True,
)


def percentage_of(part: Decimal, whole: Decimal, quantum: Decimal) -> Decimal:
    """Return part as a percentage of whole, rounded half up to quantum.

    Runs with enough precision that quantizing stored totals cannot overflow
    the default decimal context.
    """
    with localcontext() as ctx:
        ctx.prec = PERCENT_PRECISION
        return (part / whole * PERCENT).quantize(quantum, rounding=ROUND_HALF_UP)


def utc_now() -> dt.datetime:
    """Return the current UTC time without microseconds."""
    return dt.datetime.now(dt.timezone.utc).replace(microsecond=0)


class OpenPolicy(str, Enum):
    """What open_period does when another period of the kind is still open."""

    REJECT = "reject"
    CLOSE_PREVIOUS = "close_previous"


@dataclass(frozen=True)
class LedgerContext:
    """Owner identity and storage handle passed to every ledger call."""

    owner_id: str
    backend: PersistenceBackend
    clock: Callable[[], dt.datetime] = utc_now
    open_policy: OpenPolicy = OpenPolicy.REJECT


class Ledger(Generic[E]):
    """Lifecycle, expense ledger and aggregation for one kind of budget period.

    Every mutation rewrites the ledger, ``totalSpent`` and ``remainingAmount``
    in a single patch, so a failed write never leaves the three fields out of
    step. The current period is tracked by an explicit pointer record rather
    than by scanning for a period without an end date.
    """

    def __init__(self, context: LedgerContext, kind: PeriodKind) -> None:
        self.context = context
        self.kind = kind

    @property
    def backend(self) -> PersistenceBackend:
        return self.context.backend

    @property
    def path(self) -> str:
        return collection_path(self.context.owner_id, self.kind.collection)

    @property
    def _pointers_path(self) -> str:
        return collection_path(self.context.owner_id, POINTERS_COLLECTION)

    @property
    def _categories_path(self) -> str:
        return collection_path(self.context.owner_id, CATEGORIES_COLLECTION)

    # Lifecycle

    def open_period(
        self,
        name: str,
        allocation: Decimal | str | int | float,
        notes: str = "",
        start_date: dt.date | str | None = None,
    ) -> PeriodRecord:
        """Open a new period and make it the current one.

        Raises:
            ValidationError: If the allocation is not a non-negative number,
                the name is empty, or a trip has no start date
            ConflictError: If another period is open and the policy is REJECT
        """
        if self.kind.requires_start_date and start_date is None:
            raise ValidationError("Start date is required")
        dto = PeriodDTO(
            name=name,
            initial_amount=allocation,
            notes=notes,
            start_date=start_date,
        )

        current = self.get_current()
        if current is not None:
            if self.context.open_policy is OpenPolicy.REJECT:
                raise ConflictError(
                    f"A {self.kind.name} is already open",
                    {"key": current.key, "name": current.name},
                )
            self._mark_closed(current.key)
            logger.info("Closed %s %s before opening a new one", self.kind.name, current.key)

        now = self.context.clock()
        record = PeriodRecord(
            key="",
            name=dto.name,
            initial_amount=dto.initial_amount,
            remaining_amount=dto.initial_amount,
            total_spent=ZERO,
            start_date=dto.start_date or now,
            end_date=None,
            notes=dto.notes,
        )
        payload = record.to_payload()
        key = self.backend.insert(self.path, payload)
        self._set_current_pointer(key)
        logger.info("Opened %s %s (%s)", self.kind.name, key, dto.name)
        return PeriodRecord.from_payload(key, payload, self.kind.expense_record)

    def close_period(self, period_id: str) -> bool:
        """Close a period.

        Returns True when the period was closed by this call and False when
        it was already closed, in which case its end date is left untouched.

        Raises:
            NotFoundError: If the period does not exist
        """
        period = self.get_period(period_id)
        if not period.is_open:
            logger.info("%s %s is already closed", self.kind.name.title(), period_id)
            return False
        self._mark_closed(period_id)
        logger.info("Closed %s %s", self.kind.name, period_id)
        return True

    def _mark_closed(self, period_id: str) -> None:
        closed_at = format_moment(self.context.clock())
        if not self.backend.patch(self.path, period_id, {"endDate": closed_at}):
            raise NotFoundError(f"{self.kind.name.title()} {period_id} not found")
        if self._current_pointer() == period_id:
            self._set_current_pointer(None)

    # Expense ledger

    def record_expense(
        self,
        period_id: str,
        amount: Decimal | str | int | float,
        category: str,
        date: dt.date | str | None,
        description: str = "",
        recurrent: bool = False,
    ) -> E:
        """Append an expense to a period's ledger.

        Raises:
            ValidationError: If the amount is not a positive number, the
                category is empty, the date is missing, or a recurrence flag
                is given for a kind that has none
            NotFoundError: If the period does not exist
        """
        fields: dict[str, Any] = {
            "amount": amount,
            "category": category,
            "date": date,
            "description": description,
        }
        if self.kind.supports_recurrence:
            fields["is_recurrent"] = bool(recurrent)
        elif recurrent:
            raise ValidationError(f"A {self.kind.name} expense cannot be recurrent")
        dto = self.kind.expense_dto(**fields)

        period = self.get_period(period_id)
        created_at = self.context.clock()
        key = self._next_expense_key(period, created_at)
        expense = self.kind.expense_record.from_dto(key, dto, created_at)
        expenses = period.expenses + (expense,)
        if not self.backend.patch(
            self.path, period_id, ledger_fields(period.initial_amount, expenses)
        ):
            raise NotFoundError(f"{self.kind.name.title()} {period_id} not found")
        logger.info(
            "Recorded expense %s of %s in %s %s", key, dto.amount, self.kind.name, period_id
        )
        return expense

    def remove_expense(self, period_id: str, expense_id: str) -> bool:
        """Remove an expense, exactly reversing record_expense.

        Raises:
            NotFoundError: If the period or the expense does not exist
        """
        period = self.get_period(period_id)
        expenses = tuple(expense for expense in period.expenses if expense.key != expense_id)
        if len(expenses) == len(period.expenses):
            raise NotFoundError(f"Expense {expense_id} not found")
        if not self.backend.patch(
            self.path, period_id, ledger_fields(period.initial_amount, expenses)
        ):
            raise NotFoundError(f"{self.kind.name.title()} {period_id} not found")
        logger.info("Removed expense %s from %s %s", expense_id, self.kind.name, period_id)
        return True

    @staticmethod
    def _next_expense_key(period: PeriodRecord, created_at: dt.datetime) -> str:
        existing = {expense.key for expense in period.expenses}
        token = int(created_at.timestamp() * 1000)
        while str(token) in existing:
            token += 1
        return str(token)

    # Reads

    def list_periods(self) -> list[PeriodRecord]:
        """Return every period in insertion order."""
        rows = self.backend.list_all(self.path)
        logger.debug("Loaded %d %s records", len(rows), self.kind.name)
        return [self._to_record(row["key"], row) for row in rows]

    def get_period(self, period_id: str) -> PeriodRecord:
        """Fetch a period by key."""
        if not period_id:
            raise NotFoundError(f"{self.kind.name.title()} id is required")
        payload = self.backend.get_by_id(self.path, period_id)
        if payload is None:
            raise NotFoundError(f"{self.kind.name.title()} {period_id} not found")
        logger.debug("Loaded %s %s", self.kind.name, period_id)
        return self._to_record(period_id, payload)

    def get_current(self) -> PeriodRecord | None:
        """Return the period the current pointer references, if any."""
        period_id = self._current_pointer()
        if not period_id:
            return None
        payload = self.backend.get_by_id(self.path, period_id)
        if payload is None:
            logger.warning("Current %s pointer references missing %s", self.kind.name, period_id)
            return None
        record = self._to_record(period_id, payload)
        if not record.is_open:
            logger.warning("Current %s pointer references closed %s", self.kind.name, period_id)
            return None
        return record

    def list_expenses(
        self,
        period_id: str,
        category: str | None = None,
        on_date: dt.date | None = None,
    ) -> list[E]:
        """Return a period's ledger, optionally filtered by category and date."""
        expenses = list(self.get_period(period_id).expenses)
        if category:
            expenses = [expense for expense in expenses if expense.category == category]
        if on_date is not None:
            expenses = [expense for expense in expenses if expense.date == on_date]
        return expenses

    def history(self) -> list[PeriodRecord]:
        """Return every period, most recent start date first."""
        return sorted(
            self.list_periods(),
            key=lambda period: moment_sort_key(period.start_date),
            reverse=True,
        )

    # Queries

    def summary(self, period_id: str) -> PeriodSummary:
        """Return allocation, remaining, total spent and percentage spent."""
        period = self.get_period(period_id)
        percentage = 0
        if period.initial_amount != ZERO:
            percentage = int(
                percentage_of(period.total_spent, period.initial_amount, WHOLE_PERCENT)
            )
        return PeriodSummary(
            initial_amount=period.initial_amount,
            remaining_amount=period.remaining_amount,
            total_spent=period.total_spent,
            percentage_spent=percentage,
        )

    def by_category(self, period_id: str) -> list[CategoryTotal]:
        """Sum the ledger per category in first-seen order."""
        totals: dict[str, Decimal] = {}
        for expense in self.get_period(period_id).expenses:
            totals[expense.category] = totals.get(expense.category, ZERO) + expense.amount
        return [CategoryTotal(category=name, amount=amount) for name, amount in totals.items()]

    def compare_with_previous(self, period_id: str) -> PeriodComparison | None:
        """Compare spending with the period inserted immediately before.

        Returns None when fewer than two periods exist or the period is the
        earliest one.

        Raises:
            NotFoundError: If the period does not exist
        """
        periods = self.list_periods()
        index = next(
            (position for position, period in enumerate(periods) if period.key == period_id),
            None,
        )
        if index is None:
            raise NotFoundError(f"{self.kind.name.title()} {period_id} not found")
        if len(periods) < 2 or index == 0:
            return None
        current = periods[index]
        previous = periods[index - 1]
        amount_diff = current.total_spent - previous.total_spent
        percentage_diff = ZERO
        if previous.total_spent != ZERO:
            percentage_diff = percentage_of(
                amount_diff, previous.total_spent, HUNDREDTH_PERCENT
            )
        return PeriodComparison(amount_diff=amount_diff, percentage_diff=percentage_diff)

    # Categories

    def categories(self) -> list[str]:
        """Return the owner's category set for this kind."""
        stored = self.backend.get_by_id(self._categories_path, self.kind.collection)
        if stored is None:
            return list(self.kind.default_categories)
        return list(stored.get(CATEGORY_NAMES_FIELD) or [])

    def add_category(self, name: str) -> bool:
        """Append a category. Return False when it already exists."""
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationError("Category is required")
        names = self.categories()
        if cleaned in names:
            return False
        names.append(cleaned)
        fields = {CATEGORY_NAMES_FIELD: names}
        if not self.backend.patch(self._categories_path, self.kind.collection, fields):
            self.backend.insert(self._categories_path, fields, key=self.kind.collection)
        logger.info("Added %s category %s", self.kind.name, cleaned)
        return True

    # Helpers

    def _to_record(self, key: str, payload: dict[str, Any]) -> PeriodRecord:
        record = PeriodRecord.from_payload(key, payload, self.kind.expense_record)
        stored_total = payload.get("totalSpent")
        if stored_total is not None and Decimal(str(stored_total)) != record.total_spent:
            logger.warning(
                "%s %s stored total %s differs from ledger sum %s",
                self.kind.name.title(),
                key,
                stored_total,
                record.total_spent,
            )
        return record

    def _current_pointer(self) -> str | None:
        pointer = self.backend.get_by_id(self._pointers_path, self.kind.collection)
        if pointer is None:
            return None
        return pointer.get(CURRENT_PERIOD_FIELD)

    def _set_current_pointer(self, period_id: str | None) -> None:
        fields = {CURRENT_PERIOD_FIELD: period_id}
        if not self.backend.patch(self._pointers_path, self.kind.collection, fields):
            self.backend.insert(self._pointers_path, fields, key=self.kind.collection)
