"""Domain models and data transfer objects."""

from __future__ import annotations

from dataclasses import dataclass, field
import datetime as dt
from decimal import Decimal, InvalidOperation
from typing import Any

from envelopes.exceptions import ValidationError
from envelopes.schema import CYCLE_EXPENSE_FIELDS, EXPENSE_FIELDS, PERIOD_FIELDS

ZERO = Decimal("0")
MAX_AMOUNT = Decimal("1E+15")
AMOUNT_QUANTUM = Decimal("0.0001")


def _ensure_date(value: dt.date | dt.datetime | str | None, field_name: str) -> dt.date:
    """Normalize a date, datetime or ISO string to a date."""
    if value is None:
        raise ValidationError(f"{field_name} is required")
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        try:
            return dt.date.fromisoformat(value.strip())
        except ValueError as exc:
            raise ValidationError(f"{field_name} must be YYYY-MM-DD") from exc
    raise ValidationError(f"{field_name} must be a datetime.date")


def _ensure_non_empty(value: str | None, field_name: str) -> str:
    """Validate required text fields."""
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def _parse_decimal(value: Decimal | str | int | float | None, field_name: str) -> Decimal:
    """Parse a finite decimal value."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a decimal")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field_name} must be a decimal") from exc
    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be a finite decimal")
    if abs(amount) >= MAX_AMOUNT:
        raise ValidationError(f"{field_name} must be less than {MAX_AMOUNT:,.0f}")
    if amount != amount.quantize(AMOUNT_QUANTUM):
        raise ValidationError(f"{field_name} allows at most 4 decimal places")
    return amount


def _ensure_decimal(value: Decimal | str | int | float | None, field_name: str) -> Decimal:
    """Parse and validate positive decimal values."""
    amount = _parse_decimal(value, field_name)
    if amount <= ZERO:
        raise ValidationError(f"{field_name} must be greater than zero")
    return amount


def _ensure_allocation(value: Decimal | str | int | float | None, field_name: str) -> Decimal:
    """Parse and validate non-negative decimal values."""
    amount = _parse_decimal(value, field_name)
    if amount < ZERO:
        raise ValidationError(f"{field_name} must not be negative")
    return amount


def parse_moment(value: str | None) -> dt.date | dt.datetime | None:
    """Parse a stored ISO date or timestamp."""
    if not value:
        return None
    text = value.replace("Z", "+00:00")
    if "T" in text:
        return dt.datetime.fromisoformat(text)
    return dt.date.fromisoformat(text)


def format_moment(value: dt.date | dt.datetime | None) -> str | None:
    """Format a date or timestamp for storage."""
    if value is None:
        return None
    return value.isoformat()


def moment_sort_key(value: dt.date | dt.datetime | None) -> dt.datetime:
    """Return a comparable UTC datetime for a date or timestamp."""
    if value is None:
        return dt.datetime.min.replace(tzinfo=dt.timezone.utc)
    if isinstance(value, dt.datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.timezone.utc)
        return value
    return dt.datetime.combine(value, dt.time.min, tzinfo=dt.timezone.utc)


@dataclass(frozen=True)
class PeriodDTO:
    """Validated input for opening a budget period."""
    name: str
    initial_amount: Decimal
    notes: str = ""
    start_date: dt.date | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _ensure_non_empty(self.name, "Name"))
        object.__setattr__(
            self, "initial_amount", _ensure_allocation(self.initial_amount, "Allocation")
        )
        object.__setattr__(self, "notes", (self.notes or "").strip())
        if self.start_date is not None:
            object.__setattr__(self, "start_date", _ensure_date(self.start_date, "Start date"))


@dataclass(frozen=True)
class ExpenseDTO:
    """Validated expense input for a trip ledger."""
    amount: Decimal
    category: str
    date: dt.date
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", _ensure_decimal(self.amount, "Amount"))
        object.__setattr__(self, "category", _ensure_non_empty(self.category, "Category"))
        object.__setattr__(self, "date", _ensure_date(self.date, "Date"))
        object.__setattr__(self, "description", (self.description or "").strip())


@dataclass(frozen=True)
class CycleExpenseDTO(ExpenseDTO):
    """Validated expense input for a cycle ledger."""
    is_recurrent: bool = False


@dataclass(frozen=True)
class ExpenseRecord:
    """Persisted trip expense."""
    key: str
    amount: Decimal
    category: str
    date: dt.date
    description: str
    created_at: dt.datetime

    @classmethod
    def from_dto(cls, key: str, dto: ExpenseDTO, created_at: dt.datetime) -> "ExpenseRecord":
        return cls(
            key=key,
            amount=dto.amount,
            category=dto.category,
            date=dto.date,
            description=dto.description,
            created_at=created_at,
        )

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ExpenseRecord":
        return cls(**cls._base_fields(payload))

    @staticmethod
    def _base_fields(payload: dict[str, Any]) -> dict[str, Any]:
        return {
            "key": str(payload["id"]),
            "amount": Decimal(str(payload["amount"])),
            "category": payload["category"],
            "date": dt.date.fromisoformat(str(payload["date"])[:10]),
            "description": payload.get("description") or "",
            "created_at": parse_moment(payload.get("createdAt")),
        }

    def to_payload(self) -> dict[str, Any]:
        values = (
            self.key,
            str(self.amount),
            self.category,
            self.date.isoformat(),
            self.description,
            format_moment(self.created_at),
        )
        return dict(zip(EXPENSE_FIELDS, values))


@dataclass(frozen=True)
class CycleExpenseRecord(ExpenseRecord):
    """Persisted cycle expense with a recurrence flag."""
    is_recurrent: bool = False

    @classmethod
    def from_dto(cls, key: str, dto: ExpenseDTO, created_at: dt.datetime) -> "CycleExpenseRecord":
        return cls(
            key=key,
            amount=dto.amount,
            category=dto.category,
            date=dto.date,
            description=dto.description,
            created_at=created_at,
            is_recurrent=getattr(dto, "is_recurrent", False),
        )

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "CycleExpenseRecord":
        return cls(
            **cls._base_fields(payload),
            is_recurrent=bool(payload.get("isRecurrent", False)),
        )

    def to_payload(self) -> dict[str, Any]:
        values = (*super().to_payload().values(), self.is_recurrent)
        return dict(zip(CYCLE_EXPENSE_FIELDS, values))


@dataclass(frozen=True)
class PeriodRecord:
    """Persisted budget period with its expense ledger.

    ``total_spent`` and ``remaining_amount`` are always derived from the
    ledger and the allocation, so they satisfy
    ``remaining_amount == initial_amount - total_spent`` exactly.

    Attributes:
        key: Store-assigned identifier
        name: Display name
        initial_amount: Allocation for the period
        remaining_amount: Allocation minus total spent, may be negative
        total_spent: Sum of expense amounts
        start_date: Creation timestamp (cycles) or supplied date (trips)
        end_date: Close timestamp, None while the period is open
        notes: Free text
        expenses: Ledger in insertion order
    """
    key: str
    name: str
    initial_amount: Decimal
    remaining_amount: Decimal
    total_spent: Decimal
    start_date: dt.date | dt.datetime | None
    end_date: dt.datetime | None
    notes: str
    expenses: tuple[ExpenseRecord, ...] = field(default_factory=tuple)

    @property
    def is_open(self) -> bool:
        return self.end_date is None

    @classmethod
    def from_payload(
        cls,
        key: str,
        payload: dict[str, Any],
        expense_type: type[ExpenseRecord] = ExpenseRecord,
    ) -> "PeriodRecord":
        raw_expenses = payload.get("expenses") or []
        if isinstance(raw_expenses, dict):
            raw_expenses = [raw_expenses[name] for name in sorted(raw_expenses)]
        expenses = tuple(expense_type.from_payload(item) for item in raw_expenses if item)
        initial = Decimal(str(payload.get("initialAmount") or 0))
        total = sum((expense.amount for expense in expenses), ZERO)
        return cls(
            key=key,
            name=payload.get("name") or "",
            initial_amount=initial,
            remaining_amount=initial - total,
            total_spent=total,
            start_date=parse_moment(payload.get("startDate")),
            end_date=parse_moment(payload.get("endDate")),
            notes=payload.get("notes") or "",
            expenses=expenses,
        )

    def to_payload(self) -> dict[str, Any]:
        values = (
            self.name,
            str(self.initial_amount),
            str(self.remaining_amount),
            str(self.total_spent),
            format_moment(self.start_date),
            format_moment(self.end_date),
            [expense.to_payload() for expense in self.expenses],
            self.notes,
        )
        return dict(zip(PERIOD_FIELDS, values))


def ledger_fields(
    initial_amount: Decimal, expenses: list[ExpenseRecord] | tuple[ExpenseRecord, ...]
) -> dict[str, Any]:
    """Build the patch that rewrites a ledger and its derived totals together."""
    total = sum((expense.amount for expense in expenses), ZERO)
    return {
        "expenses": [expense.to_payload() for expense in expenses],
        "totalSpent": str(total),
        "remainingAmount": str(initial_amount - total),
    }


@dataclass(frozen=True)
class PeriodSummary:
    """Headline figures for a budget period."""
    initial_amount: Decimal
    remaining_amount: Decimal
    total_spent: Decimal
    percentage_spent: int


@dataclass(frozen=True)
class CategoryTotal:
    """Amount spent in one category."""
    category: str
    amount: Decimal


@dataclass(frozen=True)
class PeriodComparison:
    """Spending difference against the preceding period."""
    amount_diff: Decimal
    percentage_diff: Decimal


@dataclass(frozen=True)
class PeriodKind:
    """Describes one family of budget periods.

    Attributes:
        name: Short name used in logs and the CLI
        collection: Store collection holding the periods
        expense_dto: Input type accepted by record_expense
        expense_record: Persisted expense type of the ledger
        default_categories: Category set used until the owner extends it
        requires_start_date: Whether open_period needs an explicit start date
    """
    name: str
    collection: str
    expense_dto: type[ExpenseDTO]
    expense_record: type[ExpenseRecord]
    default_categories: tuple[str, ...]
    requires_start_date: bool = False

    @property
    def supports_recurrence(self) -> bool:
        return issubclass(self.expense_record, CycleExpenseRecord)
