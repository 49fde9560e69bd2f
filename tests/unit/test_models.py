from __future__ import annotations

import datetime as dt
from decimal import Decimal

import pytest

from envelopes.exceptions import ValidationError
from envelopes.models import (
    CycleExpenseDTO,
    CycleExpenseRecord,
    ExpenseDTO,
    ExpenseRecord,
    PeriodDTO,
    PeriodRecord,
    ledger_fields,
    moment_sort_key,
)
from envelopes.schema import CYCLE_EXPENSE_FIELDS, PERIOD_FIELDS
from tests.utils.assertions import assert_required_keys

CREATED_AT = dt.datetime(2026, 3, 2, 12, 0, tzinfo=dt.timezone.utc)


def test_expense_dto_required_fields() -> None:
    expense = ExpenseDTO(amount="25.50", category=" Food ", date=dt.date(2026, 3, 2))

    assert expense.amount == Decimal("25.50")
    assert expense.category == "Food"
    assert expense.description == ""


def test_expense_dto_accepts_iso_date_and_datetime() -> None:
    assert ExpenseDTO(amount=1, category="Food", date="2026-03-02").date == dt.date(2026, 3, 2)
    assert ExpenseDTO(
        amount=1, category="Food", date=dt.datetime(2026, 3, 2, 18, 30)
    ).date == dt.date(2026, 3, 2)


@pytest.mark.parametrize(
    "amount",
    ["abc", "0", "-5", "NaN", "Infinity", None, True, "1E+15", "1E+27", "0.00001"],
)
def test_expense_dto_rejects_bad_amounts(amount) -> None:
    with pytest.raises(ValidationError):
        ExpenseDTO(amount=amount, category="Food", date=dt.date(2026, 3, 2))


def test_expense_dto_validation() -> None:
    with pytest.raises(ValidationError):
        ExpenseDTO(amount="10", category="  ", date=dt.date(2026, 3, 2))

    with pytest.raises(ValidationError):
        ExpenseDTO(amount="10", category="Food", date=None)

    with pytest.raises(ValidationError):
        ExpenseDTO(amount="10", category="Food", date="02/03/2026")


def test_period_dto_allocation() -> None:
    assert PeriodDTO(name="March", initial_amount="0").initial_amount == Decimal("0")

    with pytest.raises(ValidationError):
        PeriodDTO(name="March", initial_amount="-1")

    with pytest.raises(ValidationError):
        PeriodDTO(name="March", initial_amount="lots")

    with pytest.raises(ValidationError):
        PeriodDTO(name="", initial_amount="100")


def test_amount_bounds() -> None:
    largest = ExpenseDTO(amount="999999999999999.9999", category="Food", date="2026-03-02")
    padded = ExpenseDTO(amount="1.50000", category="Food", date="2026-03-02")

    assert largest.amount == Decimal("999999999999999.9999")
    assert padded.amount == Decimal("1.5")

    with pytest.raises(ValidationError, match="decimal places"):
        ExpenseDTO(
            amount="1000.000000000000000000000000001", category="Food", date="2026-03-02"
        )

    with pytest.raises(ValidationError, match="less than"):
        PeriodDTO(name="March", initial_amount="1E+27")


def test_cycle_expense_record_payload() -> None:
    dto = CycleExpenseDTO(
        amount="12.34", category="Home", date=dt.date(2026, 3, 2), is_recurrent=True
    )
    record = CycleExpenseRecord.from_dto("1772452800000", dto, CREATED_AT)
    payload = record.to_payload()

    assert_required_keys(payload, CYCLE_EXPENSE_FIELDS)
    assert list(payload) == CYCLE_EXPENSE_FIELDS
    assert payload["amount"] == "12.34"
    assert payload["isRecurrent"] is True
    assert CycleExpenseRecord.from_payload(payload) == record


def test_trip_expense_record_has_no_recurrence() -> None:
    dto = ExpenseDTO(amount="8", category="Hotel", date=dt.date(2026, 4, 10))
    payload = ExpenseRecord.from_dto("1", dto, CREATED_AT).to_payload()

    assert "isRecurrent" not in payload


def test_period_record_derives_totals_from_ledger() -> None:
    payload = {
        "name": "March",
        "initialAmount": 1000,
        "remainingAmount": 999,
        "totalSpent": 1,
        "startDate": "2026-03-01T09:00:00+00:00",
        "expenses": [
            {"id": "1", "amount": 100.1, "category": "Food", "date": "2026-03-02"},
            {"id": "2", "amount": "0.2", "category": "Food", "date": "2026-03-03"},
        ],
    }
    record = PeriodRecord.from_payload("p1", payload)

    assert record.total_spent == Decimal("100.3")
    assert record.remaining_amount == Decimal("899.7")
    assert record.is_open
    assert record.end_date is None
    assert list(record.to_payload()) == PERIOD_FIELDS


def test_period_record_missing_ledger_is_empty() -> None:
    record = PeriodRecord.from_payload("p1", {"name": "Lima", "initialAmount": "50"})

    assert record.expenses == ()
    assert record.total_spent == Decimal("0")
    assert record.remaining_amount == Decimal("50")


def test_ledger_fields_keep_totals_together() -> None:
    dto = ExpenseDTO(amount="0.1", category="Food", date=dt.date(2026, 3, 2))
    expenses = [ExpenseRecord.from_dto(str(n), dto, CREATED_AT) for n in range(3)]

    fields = ledger_fields(Decimal("1"), expenses)

    assert fields["totalSpent"] == "0.3"
    assert fields["remainingAmount"] == "0.7"
    assert len(fields["expenses"]) == 3


def test_moment_sort_key_orders_dates_and_datetimes() -> None:
    earlier = moment_sort_key(dt.date(2026, 3, 1))
    later = moment_sort_key(dt.datetime(2026, 3, 1, 10, 0, tzinfo=dt.timezone.utc))

    assert earlier < later
    assert moment_sort_key(None) < earlier
