from __future__ import annotations

import pytest

from envelopes.exceptions import ValidationError
from envelopes.ledger import Ledger
from envelopes.schema import DEFAULT_CYCLE_CATEGORIES, DEFAULT_TRIP_CATEGORIES


@pytest.mark.sit
def test_default_categories(cycles: Ledger, trips: Ledger) -> None:
    assert cycles.categories() == DEFAULT_CYCLE_CATEGORIES
    assert trips.categories() == DEFAULT_TRIP_CATEGORIES


@pytest.mark.sit
def test_add_category_appends_and_persists(cycles: Ledger, trips: Ledger) -> None:
    assert cycles.add_category(" Pets ") is True
    assert cycles.add_category("Gifts") is True

    assert cycles.categories() == DEFAULT_CYCLE_CATEGORIES + ["Pets", "Gifts"]
    assert trips.categories() == DEFAULT_TRIP_CATEGORIES


@pytest.mark.sit
def test_add_existing_category_is_rejected(trips: Ledger) -> None:
    assert trips.add_category("Hotel") is False
    assert trips.categories() == DEFAULT_TRIP_CATEGORIES


@pytest.mark.sit
def test_add_empty_category(cycles: Ledger) -> None:
    with pytest.raises(ValidationError):
        cycles.add_category("   ")
