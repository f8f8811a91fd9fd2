"""Shared test fixtures."""

import pytest

from src.pm_common.units import Money
from src.pm_economy.domain.economy import Economy


@pytest.fixture
def economy() -> Economy:
    """Empty economy with the default constants pinned (1000 start, 50 creation)."""
    return Economy(start_balance=Money(1000.0), creation_cost=Money(50.0), epsilon=1e-9)


@pytest.fixture
def market_economy(economy: Economy) -> Economy:
    """Economy where alice has created market 0 at 50/50 reserves."""
    new_economy, market_id = economy.create_market(
        "alice", "Will it rain tomorrow?", "Resolves YES on any measurable rain."
    )
    assert market_id == 0
    return new_economy
