"""Whole-snapshot invariant audit."""
import logging

from config.settings import settings
from src.pm_economy.domain.economy import Economy

logger = logging.getLogger(__name__)


def verify_economy_invariants(economy: Economy, epsilon: float | None = None) -> list[str]:
    """Check a snapshot for broken invariants. Returns list of violation strings.

    INV-1: every live market has yes_reserve > 0 and no_reserve > 0
    INV-2: no user balance is below -epsilon
    INV-3: every held position is strictly positive
    INV-4: every live market id is below next_market_id
    """
    eps = settings.BALANCE_EPSILON if epsilon is None else epsilon
    violations: list[str] = []

    for user, balance in economy.known_balances.items():
        if balance.is_negative(eps):
            violations.append(f"INV-2 violated: balance of {user} is {balance.value}")

    for market in economy.list_markets():
        if not (market.yes_reserve.is_positive() and market.no_reserve.is_positive()):
            violations.append(
                f"INV-1 violated: market {market.id} reserves "
                f"y={market.yes_reserve.value} n={market.no_reserve.value}"
            )
        for user, position in market.positions.items():
            if not position.quantity.is_positive():
                violations.append(
                    f"INV-3 violated: market {market.id} position of {user} "
                    f"is {position.quantity.value}"
                )
        if market.id >= economy.next_market_id:
            violations.append(
                f"INV-4 violated: market id {market.id} >= next_market_id "
                f"{economy.next_market_id}"
            )

    for msg in violations:
        logger.error(msg)
    if not violations:
        logger.debug("Invariants OK: markets=%d", len(economy.list_markets()))
    return violations
