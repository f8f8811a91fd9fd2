"""Constant-product pricing for a binary YES/NO pool.

The pool holds reserves y (YES) and n (NO); k = y * n before a trade.
Implied probability of YES is n / (y + n).

Buy kind K with money m:
    y' = y + m, n' = n + m                       (m mints m YES + m NO)
    K = NO : shares = (y' * n' - k) / y',  n' -= shares
    K = YES: shares = (y' * n' - k) / n',  y' -= shares
    -> y' * n' == k again.

Sell s shares of kind K (inverse):
    k = y * n, fold s into the K reserve, then withdraw p from both sides
    so that (y - p) * (n - p) == k:
    p = ((y + n) - sqrt((y + n)^2 + 4 * (k - n * y))) / 2
"""

import math
from dataclasses import dataclass

from src.pm_common.enums import ShareKind
from src.pm_common.errors import InvariantViolationError


@dataclass(frozen=True)
class BuyResult:
    shares: float
    yes_reserve: float
    no_reserve: float


@dataclass(frozen=True)
class SellResult:
    payout: float
    yes_reserve: float
    no_reserve: float


def implied_probability(yes_reserve: float, no_reserve: float) -> float:
    """Implied probability of YES in [0, 1]."""
    total = yes_reserve + no_reserve
    if total <= 0:
        raise InvariantViolationError(f"empty pool (y={yes_reserve}, n={no_reserve})")
    return no_reserve / total


def probability_percent(yes_reserve: float, no_reserve: float) -> int:
    """Implied YES probability as a whole percent, truncated toward zero."""
    return int(implied_probability(yes_reserve, no_reserve) * 100)


def compute_buy(
    yes_reserve: float, no_reserve: float, amount: float, kind: ShareKind
) -> BuyResult:
    """Shares delivered for spending `amount` on `kind`, plus the new reserves."""
    k = yes_reserve * no_reserve
    y = yes_reserve + amount
    n = no_reserve + amount
    if kind is ShareKind.NO:
        shares = (y * n - k) / y
        n -= shares
        if n < 0:
            raise InvariantViolationError("underflow subtracting NO shares from pool")
    else:
        shares = (y * n - k) / n
        y -= shares
        if y < 0:
            raise InvariantViolationError("underflow subtracting YES shares from pool")
    return BuyResult(shares=shares, yes_reserve=y, no_reserve=n)


def compute_sell(
    yes_reserve: float, no_reserve: float, quantity: float, kind: ShareKind
) -> SellResult:
    """Currency paid out for returning `quantity` shares of `kind`, plus the new reserves."""
    k = yes_reserve * no_reserve
    y, n = yes_reserve, no_reserve
    if kind is ShareKind.YES:
        y += quantity
    else:
        n += quantity
    radicand = (y + n) ** 2 + 4 * (k - n * y)
    if radicand < 0:
        raise InvariantViolationError(f"negative radicand {radicand} pricing sale")
    payout = ((y + n) - math.sqrt(radicand)) / 2
    y -= payout
    n -= payout
    if n < 0:
        raise InvariantViolationError("underflow balancing pool NO shares")
    if y < 0:
        raise InvariantViolationError("underflow balancing pool YES shares")
    return SellResult(payout=payout, yes_reserve=y, no_reserve=n)
