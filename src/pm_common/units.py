"""Money and share quantities as distinct float-backed value types.

Both wrap a plain float, but arithmetic only works within one unit:
Money + ShareQuantity raises TypeError. Convert explicitly with
ShareQuantity.from_money() / Money.from_shares() where the economics
say one unit of one is worth one unit of the other (seed liquidity,
settlement payouts).
"""

from dataclasses import dataclass
from typing import TypeVar

_Q = TypeVar("_Q", bound="_Quantity")


@dataclass(frozen=True, order=True)
class _Quantity:
    value: float = 0.0

    def __add__(self: _Q, other: _Q) -> _Q:
        if type(other) is not type(self):
            return NotImplemented
        return type(self)(self.value + other.value)

    def __sub__(self: _Q, other: _Q) -> _Q:
        if type(other) is not type(self):
            return NotImplemented
        return type(self)(self.value - other.value)

    def __neg__(self: _Q) -> _Q:
        return type(self)(-self.value)

    def __float__(self) -> float:
        return self.value

    def is_positive(self, epsilon: float = 0.0) -> bool:
        return self.value > epsilon

    def is_negative(self, epsilon: float = 0.0) -> bool:
        """True only when the value is below -epsilon."""
        return self.value < -epsilon

    def clamp_zero(self: _Q, epsilon: float) -> _Q:
        """Snap values within epsilon of zero to exactly zero."""
        if abs(self.value) <= epsilon:
            return type(self)(0.0)
        return self


class Money(_Quantity):
    """Currency amount."""

    @classmethod
    def from_shares(cls, shares: "ShareQuantity") -> "Money":
        """Settlement rate: one winning share pays one unit of currency."""
        return cls(shares.value)

    def __str__(self) -> str:
        return money_to_display(self.value)


class ShareQuantity(_Quantity):
    """Share count, either a user position or a pool reserve."""

    @classmethod
    def from_money(cls, money: Money) -> "ShareQuantity":
        """One unit of currency mints one share of each kind."""
        return cls(money.value)

    def __str__(self) -> str:
        return shares_to_display(self.value)


def money_to_display(amount: float) -> str:
    """Format currency: 1234.5 -> '$1,234.50', -12 -> '-$12.00'."""
    if amount < 0:
        return f"-${-amount:,.2f}"
    return f"${amount:,.2f}"


def shares_to_display(quantity: float) -> str:
    """Format a share count with two decimals: 12.345 -> '12.35'."""
    return f"{quantity:.2f}"
