"""Domain models for pm_market: frozen dataclasses, replaced rather than mutated."""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping

from src.pm_amm.domain.pricing import probability_percent
from src.pm_common.enums import MarketStatus, ShareKind, TradeDirection
from src.pm_common.units import Money, ShareQuantity

UserId = str
MarketId = int

MAX_MARKET_ID: MarketId = 2**64 - 1


@dataclass(frozen=True)
class UserShareBalance:
    """A user's position in one market: one kind only."""

    kind: ShareKind
    quantity: ShareQuantity

    def __str__(self) -> str:
        return f"{self.kind.value} {self.quantity}"


@dataclass(frozen=True)
class TransactionInfo:
    """One entry of a market's append-only trade log."""

    user: UserId
    direction: TradeDirection
    kind: ShareKind
    shares: ShareQuantity
    money: Money
    new_probability: int  # percent after the trade


def _frozen(mapping: Mapping[UserId, UserShareBalance]) -> Mapping[UserId, UserShareBalance]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class Market:
    id: MarketId
    creator: UserId
    question: str
    description: str
    yes_reserve: ShareQuantity
    no_reserve: ShareQuantity
    positions: Mapping[UserId, UserShareBalance] = field(
        default_factory=lambda: MappingProxyType({})
    )
    close_timestamp: int | None = None  # unix seconds; None = never closes
    # None marks a market restored from a snapshot that predates trade logging
    transaction_history: tuple[TransactionInfo, ...] | None = ()

    def __post_init__(self) -> None:
        if not isinstance(self.positions, MappingProxyType):
            object.__setattr__(self, "positions", _frozen(self.positions))

    @property
    def probability(self) -> int:
        """Implied YES probability as a truncated whole percent."""
        return probability_percent(self.yes_reserve.value, self.no_reserve.value)

    def is_open(self, now: int) -> bool:
        return self.close_timestamp is None or now < self.close_timestamp

    def status(self, now: int) -> MarketStatus:
        return MarketStatus.OPEN if self.is_open(now) else MarketStatus.CLOSED

    def reserve(self, kind: ShareKind) -> ShareQuantity:
        return self.yes_reserve if kind is ShareKind.YES else self.no_reserve

    def position(self, user: UserId) -> UserShareBalance | None:
        return self.positions.get(user)

    def with_reserves(self, yes_reserve: ShareQuantity, no_reserve: ShareQuantity) -> "Market":
        return replace(self, yes_reserve=yes_reserve, no_reserve=no_reserve)

    def with_position(self, user: UserId, balance: UserShareBalance | None) -> "Market":
        """Copy with the user's position replaced, or removed when balance is None."""
        positions = dict(self.positions)
        if balance is None:
            positions.pop(user, None)
        else:
            positions[user] = balance
        return replace(self, positions=_frozen(positions))

    def with_transaction(self, entry: TransactionInfo) -> "Market":
        if self.transaction_history is None:
            return self
        return replace(self, transaction_history=self.transaction_history + (entry,))
