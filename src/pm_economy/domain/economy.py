"""Economy: the root snapshot with balances, live markets and the market-id counter.

Every operation reads `self` and returns a brand new Economy alongside its
result, or raises an AppError. `self` is never modified, so a caller that
catches the error still holds the exact snapshot it started with.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from config.settings import settings
from src.pm_amm.domain.pricing import compute_buy, compute_sell, probability_percent
from src.pm_common.datetime_utils import utc_timestamp
from src.pm_common.enums import ResolveOutcome, ShareKind, TradeDirection
from src.pm_common.errors import (
    ConflictingPositionError,
    InsufficientFundsError,
    InvalidAmountError,
    MarketClosedError,
    MarketIdOverflowError,
    MarketNotFoundError,
    NoPositionError,
    UnauthorizedError,
)
from src.pm_common.units import Money, ShareQuantity
from src.pm_market.domain.models import (
    MAX_MARKET_ID,
    Market,
    MarketId,
    TransactionInfo,
    UserId,
    UserShareBalance,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Portfolio:
    cash: Money
    market_positions: list[tuple[str, UserShareBalance]]  # (question, position)


class Economy:
    def __init__(
        self,
        next_market_id: MarketId = 0,
        balances: Mapping[UserId, Money] | None = None,
        markets: Mapping[MarketId, Market] | None = None,
        start_balance: Money | None = None,
        creation_cost: Money | None = None,
        epsilon: float | None = None,
    ) -> None:
        self._next_market_id = next_market_id
        self._balances = MappingProxyType(dict(balances or {}))
        self._markets = MappingProxyType(dict(sorted((markets or {}).items())))
        self._start_balance = (
            start_balance if start_balance is not None else Money(settings.USER_START_BALANCE)
        )
        self._creation_cost = (
            creation_cost if creation_cost is not None else Money(settings.MARKET_CREATION_COST)
        )
        self._epsilon = epsilon if epsilon is not None else settings.BALANCE_EPSILON

    @classmethod
    def new(cls) -> "Economy":
        return cls()

    def _evolve(
        self,
        next_market_id: MarketId | None = None,
        balances: Mapping[UserId, Money] | None = None,
        markets: Mapping[MarketId, Market] | None = None,
    ) -> "Economy":
        return Economy(
            next_market_id=self._next_market_id if next_market_id is None else next_market_id,
            balances=self._balances if balances is None else balances,
            markets=self._markets if markets is None else markets,
            start_balance=self._start_balance,
            creation_cost=self._creation_cost,
            epsilon=self._epsilon,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Economy):
            return NotImplemented
        return (
            self._next_market_id == other._next_market_id
            and dict(self._balances) == dict(other._balances)
            and dict(self._markets) == dict(other._markets)
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"Economy(next_market_id={self._next_market_id}, "
            f"users={len(self._balances)}, markets={len(self._markets)})"
        )

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    @property
    def next_market_id(self) -> MarketId:
        return self._next_market_id

    @property
    def start_balance(self) -> Money:
        return self._start_balance

    @property
    def creation_cost(self) -> Money:
        return self._creation_cost

    @property
    def known_balances(self) -> Mapping[UserId, Money]:
        """Balances of users that have transacted; others hold the start balance."""
        return self._balances

    def balance(self, user: UserId) -> Money:
        return self._balances.get(user, self._start_balance)

    def balances(self) -> list[tuple[UserId, Money]]:
        """Every known user, richest first."""
        return sorted(self._balances.items(), key=lambda item: (-item[1].value, item[0]))

    def portfolio(self, user: UserId) -> Portfolio:
        return Portfolio(
            cash=self.balance(user),
            market_positions=[
                (market.question, market.positions[user])
                for market in self._markets.values()
                if user in market.positions
            ],
        )

    def list_markets(self) -> list[Market]:
        return list(self._markets.values())

    def market(self, market_id: MarketId) -> Market:
        market = self._markets.get(market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return market

    def market_name(self, market_id: MarketId) -> str:
        return self.market(market_id).question

    def market_probability(self, market_id: MarketId) -> int:
        return self.market(market_id).probability

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _debit(self, balances: dict[UserId, Money], user: UserId, amount: Money) -> Money:
        """Charge `amount` and return what was actually taken.

        An overdraw within epsilon takes the whole balance instead, so the
        amount passed on never exceeds what left the payer.
        """
        available = balances.get(user, self._start_balance)
        remaining = available - amount
        if remaining.is_negative(self._epsilon):
            raise InsufficientFundsError(required=amount.value, available=available.value)
        if remaining.is_negative():
            balances[user] = Money(0.0)
            return available
        balances[user] = remaining
        return amount

    def _credit(self, balances: dict[UserId, Money], user: UserId, amount: Money) -> None:
        balances[user] = balances.get(user, self._start_balance) + amount

    def _open_market(self, market_id: MarketId, now: int | None) -> Market:
        market = self.market(market_id)
        if not market.is_open(utc_timestamp() if now is None else now):
            raise MarketClosedError(market_id)
        return market

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def create_market(
        self,
        creator: UserId,
        question: str,
        description: str,
        close_timestamp: int | None = None,
    ) -> tuple["Economy", MarketId]:
        """Charge the creation cost and seed a 50% market with it."""
        market_id = self._next_market_id
        if market_id >= MAX_MARKET_ID:
            raise MarketIdOverflowError()

        balances = dict(self._balances)
        paid = self._debit(balances, creator, self._creation_cost)

        seed = ShareQuantity.from_money(paid)
        market = Market(
            id=market_id,
            creator=creator,
            question=question,
            description=description,
            yes_reserve=seed,
            no_reserve=seed,
            close_timestamp=close_timestamp,
        )
        markets = dict(self._markets)
        markets[market_id] = market

        logger.info("Market created: id=%d creator=%s question=%r", market_id, creator, question)
        return self._evolve(next_market_id=market_id + 1, balances=balances, markets=markets), market_id

    def resolve_market(
        self, caller: UserId, market_id: MarketId, outcome: ResolveOutcome
    ) -> tuple["Economy", Market]:
        """Pay winners one unit per share, return the winning reserve to the creator
        and drop the market. UNDO is a no-op that leaves the market live."""
        market = self.market(market_id)
        if caller != market.creator:
            raise UnauthorizedError(market_id)

        winner = outcome.share_kind()
        if winner is None:
            logger.info("Market resolve undone: id=%d", market_id)
            return self, market

        balances = dict(self._balances)
        for user, position in market.positions.items():
            if position.kind is winner:
                self._credit(balances, user, Money.from_shares(position.quantity))
        self._credit(balances, market.creator, Money.from_shares(market.reserve(winner)))

        markets = dict(self._markets)
        del markets[market_id]

        logger.info("Market resolved: id=%d outcome=%s", market_id, outcome.value)
        return self._evolve(balances=balances, markets=markets), market

    def buy(
        self,
        caller: UserId,
        market_id: MarketId,
        amount: Money,
        kind: ShareKind,
        now: int | None = None,
    ) -> tuple["Economy", ShareQuantity]:
        """Spend `amount` on shares of `kind`; returns the shares received."""
        if not amount.is_positive():
            raise InvalidAmountError("must buy with a positive amount of money")
        market = self._open_market(market_id, now)

        balances = dict(self._balances)
        amount = self._debit(balances, caller, amount)

        result = compute_buy(market.yes_reserve.value, market.no_reserve.value, amount.value, kind)
        shares = ShareQuantity(result.shares)
        if not shares.is_positive(self._epsilon):
            raise InvalidAmountError("amount too small to buy any shares")

        held = market.position(caller)
        if held is not None and held.kind is not kind:
            raise ConflictingPositionError(held.kind.value)
        new_quantity = shares if held is None else held.quantity + shares

        market = (
            market.with_reserves(ShareQuantity(result.yes_reserve), ShareQuantity(result.no_reserve))
            .with_position(caller, UserShareBalance(kind, new_quantity))
        )
        market = market.with_transaction(
            TransactionInfo(
                user=caller,
                direction=TradeDirection.BUY,
                kind=kind,
                shares=shares,
                money=amount,
                new_probability=probability_percent(result.yes_reserve, result.no_reserve),
            )
        )
        markets = dict(self._markets)
        markets[market_id] = market

        logger.debug(
            "Buy: market=%d user=%s kind=%s money=%.4f shares=%.4f",
            market_id, caller, kind.value, amount.value, shares.value,
        )
        return self._evolve(balances=balances, markets=markets), shares

    def sell(
        self,
        caller: UserId,
        market_id: MarketId,
        amount: ShareQuantity | None = None,
        now: int | None = None,
    ) -> tuple["Economy", UserShareBalance, Money]:
        """Return shares to the pool; `amount` defaults to the whole position.

        Returns the shares sold (with their kind) and the sale price.
        """
        market = self._open_market(market_id, now)
        held = market.position(caller)
        if held is None:
            raise NoPositionError(market_id)

        if amount is None:
            quantity = held.quantity
        else:
            if not amount.is_positive():
                raise InvalidAmountError("must sell a positive number of shares")
            if (held.quantity - amount).is_negative(self._epsilon):
                raise InvalidAmountError(
                    f"trying to sell {amount} shares but only {held.quantity} held"
                )
            quantity = amount if amount < held.quantity else held.quantity

        remaining = (held.quantity - quantity).clamp_zero(self._epsilon)
        sold = UserShareBalance(held.kind, quantity)

        result = compute_sell(
            market.yes_reserve.value, market.no_reserve.value, quantity.value, held.kind
        )
        price = Money(result.payout)

        market = market.with_reserves(
            ShareQuantity(result.yes_reserve), ShareQuantity(result.no_reserve)
        ).with_position(
            caller, UserShareBalance(held.kind, remaining) if remaining.is_positive() else None
        )
        market = market.with_transaction(
            TransactionInfo(
                user=caller,
                direction=TradeDirection.SELL,
                kind=held.kind,
                shares=quantity,
                money=price,
                new_probability=probability_percent(result.yes_reserve, result.no_reserve),
            )
        )
        markets = dict(self._markets)
        markets[market_id] = market

        balances = dict(self._balances)
        self._credit(balances, caller, price)

        logger.debug(
            "Sell: market=%d user=%s kind=%s shares=%.4f price=%.4f",
            market_id, caller, held.kind.value, quantity.value, price.value,
        )
        return self._evolve(balances=balances, markets=markets), sold, price

    def tip(
        self, caller: UserId, recipient: UserId, amount: Money
    ) -> tuple["Economy", Money]:
        """Transfer currency between users; returns the caller's new balance."""
        if not amount.is_positive():
            raise InvalidAmountError("can only send positive amounts of money")
        balances = dict(self._balances)
        amount = self._debit(balances, caller, amount)
        self._credit(balances, recipient, amount)

        logger.debug("Tip: %s -> %s amount=%.4f", caller, recipient, amount.value)
        return self._evolve(balances=balances), balances[caller]
