"""Pydantic schemas for pm_economy: the serializable snapshot and read-only views."""

from pydantic import BaseModel, model_validator

from src.pm_common.enums import (
    MarketStatus,
    ResolveOutcome,
    ShareKind,
    TradeDirection,
)
from src.pm_common.units import Money, ShareQuantity, money_to_display, shares_to_display
from src.pm_economy.domain.economy import Economy
from src.pm_market.domain.models import Market, TransactionInfo, UserShareBalance

# ---------------------------------------------------------------------------
# Snapshot schemas
# ---------------------------------------------------------------------------


class PositionSnapshot(BaseModel):
    kind: ShareKind
    quantity: float


class TransactionSnapshot(BaseModel):
    user: str
    direction: TradeDirection = TradeDirection.BUY
    kind: ShareKind
    shares: float
    money: float
    new_probability: int

    @classmethod
    def from_domain(cls, entry: TransactionInfo) -> "TransactionSnapshot":
        return cls(
            user=entry.user,
            direction=entry.direction,
            kind=entry.kind,
            shares=entry.shares.value,
            money=entry.money.value,
            new_probability=entry.new_probability,
        )

    def to_domain(self) -> TransactionInfo:
        return TransactionInfo(
            user=self.user,
            direction=self.direction,
            kind=self.kind,
            shares=ShareQuantity(self.shares),
            money=Money(self.money),
            new_probability=self.new_probability,
        )


class MarketSnapshot(BaseModel):
    id: int
    creator: str
    question: str
    description: str
    yes_reserve: float
    no_reserve: float
    positions: dict[str, PositionSnapshot] = {}
    close_timestamp: int | None = None
    transaction_history: list[TransactionSnapshot] | None = None

    @classmethod
    def from_domain(cls, market: Market) -> "MarketSnapshot":
        history = market.transaction_history
        return cls(
            id=market.id,
            creator=market.creator,
            question=market.question,
            description=market.description,
            yes_reserve=market.yes_reserve.value,
            no_reserve=market.no_reserve.value,
            positions={
                user: PositionSnapshot(kind=pos.kind, quantity=pos.quantity.value)
                for user, pos in market.positions.items()
            },
            close_timestamp=market.close_timestamp,
            transaction_history=(
                None if history is None else [TransactionSnapshot.from_domain(t) for t in history]
            ),
        )

    def to_domain(self) -> Market:
        return Market(
            id=self.id,
            creator=self.creator,
            question=self.question,
            description=self.description,
            yes_reserve=ShareQuantity(self.yes_reserve),
            no_reserve=ShareQuantity(self.no_reserve),
            positions={
                user: UserShareBalance(pos.kind, ShareQuantity(pos.quantity))
                for user, pos in self.positions.items()
            },
            close_timestamp=self.close_timestamp,
            transaction_history=(
                None
                if self.transaction_history is None
                else tuple(t.to_domain() for t in self.transaction_history)
            ),
        )


class EconomySnapshot(BaseModel):
    next_market_id: int = 0
    balances: dict[str, float] = {}
    markets: dict[int, MarketSnapshot] = {}

    @model_validator(mode="after")
    def check_market_ids(self) -> "EconomySnapshot":
        """Keys must match each market's id and sit below the id counter."""
        for market_id, market in self.markets.items():
            if market.id != market_id:
                raise ValueError(f"market key {market_id} does not match market id {market.id}")
            if market_id >= self.next_market_id:
                raise ValueError(
                    f"market id {market_id} not below next_market_id {self.next_market_id}"
                )
        return self

    @classmethod
    def from_domain(cls, economy: Economy) -> "EconomySnapshot":
        return cls(
            next_market_id=economy.next_market_id,
            balances={user: money.value for user, money in economy.known_balances.items()},
            markets={m.id: MarketSnapshot.from_domain(m) for m in economy.list_markets()},
        )

    def to_domain(self) -> Economy:
        return Economy(
            next_market_id=self.next_market_id,
            balances={user: Money(value) for user, value in self.balances.items()},
            markets={market_id: m.to_domain() for market_id, m in self.markets.items()},
        )


def dump_snapshot(economy: Economy) -> str:
    """Serialize the whole economy to JSON."""
    return EconomySnapshot.from_domain(economy).model_dump_json()


def load_snapshot(data: str | bytes) -> Economy:
    """Rebuild an economy from dump_snapshot() output."""
    return EconomySnapshot.model_validate_json(data).to_domain()


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: str
    balance: float
    balance_display: str

    @classmethod
    def from_money(cls, user_id: str, balance: Money) -> "BalanceResponse":
        return cls(user_id=user_id, balance=balance.value, balance_display=str(balance))


class PositionItem(BaseModel):
    question: str
    kind: ShareKind
    quantity: float
    display: str


class PortfolioResponse(BaseModel):
    user_id: str
    cash: float
    cash_display: str
    positions: list[PositionItem]

    @classmethod
    def from_economy(cls, economy: Economy, user_id: str) -> "PortfolioResponse":
        portfolio = economy.portfolio(user_id)
        return cls(
            user_id=user_id,
            cash=portfolio.cash.value,
            cash_display=str(portfolio.cash),
            positions=[
                PositionItem(
                    question=question,
                    kind=pos.kind,
                    quantity=pos.quantity.value,
                    display=f"{pos} shares",
                )
                for question, pos in portfolio.market_positions
            ],
        )


class MarketSummary(BaseModel):
    market_id: int
    question: str
    creator: str
    probability: int
    status: MarketStatus
    close_timestamp: int | None

    @classmethod
    def from_market(cls, market: Market, now: int) -> "MarketSummary":
        return cls(
            market_id=market.id,
            question=market.question,
            creator=market.creator,
            probability=market.probability,
            status=market.status(now),
            close_timestamp=market.close_timestamp,
        )


class TransactionItem(BaseModel):
    user: str
    direction: TradeDirection
    kind: ShareKind
    shares_display: str
    money_display: str
    new_probability: int


class MarketDetail(MarketSummary):
    description: str
    yes_reserve: float
    no_reserve: float
    positions: dict[str, str]  # user -> "YES 12.34"
    transactions: list[TransactionItem] | None  # None: market predates trade logging

    @classmethod
    def from_market(cls, market: Market, now: int) -> "MarketDetail":
        history = market.transaction_history
        return cls(
            **MarketSummary.from_market(market, now).model_dump(),
            description=market.description,
            yes_reserve=market.yes_reserve.value,
            no_reserve=market.no_reserve.value,
            positions={user: str(pos) for user, pos in market.positions.items()},
            transactions=(
                None
                if history is None
                else [
                    TransactionItem(
                        user=t.user,
                        direction=t.direction,
                        kind=t.kind,
                        shares_display=str(t.shares),
                        money_display=str(t.money),
                        new_probability=t.new_probability,
                    )
                    for t in history
                ]
            ),
        )


class BuyResponse(BaseModel):
    market_id: int
    question: str
    kind: ShareKind
    shares: float
    price: float
    probability_before: int
    probability_after: int
    profit_if_win: float
    profit_if_win_display: str
    profit_if_win_pct: float

    @classmethod
    def from_trade(
        cls, before: Market, after: Market, kind: ShareKind, price: Money, shares: ShareQuantity
    ) -> "BuyResponse":
        profit = shares.value - price.value
        return cls(
            market_id=before.id,
            question=before.question,
            kind=kind,
            shares=shares.value,
            price=price.value,
            probability_before=before.probability,
            probability_after=after.probability,
            profit_if_win=profit,
            profit_if_win_display=money_to_display(profit),
            profit_if_win_pct=(shares.value / price.value - 1.0) * 100.0,
        )


class SellResponse(BaseModel):
    market_id: int
    question: str
    kind: ShareKind
    shares_sold: float
    shares_sold_display: str
    sale_price: float
    sale_price_display: str
    probability_before: int
    probability_after: int

    @classmethod
    def from_trade(
        cls, before: Market, after: Market, sold: UserShareBalance, price: Money
    ) -> "SellResponse":
        return cls(
            market_id=before.id,
            question=before.question,
            kind=sold.kind,
            shares_sold=sold.quantity.value,
            shares_sold_display=shares_to_display(sold.quantity.value),
            sale_price=price.value,
            sale_price_display=str(price),
            probability_before=before.probability,
            probability_after=after.probability,
        )


class ResolveResponse(BaseModel):
    outcome: ResolveOutcome
    market: MarketDetail
