"""EconomyService: single owner of the live Economy snapshot.

Every mutating call runs read -> compute -> persist -> install under one
asyncio.Lock, so two callers can never both commit against the same stale
base. The domain layer stays synchronous and pure; this module is the only
place that holds state.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from src.pm_common.datetime_utils import utc_timestamp
from src.pm_common.enums import ResolveOutcome, ShareKind
from src.pm_common.errors import StaleQuoteError
from src.pm_common.units import Money, ShareQuantity
from src.pm_economy.application.schemas import (
    BalanceResponse,
    BuyResponse,
    MarketDetail,
    MarketSummary,
    PortfolioResponse,
    ResolveResponse,
    SellResponse,
)
from src.pm_economy.domain.economy import Economy
from src.pm_economy.domain.invariants import verify_economy_invariants
from src.pm_market.domain.models import Market, MarketId, UserId

logger = logging.getLogger(__name__)

CommitHook = Callable[[Economy], Awaitable[None]]


@dataclass(frozen=True)
class BuyQuote:
    """A priced but uncommitted buy, bound to the market state it was priced on."""

    caller: UserId
    market_id: MarketId
    amount: Money
    kind: ShareKind
    market: Market
    preview: BuyResponse


class EconomyService:
    def __init__(
        self,
        economy: Economy | None = None,
        on_commit: CommitHook | None = None,
        clock: Callable[[], int] = utc_timestamp,
    ) -> None:
        self._economy = economy if economy is not None else Economy.new()
        self._on_commit = on_commit
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def economy(self) -> Economy:
        """Current snapshot. Immutable, safe to read without the lock."""
        return self._economy

    async def _commit(self, new_economy: Economy, action: str) -> None:
        """Persist then install. Caller must hold the lock."""
        verify_economy_invariants(new_economy)
        if self._on_commit is not None:
            await self._on_commit(new_economy)
        self._economy = new_economy
        logger.info("Committed %s: %r", action, new_economy)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def balance(self, user: UserId) -> BalanceResponse:
        return BalanceResponse.from_money(user, self._economy.balance(user))

    async def balances(self) -> list[BalanceResponse]:
        return [BalanceResponse.from_money(u, b) for u, b in self._economy.balances()]

    async def portfolio(self, user: UserId) -> PortfolioResponse:
        return PortfolioResponse.from_economy(self._economy, user)

    async def list_markets(self) -> list[MarketSummary]:
        now = self._clock()
        return [MarketSummary.from_market(m, now) for m in self._economy.list_markets()]

    async def show_market(self, market_id: MarketId) -> MarketDetail:
        return MarketDetail.from_market(self._economy.market(market_id), self._clock())

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create_market(
        self,
        creator: UserId,
        question: str,
        description: str,
        close_timestamp: int | None = None,
    ) -> MarketDetail:
        async with self._lock:
            new_economy, market_id = self._economy.create_market(
                creator, question, description, close_timestamp
            )
            await self._commit(new_economy, f"create_market {market_id}")
        return MarketDetail.from_market(new_economy.market(market_id), self._clock())

    async def resolve_market(
        self, caller: UserId, market_id: MarketId, outcome: ResolveOutcome
    ) -> ResolveResponse:
        async with self._lock:
            new_economy, market = self._economy.resolve_market(caller, market_id, outcome)
            if new_economy is not self._economy:
                await self._commit(new_economy, f"resolve_market {market_id}")
        return ResolveResponse(
            outcome=outcome, market=MarketDetail.from_market(market, self._clock())
        )

    async def quote_buy(
        self, caller: UserId, market_id: MarketId, amount: float, kind: ShareKind
    ) -> BuyQuote:
        """Price a buy against the current snapshot without committing it."""
        money = Money(amount)
        economy = self._economy
        new_economy, shares = economy.buy(caller, market_id, money, kind, now=self._clock())
        before = economy.market(market_id)
        return BuyQuote(
            caller=caller,
            market_id=market_id,
            amount=money,
            kind=kind,
            market=before,
            preview=BuyResponse.from_trade(
                before, new_economy.market(market_id), kind, money, shares
            ),
        )

    async def confirm_buy(self, quote: BuyQuote) -> BuyResponse:
        """Commit a quoted buy if the market is exactly as it was when quoted."""
        async with self._lock:
            current = self._economy.market(quote.market_id)
            if current != quote.market:
                logger.info("Stale quote rejected: market=%d", quote.market_id)
                raise StaleQuoteError(quote.market_id)
            return await self._buy_locked(quote.caller, quote.market_id, quote.amount, quote.kind)

    async def buy(
        self, caller: UserId, market_id: MarketId, amount: float, kind: ShareKind
    ) -> BuyResponse:
        async with self._lock:
            return await self._buy_locked(caller, market_id, Money(amount), kind)

    async def _buy_locked(
        self, caller: UserId, market_id: MarketId, amount: Money, kind: ShareKind
    ) -> BuyResponse:
        before = self._economy.market(market_id)
        new_economy, shares = self._economy.buy(
            caller, market_id, amount, kind, now=self._clock()
        )
        await self._commit(new_economy, f"buy {market_id}")
        return BuyResponse.from_trade(before, new_economy.market(market_id), kind, amount, shares)

    async def sell(
        self, caller: UserId, market_id: MarketId, amount: float | None = None
    ) -> SellResponse:
        quantity = None if amount is None else ShareQuantity(amount)
        async with self._lock:
            before = self._economy.market(market_id)
            new_economy, sold, price = self._economy.sell(
                caller, market_id, quantity, now=self._clock()
            )
            await self._commit(new_economy, f"sell {market_id}")
        return SellResponse.from_trade(before, new_economy.market(market_id), sold, price)

    async def tip(self, caller: UserId, recipient: UserId, amount: float) -> BalanceResponse:
        async with self._lock:
            new_economy, remaining = self._economy.tip(caller, recipient, Money(amount))
            await self._commit(new_economy, f"tip {caller} -> {recipient}")
        return BalanceResponse.from_money(caller, remaining)
