"""Unit tests for EconomyService (snapshot ownership, commit hook, quote/confirm)."""

import asyncio

import pytest

from src.pm_common.enums import ResolveOutcome, ShareKind
from src.pm_common.errors import (
    ConflictingPositionError,
    InsufficientFundsError,
    MarketClosedError,
    MarketNotFoundError,
    StaleQuoteError,
)
from src.pm_economy.application.schemas import dump_snapshot, load_snapshot
from src.pm_economy.application.service import EconomyService
from src.pm_economy.domain.economy import Economy

NOW = 1_000


class _Recorder:
    def __init__(self) -> None:
        self.commits: list[Economy] = []

    async def __call__(self, economy: Economy) -> None:
        self.commits.append(economy)


@pytest.fixture
def recorder() -> _Recorder:
    return _Recorder()


@pytest.fixture
def service(market_economy: Economy, recorder: _Recorder) -> EconomyService:
    return EconomyService(market_economy, on_commit=recorder, clock=lambda: NOW)


class TestQueries:
    @pytest.mark.asyncio
    async def test_balance_and_listing(self, service: EconomyService) -> None:
        bal = await service.balance("alice")
        assert bal.balance_display == "$950.00"
        markets = await service.list_markets()
        assert [m.market_id for m in markets] == [0]
        detail = await service.show_market(0)
        assert detail.probability == 50

    @pytest.mark.asyncio
    async def test_show_missing_market(self, service: EconomyService) -> None:
        with pytest.raises(MarketNotFoundError):
            await service.show_market(9)

    @pytest.mark.asyncio
    async def test_queries_do_not_commit(
        self, service: EconomyService, recorder: _Recorder
    ) -> None:
        await service.balances()
        await service.portfolio("bob")
        await service.list_markets()
        assert recorder.commits == []


class TestCommands:
    @pytest.mark.asyncio
    async def test_buy_commits_and_persists(
        self, service: EconomyService, recorder: _Recorder
    ) -> None:
        resp = await service.buy("bob", 0, 100.0, ShareKind.YES)
        assert resp.probability_before == 50
        assert resp.probability_after > 50
        assert service.economy.balance("bob").value == 900.0
        assert recorder.commits == [service.economy]

    @pytest.mark.asyncio
    async def test_failed_buy_leaves_snapshot(
        self, service: EconomyService, recorder: _Recorder
    ) -> None:
        before = service.economy
        with pytest.raises(InsufficientFundsError):
            await service.buy("bob", 0, 5000.0, ShareKind.YES)
        assert service.economy is before
        assert recorder.commits == []

    @pytest.mark.asyncio
    async def test_conflicting_position(self, service: EconomyService) -> None:
        await service.buy("bob", 0, 10.0, ShareKind.YES)
        with pytest.raises(ConflictingPositionError):
            await service.buy("bob", 0, 10.0, ShareKind.NO)

    @pytest.mark.asyncio
    async def test_sell(self, service: EconomyService) -> None:
        await service.buy("bob", 0, 10.0, ShareKind.NO)
        resp = await service.sell("bob", 0)
        assert resp.kind is ShareKind.NO
        assert resp.sale_price == pytest.approx(10.0)

    @pytest.mark.asyncio
    async def test_create_and_resolve(
        self, service: EconomyService, recorder: _Recorder
    ) -> None:
        detail = await service.create_market("bob", "New?", "desc", close_timestamp=NOW + 60)
        assert detail.market_id == 1
        resolved = await service.resolve_market("bob", 1, ResolveOutcome.YES)
        assert resolved.outcome is ResolveOutcome.YES
        assert resolved.market.market_id == 1
        assert len(recorder.commits) == 2
        with pytest.raises(MarketNotFoundError):
            await service.show_market(1)

    @pytest.mark.asyncio
    async def test_undo_does_not_commit(
        self, service: EconomyService, recorder: _Recorder
    ) -> None:
        resp = await service.resolve_market("alice", 0, ResolveOutcome.UNDO)
        assert resp.outcome is ResolveOutcome.UNDO
        assert recorder.commits == []
        assert (await service.show_market(0)).market_id == 0

    @pytest.mark.asyncio
    async def test_tip(self, service: EconomyService) -> None:
        resp = await service.tip("bob", "carol", 25.0)
        assert resp.user_id == "bob"
        assert resp.balance == 975.0
        assert service.economy.balance("carol").value == 1025.0

    @pytest.mark.asyncio
    async def test_closed_market(self, market_economy: Economy) -> None:
        svc = EconomyService(market_economy, clock=lambda: NOW)
        await svc.create_market("alice", "Soon?", "d", close_timestamp=NOW)
        with pytest.raises(MarketClosedError):
            await svc.buy("bob", 1, 1.0, ShareKind.YES)
        summary = (await svc.list_markets())[1]
        assert summary.status.value == "CLOSED"

    @pytest.mark.asyncio
    async def test_persist_failure_keeps_old_snapshot(self, market_economy: Economy) -> None:
        async def broken(_: Economy) -> None:
            raise OSError("disk full")

        svc = EconomyService(market_economy, on_commit=broken, clock=lambda: NOW)
        with pytest.raises(OSError):
            await svc.buy("bob", 0, 10.0, ShareKind.YES)
        assert svc.economy is market_economy

    @pytest.mark.asyncio
    async def test_persisted_snapshot_reloads(self, market_economy: Economy) -> None:
        saved: list[str] = []

        async def persist(economy: Economy) -> None:
            saved.append(dump_snapshot(economy))

        svc = EconomyService(market_economy, on_commit=persist, clock=lambda: NOW)
        await svc.buy("bob", 0, 10.0, ShareKind.YES)
        assert load_snapshot(saved[-1]) == svc.economy


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_buys_all_applied(self, service: EconomyService) -> None:
        users = [f"user{i}" for i in range(10)]
        await asyncio.gather(*(service.buy(u, 0, 10.0, ShareKind.YES) for u in users))
        market = service.economy.market(0)
        assert set(market.positions) == set(users)
        assert len(market.transaction_history) == 10


class TestQuoteConfirm:
    @pytest.mark.asyncio
    async def test_quote_does_not_commit(
        self, service: EconomyService, recorder: _Recorder
    ) -> None:
        quote = await service.quote_buy("bob", 0, 50.0, ShareKind.NO)
        assert quote.preview.probability_after < 50
        assert recorder.commits == []
        assert "bob" not in service.economy.market(0).positions

    @pytest.mark.asyncio
    async def test_confirm_unchanged_market(self, service: EconomyService) -> None:
        quote = await service.quote_buy("bob", 0, 50.0, ShareKind.NO)
        resp = await service.confirm_buy(quote)
        assert resp.shares == pytest.approx(quote.preview.shares)
        assert service.economy.market(0).positions["bob"].kind is ShareKind.NO

    @pytest.mark.asyncio
    async def test_confirm_after_market_moved(self, service: EconomyService) -> None:
        quote = await service.quote_buy("bob", 0, 50.0, ShareKind.NO)
        await service.buy("carol", 0, 5.0, ShareKind.YES)
        before = service.economy
        with pytest.raises(StaleQuoteError):
            await service.confirm_buy(quote)
        assert service.economy is before

    @pytest.mark.asyncio
    async def test_confirm_after_resolution(self, service: EconomyService) -> None:
        quote = await service.quote_buy("bob", 0, 50.0, ShareKind.NO)
        await service.resolve_market("alice", 0, ResolveOutcome.NO)
        with pytest.raises(MarketNotFoundError):
            await service.confirm_buy(quote)
