"""Integration tests for the liquidation scanner."""
from __future__ import annotations

import logging

import pytest

from stablecoin_engine.constants import MAX_HEALTH_FACTOR, MIN_HEALTH_FACTOR
from stablecoin_engine.oracles import StaticPriceFeed
from stablecoin_engine.services import LiquidationScanner, PositionManager
from stablecoin_engine.services.scanner import (
    HEALTHY,
    LIQUIDATABLE,
    WARNING,
    format_health_factor,
    format_usd,
)
from stablecoin_engine.tokens import Token

from tests.helpers import (
    BTC_USD_FEED,
    ETH_USD_FEED,
    ETHER,
    USER,
    WBTC,
    WETH,
    open_position,
)


@pytest.fixture()
def scanner(manager: PositionManager) -> LiquidationScanner:
    return LiquidationScanner(manager, warning_health_factor=15 * 10**17)


class TestFormatting:
    def test_health_factor(self) -> None:
        assert format_health_factor(MAX_HEALTH_FACTOR) == "inf"
        assert format_health_factor(MIN_HEALTH_FACTOR * 5 // 4) == "1.2500"

    def test_usd(self) -> None:
        assert format_usd(1234 * ETHER + ETHER // 2) == "$1,234.50"


class TestScan:
    @pytest.mark.asyncio
    async def test_empty_engine(self, scanner: LiquidationScanner) -> None:
        assert await scanner.scan() == ()

    @pytest.mark.asyncio
    async def test_classifies_and_sorts_worst_first(
        self,
        manager: PositionManager,
        scanner: LiquidationScanner,
        weth: Token,
        price_feed: StaticPriceFeed,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        weth.mint("bob", ETHER)
        weth.mint("carol", ETHER)
        await open_position(manager)
        # $1000 adjusted over $800 of debt
        await open_position(manager, "bob", ETHER, 800 * ETHER)
        await manager.deposit("carol", WETH, ETHER)

        with caplog.at_level(logging.INFO):
            reports = await scanner.scan()

        assert [r.user for r in reports] == ["bob", USER, "carol"]
        assert [r.status for r in reports] == [WARNING, HEALTHY, HEALTHY]
        assert reports[0].health_factor == MIN_HEALTH_FACTOR * 5 // 4
        assert reports[2].health_factor == MAX_HEALTH_FACTOR
        assert any("bob" in r.message and r.levelno == logging.WARNING for r in caplog.records)

    @pytest.mark.asyncio
    async def test_price_drop_flags_liquidatable(
        self,
        manager: PositionManager,
        scanner: LiquidationScanner,
        weth: Token,
        price_feed: StaticPriceFeed,
    ) -> None:
        weth.mint("bob", ETHER)
        await open_position(manager)
        await open_position(manager, "bob", ETHER, 800 * ETHER)

        price_feed.set_price(ETH_USD_FEED, 1500 * 10**8)

        assert await scanner.liquidatable() == ("bob",)

    @pytest.mark.asyncio
    async def test_underwater_position_is_reported(
        self,
        manager: PositionManager,
        scanner: LiquidationScanner,
        price_feed: StaticPriceFeed,
    ) -> None:
        await open_position(manager)
        price_feed.set_price(ETH_USD_FEED, 5 * 10**8)

        (report,) = await scanner.scan()
        assert report.status == LIQUIDATABLE
        assert report.collateral_value_usd == 50 * ETHER
        assert report.health_factor == MIN_HEALTH_FACTOR // 4

    @pytest.mark.asyncio
    async def test_unpriceable_position_is_skipped(
        self,
        manager: PositionManager,
        scanner: LiquidationScanner,
        wbtc: Token,
        price_feed: StaticPriceFeed,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        wbtc.mint("bob", 10**8)
        await open_position(manager)
        await manager.deposit("bob", WBTC, 10**8)
        price_feed.set_price(BTC_USD_FEED, 0)

        with caplog.at_level(logging.ERROR):
            reports = await scanner.scan()

        assert [r.user for r in reports] == [USER]
        assert any(
            "bob" in r.message and r.levelno == logging.ERROR for r in caplog.records
        )
