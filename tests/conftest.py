"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from stablecoin_engine.config import (
    AppConfig,
    CollateralConfig,
    EngineConfig,
    PriceOracleConfig,
    StaticPriceConfig,
    SyntheticConfig,
)
from stablecoin_engine.oracles import PriceOracleAdapter, StaticPriceFeed
from stablecoin_engine.registry import CollateralRegistry
from stablecoin_engine.services import PositionManager
from stablecoin_engine.tokens import SyntheticToken, Token, TokenCustodian

from tests.helpers import (
    BTC_USD_FEED,
    BTC_USD_PRICE,
    DSC,
    ETH_USD_FEED,
    ETH_USD_PRICE,
    STARTING_BALANCE,
    USER,
    WBTC,
    WETH,
)


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def price_feed() -> StaticPriceFeed:
    feed = StaticPriceFeed()
    feed.set_price(ETH_USD_FEED, ETH_USD_PRICE, decimals=8)
    feed.set_price(BTC_USD_FEED, BTC_USD_PRICE, decimals=8)
    return feed


@pytest.fixture()
def registry(price_feed: StaticPriceFeed) -> CollateralRegistry:
    return CollateralRegistry(
        [WETH, WBTC],
        [
            PriceOracleAdapter(price_feed, ETH_USD_FEED, token_decimals=18),
            PriceOracleAdapter(price_feed, BTC_USD_FEED, token_decimals=8),
        ],
    )


@pytest.fixture()
def weth() -> Token:
    return Token(WETH, {USER: STARTING_BALANCE})


@pytest.fixture()
def wbtc() -> Token:
    return Token(WBTC, {USER: 10 * 10**8})


@pytest.fixture()
def dsc() -> Token:
    return Token(DSC)


@pytest.fixture()
def custodian(weth: Token, wbtc: Token) -> TokenCustodian:
    return TokenCustodian([weth, wbtc])


@pytest.fixture()
def issuer(dsc: Token) -> SyntheticToken:
    return SyntheticToken(dsc)


@pytest.fixture()
def manager(
    registry: CollateralRegistry, issuer: SyntheticToken, custodian: TokenCustodian
) -> PositionManager:
    return PositionManager(registry, issuer, custodian)


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_app_config() -> AppConfig:
    return AppConfig(
        engine=EngineConfig(max_price_age=0),
        collateral=(
            CollateralConfig(asset=WETH, feed=ETH_USD_FEED, decimals=18),
            CollateralConfig(asset=WBTC, feed=BTC_USD_FEED, decimals=8),
        ),
        synthetic=SyntheticConfig(symbol=DSC, decimals=18),
        price_oracle=PriceOracleConfig(
            provider="static",
            static={
                ETH_USD_FEED: StaticPriceConfig(price=ETH_USD_PRICE, decimals=8),
                BTC_USD_FEED: StaticPriceConfig(price=BTC_USD_PRICE, decimals=8),
            },
        ),
    )


SAMPLE_YAML = textwrap.dedent("""\
    engine:
      liquidation_threshold: 50
      liquidation_precision: 100
      liquidation_bonus: 10
      min_health_factor: 1e18
      warning_health_factor: 1.5e18
      max_price_age: 0
    collateral:
      - asset: WETH
        decimals: 18
        feed: eth-usd
      - asset: WBTC
        decimals: 8
        feed: btc-usd
    synthetic:
      symbol: DSC
      decimals: 18
    price_oracle:
      provider: static
      pyth:
        hermes_url: "https://hermes.example.com"
      static:
        eth-usd: {price: 2000e8, decimals: 8}
        btc-usd: {price: 1000e8, decimals: 8}
    state:
      path: state.yaml
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
