"""Constants and small async helpers shared by the tests."""
from __future__ import annotations

from stablecoin_engine.services import PositionManager

ETHER = 10**18

WETH = "WETH"
WBTC = "WBTC"
DSC = "DSC"

ETH_USD_FEED = "eth-usd"
BTC_USD_FEED = "btc-usd"
ETH_USD_PRICE = 2000 * 10**8
BTC_USD_PRICE = 1000 * 10**8

USER = "alice"
LIQUIDATOR = "liquidator"

STARTING_BALANCE = 10 * ETHER
COLLATERAL_AMOUNT = 10 * ETHER
AMOUNT_TO_MINT = 100 * ETHER
COLLATERAL_TO_COVER = 20 * ETHER


async def open_position(
    manager: PositionManager,
    user: str = USER,
    collateral: int = COLLATERAL_AMOUNT,
    debt: int = AMOUNT_TO_MINT,
) -> None:
    """Deposit WETH and mint against it."""
    await manager.deposit_and_mint(user, WETH, collateral, debt)
