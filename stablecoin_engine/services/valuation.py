"""USD valuation of collateral baskets."""
from __future__ import annotations

import asyncio
import logging

from ..ledgers import LedgerStore
from ..models import AccountInformation
from ..registry import CollateralRegistry

logger = logging.getLogger(__name__)


class ValuationService:
    """Price a user's collateral through the registry's oracles.

    Nothing is cached: every call reads the latest oracle answers.
    """

    def __init__(self, registry: CollateralRegistry, store: LedgerStore) -> None:
        self._registry = registry
        self._store = store

    async def usd_value(self, asset: str, amount: int) -> int:
        return await self._registry.require(asset).usd_value(amount)

    async def token_amount_from_usd(self, asset: str, usd_amount: int) -> int:
        return await self._registry.require(asset).token_amount_from_usd(usd_amount)

    async def collateral_value_usd(self, user: str) -> int:
        """Total USD value (18 decimals) of everything ``user`` has deposited."""
        # Zero balances contribute nothing, so only held assets are priced
        holdings = [
            (asset, amount)
            for asset, amount in self._store.collateral.assets_of(user).items()
            if asset in self._registry
        ]
        if not holdings:
            return 0

        values = await asyncio.gather(
            *(self.usd_value(asset, amount) for asset, amount in holdings)
        )
        total = sum(values)
        logger.debug("Collateral value of %s: %d", user, total)
        return total

    async def account_information(self, user: str) -> AccountInformation:
        return AccountInformation(
            total_debt=self._store.debt.balance(user),
            collateral_value_usd=await self.collateral_value_usd(user),
        )
