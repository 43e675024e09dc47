"""Health factor computation and the minimum-safety check."""
from __future__ import annotations

import logging

from ..constants import (
    LIQUIDATION_PRECISION,
    LIQUIDATION_THRESHOLD,
    MAX_HEALTH_FACTOR,
    MIN_HEALTH_FACTOR,
    PRECISION,
)
from ..errors import BreaksHealthFactorError, DebtExceedsCollateralError
from .valuation import ValuationService

logger = logging.getLogger(__name__)


class HealthFactorEngine:
    """Risk ratio of a position, 18-decimal fixed point (1e18 == 1.0).

    ``hf = collateral_usd * threshold / precision * 1e18 / debt``. With the
    default 50/100 threshold a position needs twice its debt in collateral to
    stay above 1.0.
    """

    def __init__(
        self,
        valuation: ValuationService,
        liquidation_threshold: int = LIQUIDATION_THRESHOLD,
        liquidation_precision: int = LIQUIDATION_PRECISION,
        min_health_factor: int = MIN_HEALTH_FACTOR,
    ) -> None:
        self._valuation = valuation
        self.liquidation_threshold = liquidation_threshold
        self.liquidation_precision = liquidation_precision
        self.min_health_factor = min_health_factor

    def ratio(self, total_debt: int, collateral_usd: int) -> int:
        if total_debt == 0:
            return MAX_HEALTH_FACTOR
        adjusted = collateral_usd * self.liquidation_threshold // self.liquidation_precision
        return adjusted * PRECISION // total_debt

    def calculate_health_factor(self, total_debt: int, collateral_usd: int) -> int:
        """Health factor for the given figures; zero debt is MAX_HEALTH_FACTOR."""
        if total_debt == 0:
            return MAX_HEALTH_FACTOR
        if total_debt >= collateral_usd:
            raise DebtExceedsCollateralError(
                f"Debt {total_debt} is not below collateral value {collateral_usd}"
            )
        return self.ratio(total_debt, collateral_usd)

    async def health_factor(self, user: str) -> int:
        info = await self._valuation.account_information(user)
        return self.calculate_health_factor(info.total_debt, info.collateral_value_usd)

    async def raw_health_factor(self, user: str) -> int:
        """Health factor without the debt-exceeds-collateral guard.

        Underwater positions yield a value below 0.5e18 instead of raising;
        used to compare a position before and after liquidation.
        """
        info = await self._valuation.account_information(user)
        return self.ratio(info.total_debt, info.collateral_value_usd)

    async def is_liquidatable(self, user: str) -> bool:
        try:
            return await self.health_factor(user) <= self.min_health_factor
        except DebtExceedsCollateralError:
            return True

    async def assert_safe(self, user: str) -> None:
        """Raise BreaksHealthFactorError unless ``user`` is above the minimum."""
        hf = await self.health_factor(user)
        if hf <= self.min_health_factor:
            logger.info("Health factor of %s would be %d, rejecting", user, hf)
            raise BreaksHealthFactorError(hf)
