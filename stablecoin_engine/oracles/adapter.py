"""Price oracle adapter: one external feed per collateral asset."""
from __future__ import annotations

import logging
import time
from collections.abc import Callable

from ..constants import USD_DECIMALS
from ..errors import InvalidPriceError, StalePriceError
from ..interfaces.price_feed import PriceFeed
from ..models import PriceReading

logger = logging.getLogger(__name__)


class PriceOracleAdapter:
    """Convert raw feed readings for one collateral asset into USD figures.

    USD values are 18-decimal fixed point. A feed answer with ``d`` decimals is
    scaled up by ``10 ** (18 - d)`` (1e10 for the usual 8-decimal USD feeds)
    and the token's own decimal scale is divided out last, so integer
    arithmetic never loses precision before the final division.
    """

    def __init__(
        self,
        feed: PriceFeed,
        feed_id: str,
        token_decimals: int = 18,
        max_price_age: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.feed = feed
        self.feed_id = feed_id
        self.token_decimals = token_decimals
        self.max_price_age = max_price_age
        self._clock = clock

    @property
    def token_scale(self) -> int:
        return 10**self.token_decimals

    async def latest_reading(self) -> PriceReading:
        """Fetch the latest answer, rejecting non-positive and stale prices."""
        reading = await self.feed.latest_price(self.feed_id)

        if reading.price <= 0:
            raise InvalidPriceError(
                f"Feed {self.feed_id} returned non-positive price {reading.price}"
            )
        if reading.decimals > USD_DECIMALS:
            raise InvalidPriceError(
                f"Feed {self.feed_id} has {reading.decimals} decimals, more than {USD_DECIMALS}"
            )
        if self.max_price_age:
            age = int(self._clock()) - reading.timestamp
            if age > self.max_price_age:
                logger.warning(
                    "Stale price for feed %s: %ds old (limit %ds)",
                    self.feed_id, age, self.max_price_age,
                )
                raise StalePriceError(
                    f"Feed {self.feed_id} price is {age}s old, limit {self.max_price_age}s"
                )
        return reading

    @staticmethod
    def _oracle_scale(reading: PriceReading) -> int:
        return 10 ** (USD_DECIMALS - reading.decimals)

    async def price_of(self) -> int:
        """USD price of one whole token, 18 decimals."""
        reading = await self.latest_reading()
        return reading.price * self._oracle_scale(reading)

    async def usd_value(self, quantity: int) -> int:
        """USD value (18 decimals) of ``quantity`` base units of the token."""
        if quantity == 0:
            return 0
        reading = await self.latest_reading()
        return reading.price * self._oracle_scale(reading) * quantity // self.token_scale

    async def token_amount_from_usd(self, usd_amount: int) -> int:
        """Base units of the token worth ``usd_amount`` (18 decimals)."""
        reading = await self.latest_reading()
        return usd_amount * self.token_scale // (reading.price * self._oracle_scale(reading))
