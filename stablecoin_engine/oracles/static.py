"""In-memory price feed with settable answers."""
from __future__ import annotations

import time
from collections.abc import Callable

from ..config import StaticPriceConfig
from ..errors import InvalidPriceError
from ..models import PriceReading


class StaticPriceFeed:
    """Price feed whose answers are set by hand (simulation and tests)."""

    def __init__(
        self,
        prices: dict[str, StaticPriceConfig] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._clock = clock
        self._readings: dict[str, PriceReading] = {}
        for feed_id, entry in (prices or {}).items():
            self.set_price(feed_id, entry.price, entry.decimals)

    def set_price(
        self,
        feed_id: str,
        price: int,
        decimals: int = 8,
        timestamp: int | None = None,
    ) -> None:
        """Publish a new answer for ``feed_id``."""
        if timestamp is None:
            timestamp = int(self._clock())
        self._readings[feed_id] = PriceReading(
            price=price, decimals=decimals, timestamp=timestamp
        )

    async def latest_price(self, feed_id: str) -> PriceReading:
        try:
            return self._readings[feed_id]
        except KeyError:
            raise InvalidPriceError(f"No price published for feed {feed_id}") from None
