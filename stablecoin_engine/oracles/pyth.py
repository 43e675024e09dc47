"""Pyth Network price feed: latest readings from the Hermes REST endpoint."""
import asyncio
import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ..config import PythConfig
from ..errors import InvalidPriceError
from ..models import PriceReading

logger = logging.getLogger(__name__)


def _parse_reading(item: dict[str, Any]) -> PriceReading:
    """Convert one Hermes ``parsed`` entry into a PriceReading."""
    price_data = item.get("price", {})
    price_raw = int(price_data.get("price", 0))
    expo = int(price_data.get("expo", 0))
    publish_time = int(price_data.get("publish_time", 0))

    # Pyth scales prices by 10**expo with expo <= 0
    if expo > 0:
        return PriceReading(price=price_raw * 10**expo, decimals=0, timestamp=publish_time)
    return PriceReading(price=price_raw, decimals=-expo, timestamp=publish_time)


class PythPriceFeed:
    """Fetch latest price readings from Pyth Network."""

    def __init__(self, config: PythConfig) -> None:
        self.hermes_url = config.hermes_url
        self.timeout = config.timeout
        # Feed ids waiting for the next batched request
        self._pending: dict[str, asyncio.Future[PriceReading]] = {}
        self._flush_task: asyncio.Task[None] | None = None
        self._flushes: set[asyncio.Task[None]] = set()

    async def fetch_readings(self, feed_ids: list[str]) -> dict[str, PriceReading]:
        """Fetch the latest readings for several feeds in one request.

        Feed ids missing from the response are absent from the result.
        Transport failures raise InvalidPriceError.
        """
        readings: dict[str, PriceReading] = {}

        unique_ids = sorted(set(feed_ids))
        if not unique_ids:
            return readings

        query_params = "&".join([f"ids[]={fid}" for fid in unique_ids])
        url = f"{self.hermes_url}?{query_params}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(
                    url, timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    if response.status != 200:
                        logger.error(
                            "Error fetching prices from Pyth: HTTP %s", response.status
                        )
                        raise InvalidPriceError(
                            f"Pyth returned HTTP {response.status}"
                        )

                    data = await response.json()
        except InvalidPriceError:
            raise
        except Exception as e:
            logger.error("Error fetching prices from Pyth: %s", e)
            raise InvalidPriceError(f"Pyth request failed: {e}") from e

        wanted = set(unique_ids)
        for item in data.get("parsed", []):
            feed_id = item.get("id", "")
            # Hermes echoes ids without the 0x prefix
            key = feed_id if feed_id in wanted else f"0x{feed_id}"
            if key in wanted:
                readings[key] = _parse_reading(item)

        for feed_id, reading in sorted(readings.items()):
            logger.debug(
                "Pyth %s: %d (1e-%d) at %d",
                feed_id, reading.price, reading.decimals, reading.timestamp,
            )
        return readings

    async def latest_price(self, feed_id: str) -> PriceReading:
        """Fetch the latest reading of a single feed.

        Calls made concurrently (for example while a collateral basket is
        valued with ``asyncio.gather``) share one Hermes request.
        """
        loop = asyncio.get_running_loop()
        future = self._pending.get(feed_id)
        if future is None:
            future = loop.create_future()
            self._pending[feed_id] = future
            if self._flush_task is None:
                self._flush_task = loop.create_task(self._flush_pending())
                self._flushes.add(self._flush_task)
                self._flush_task.add_done_callback(self._flushes.discard)
        return await asyncio.shield(future)

    async def _flush_pending(self) -> None:
        # Let every concurrently scheduled caller register its feed id first
        await asyncio.sleep(0)
        batch, self._pending = self._pending, {}
        self._flush_task = None

        try:
            readings = await self.fetch_readings(list(batch))
        except Exception as e:
            error = e if isinstance(e, InvalidPriceError) else InvalidPriceError(
                f"Unusable Pyth response: {e}"
            )
            for future in batch.values():
                if not future.done():
                    future.set_exception(error)
            return

        for feed_id, future in batch.items():
            if future.done():
                continue
            if feed_id in readings:
                future.set_result(readings[feed_id])
            else:
                future.set_exception(
                    InvalidPriceError(f"Pyth returned no price for feed {feed_id}")
                )
