"""Read-only sweep over every position, flagging the ones near liquidation."""
from __future__ import annotations

import asyncio
import logging

from ..constants import MAX_HEALTH_FACTOR, PRECISION
from ..errors import EngineError
from ..models import PositionReport
from .position_manager import PositionManager

logger = logging.getLogger(__name__)

HEALTHY = "healthy"
WARNING = "warning"
LIQUIDATABLE = "liquidatable"


def format_health_factor(health_factor: int) -> str:
    if health_factor == MAX_HEALTH_FACTOR:
        return "inf"
    return f"{health_factor / PRECISION:.4f}"


def format_usd(amount: int) -> str:
    return f"${amount / PRECISION:,.2f}"


class LiquidationScanner:
    """Classify every position of a manager by its health factor."""

    def __init__(self, manager: PositionManager, warning_health_factor: int) -> None:
        self._manager = manager
        self._health = manager.health
        self._warning_health_factor = warning_health_factor

    def _get_status(self, health_factor: int) -> str:
        if health_factor <= self._health.min_health_factor:
            return LIQUIDATABLE
        if health_factor < self._warning_health_factor:
            return WARNING
        return HEALTHY

    async def _report(self, user: str) -> PositionReport | None:
        try:
            info = await self._manager.account_information(user)
        except EngineError as e:
            logger.error("Skipping position of %s: %s", user, e)
            return None
        health_factor = self._health.ratio(info.total_debt, info.collateral_value_usd)
        return PositionReport(
            user=user,
            total_debt=info.total_debt,
            collateral_value_usd=info.collateral_value_usd,
            health_factor=health_factor,
            status=self._get_status(health_factor),
        )

    async def scan(self) -> tuple[PositionReport, ...]:
        """Report on every user with collateral or debt, worst first.

        Positions that cannot be priced are logged and left out.
        """
        users = self._manager.store.users()
        results = await asyncio.gather(*(self._report(user) for user in users))
        reports = [r for r in results if r is not None]

        for report in reports:
            log = logger.warning if report.status != HEALTHY else logger.info
            log(
                "Position %s · Collateral: %s  Debt: %s  HF: %s  [%s]",
                report.user,
                format_usd(report.collateral_value_usd),
                format_usd(report.total_debt),
                format_health_factor(report.health_factor),
                report.status,
            )

        return tuple(sorted(reports, key=lambda r: r.health_factor))

    async def liquidatable(self) -> tuple[str, ...]:
        return tuple(r.user for r in await self.scan() if r.status == LIQUIDATABLE)
