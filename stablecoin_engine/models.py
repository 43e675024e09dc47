"""Data models: all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PriceReading:
    """Latest answer of a price feed, in the feed's native precision."""

    price: int
    decimals: int
    timestamp: int


@dataclass(frozen=True)
class AccountInformation:
    """Debt and collateral USD value of a single user (18 decimals)."""

    total_debt: int
    collateral_value_usd: int


@dataclass(frozen=True)
class PositionReport:
    """Health snapshot of a single position."""

    user: str
    total_debt: int
    collateral_value_usd: int
    health_factor: int
    status: str
