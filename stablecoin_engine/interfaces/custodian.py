"""Asset custodian protocol: moves collateral in and out of engine custody."""
from typing import Protocol


class AssetCustodian(Protocol):
    """Abstract interface for collateral token transfers."""

    async def transfer_in(self, asset: str, from_: str, amount: int) -> bool: ...

    async def transfer_out(self, asset: str, to: str, amount: int) -> bool: ...
