"""Synthetic issuer protocol: mints and burns the pegged asset."""
from typing import Protocol


class SyntheticIssuer(Protocol):
    """Abstract interface for the synthetic-asset token."""

    async def mint(self, to: str, amount: int) -> bool: ...

    async def transfer_in(self, from_: str, amount: int) -> bool: ...

    async def transfer_out(self, to: str, amount: int) -> bool: ...

    async def burn(self, amount: int) -> None: ...
