"""Static registry of approved collateral assets and their price oracles."""
from __future__ import annotations

from collections.abc import Sequence
from types import MappingProxyType

from .errors import ConfigMismatchError, UnsupportedCollateralError
from .oracles.adapter import PriceOracleAdapter


class CollateralRegistry:
    """Immutable mapping of collateral asset -> oracle adapter.

    Built once from parallel sequences; assets cannot be added or removed
    afterwards. An asset whose oracle handle is ``None`` counts as not
    registered.
    """

    def __init__(
        self,
        assets: Sequence[str],
        oracles: Sequence[PriceOracleAdapter | None],
    ) -> None:
        if len(assets) != len(oracles):
            raise ConfigMismatchError(
                f"{len(assets)} collateral assets but {len(oracles)} price feeds"
            )
        if len(set(assets)) != len(assets):
            raise ConfigMismatchError("Collateral assets must be unique")

        self._oracles = MappingProxyType(dict(zip(assets, oracles)))
        self._assets = tuple(a for a in assets if self._oracles[a] is not None)

    @property
    def assets(self) -> tuple[str, ...]:
        """Registered asset identifiers in construction order."""
        return self._assets

    def oracle_for(self, asset: str) -> PriceOracleAdapter | None:
        """Return the asset's oracle, or ``None`` when it is not configured."""
        return self._oracles.get(asset)

    def require(self, asset: str) -> PriceOracleAdapter:
        oracle = self.oracle_for(asset)
        if oracle is None:
            raise UnsupportedCollateralError(f"Collateral '{asset}' is not supported")
        return oracle

    def __contains__(self, asset: object) -> bool:
        return isinstance(asset, str) and self.oracle_for(asset) is not None

    def __len__(self) -> int:
        return len(self._assets)
