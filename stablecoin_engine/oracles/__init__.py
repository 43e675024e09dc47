"""Price feeds and the per-asset oracle adapter."""
from .adapter import PriceOracleAdapter
from .pyth import PythPriceFeed
from .static import StaticPriceFeed

__all__ = ["PriceOracleAdapter", "PythPriceFeed", "StaticPriceFeed"]
