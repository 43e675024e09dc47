"""Protocol interfaces for the engine's external collaborators."""
from .custodian import AssetCustodian
from .issuer import SyntheticIssuer
from .price_feed import PriceFeed

__all__ = ["AssetCustodian", "PriceFeed", "SyntheticIssuer"]
