"""Over-collateralized USD stablecoin engine."""
from .errors import EngineError
from .ledgers import LedgerStore
from .registry import CollateralRegistry
from .services import PositionManager

__all__ = ["CollateralRegistry", "EngineError", "LedgerStore", "PositionManager"]

__version__ = "0.1.0"
