"""Service modules"""
from .health import HealthFactorEngine
from .position_manager import PositionManager
from .scanner import LiquidationScanner
from .valuation import ValuationService

__all__ = ["HealthFactorEngine", "LiquidationScanner", "PositionManager", "ValuationService"]
