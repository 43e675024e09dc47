"""Engine errors. Every failure aborts the operation and leaves state unchanged."""


class EngineError(Exception):
    """Base class for engine errors"""
    pass


class ZeroAmountError(EngineError):
    """Amount must be greater than zero"""
    pass


class ConfigMismatchError(EngineError):
    """Collateral assets and price feeds do not line up"""
    pass


class UnsupportedCollateralError(EngineError):
    """Asset is not a registered collateral (or has no oracle)"""
    pass


class TransferFailedError(EngineError):
    """An external asset movement failed"""
    pass


class MintFailedError(TransferFailedError):
    """The synthetic-asset issuer refused to mint"""
    pass


class DebtExceedsCollateralError(EngineError):
    """Debt is greater than or equal to the collateral USD value"""
    pass


class BreaksHealthFactorError(EngineError):
    """Operation would leave the health factor at or below the minimum"""

    def __init__(self, health_factor: int) -> None:
        super().__init__(f"Health factor {health_factor} is at or below the minimum")
        self.health_factor = health_factor


class HealthFactorOkError(EngineError):
    """Position is healthy and cannot be liquidated"""
    pass


class HealthFactorNotImprovedError(EngineError):
    """Liquidation left the user's health factor worse than before"""
    pass


class InsufficientCollateralError(EngineError):
    """Redeem amount exceeds the deposited collateral"""
    pass


class InsufficientCollateralForLiquidationError(EngineError):
    """User collateral cannot cover the repaid debt plus bonus"""
    pass


class BurnExceedsDebtError(EngineError):
    """Burn amount exceeds the minted debt"""
    pass


class InvalidPriceError(EngineError):
    """Price feed returned a missing or non-positive price"""
    pass


class StalePriceError(InvalidPriceError):
    """Price feed reading is older than the allowed age"""
    pass


class ReentrancyError(EngineError):
    """A position operation was entered while another one is in flight"""
    pass


class InsufficientBalanceError(EngineError):
    """Token holder balance is too small for the transfer"""
    pass
