"""Fixed-point constants shared by the engine."""

# Working precision: USD values and health factors carry 18 decimals
PRECISION = 10**18
USD_DECIMALS = 18

# Collateral counts at 50% of its USD value, i.e. 200% over-collateralization
LIQUIDATION_THRESHOLD = 50
LIQUIDATION_PRECISION = 100

# Extra collateral paid to a liquidator, as a share of the repaid debt
LIQUIDATION_BONUS = 10

# 1.0 in 18-decimal fixed point
MIN_HEALTH_FACTOR = PRECISION

# Reported for positions with no debt
MAX_HEALTH_FACTOR = 2**256 - 1

# Oracle readings older than this are rejected (0 disables the check)
DEFAULT_MAX_PRICE_AGE = 3 * 60 * 60
