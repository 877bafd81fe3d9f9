# Fixed point scale factors
RATE_SCALE = 1_000_000  # 6 decimals for rates and fees (100% = 1e6)
THRESHOLD_SCALE = 1000  # Borrow / liquidation thresholds (100% = 1000)
BPS_SCALE = 10_000  # Basis points (100% = 10000)
WAD = 1_000_000_000_000_000_000  # 1e18 health factor precision
PRICE_DECIMALS = 8  # Common precision for normalized oracle prices
U256_MAX = 2**256 - 1
MAX_HEALTH_FACTOR = U256_MAX  # Returned for debt-free positions

# Time constants
HOUR_IN_SECONDS = 60 * 60
DAY_IN_SECONDS = 24 * HOUR_IN_SECONDS
YEAR_IN_SECONDS = 365 * DAY_IN_SECONDS  # 365 days * 24 hours * 60 minutes * 60 seconds

# Oracle constants
ORACLE_TIMEOUT = 8 * HOUR_IN_SECONDS
VOLATILITY_WINDOW = HOUR_IN_SECONDS
VOLATILITY_THRESHOLD_PCT = 20

# Position constants
MAX_ASSETS_PER_POSITION = 20

# Rate curve
UTILIZATION_KINK = RATE_SCALE * 80 // 100  # 80%
JUMP_MULTIPLIER = 4

# Tier defaults (jump rate, liquidation fee) in RATE_SCALE
DEFAULT_TIER_PARAMS = {
    "STABLE": (RATE_SCALE * 5 // 100, RATE_SCALE * 1 // 100),
    "CROSS_A": (RATE_SCALE * 8 // 100, RATE_SCALE * 2 // 100),
    "CROSS_B": (RATE_SCALE * 12 // 100, RATE_SCALE * 3 // 100),
    "ISOLATED": (RATE_SCALE * 15 // 100, RATE_SCALE * 4 // 100),
}
MAX_TIER_JUMP_RATE = RATE_SCALE * 25 // 100  # 25%
MAX_TIER_LIQUIDATION_FEE = RATE_SCALE * 10 // 100  # 10%

# Protocol config defaults
DEFAULT_PROFIT_TARGET_RATE = RATE_SCALE // 100  # 1%
DEFAULT_BASE_BORROW_RATE = RATE_SCALE * 6 // 100  # 6% APR
DEFAULT_REWARD_AMOUNT = 2_000 * WAD  # governance tokens
DEFAULT_REWARD_INTERVAL = 180 * DAY_IN_SECONDS
DEFAULT_REWARDABLE_SUPPLY = 100_000 * 10**6  # base units (6 decimals)
DEFAULT_LIQUIDATOR_THRESHOLD = 20_000 * WAD  # governance tokens
DEFAULT_FLASH_LOAN_FEE_BPS = 9  # 0.09%

# Protocol config bounds
MIN_PROFIT_TARGET_RATE = RATE_SCALE * 25 // 10_000  # 0.25%
MAX_PROFIT_TARGET_RATE = RATE_SCALE * 10 // 100  # 10%
MIN_BASE_BORROW_RATE = RATE_SCALE // 100  # 1% APR
MAX_BASE_BORROW_RATE = RATE_SCALE * 30 // 100  # 30% APR
MAX_REWARD_AMOUNT = 10_000 * WAD
MIN_REWARD_INTERVAL = 90 * DAY_IN_SECONDS
MIN_REWARDABLE_SUPPLY = 20_000 * 10**6
MIN_LIQUIDATOR_THRESHOLD = 10 * WAD
MIN_FLASH_LOAN_FEE_BPS = 1
MAX_FLASH_LOAN_FEE_BPS = 100  # 1%
