"""Protocol configuration"""
from dataclasses import dataclass, fields

from ..constants import (
    DEFAULT_BASE_BORROW_RATE,
    DEFAULT_FLASH_LOAN_FEE_BPS,
    DEFAULT_LIQUIDATOR_THRESHOLD,
    DEFAULT_PROFIT_TARGET_RATE,
    DEFAULT_REWARD_AMOUNT,
    DEFAULT_REWARD_INTERVAL,
    DEFAULT_REWARDABLE_SUPPLY,
    MAX_BASE_BORROW_RATE,
    MAX_FLASH_LOAN_FEE_BPS,
    MAX_PROFIT_TARGET_RATE,
    MAX_REWARD_AMOUNT,
    MIN_BASE_BORROW_RATE,
    MIN_FLASH_LOAN_FEE_BPS,
    MIN_LIQUIDATOR_THRESHOLD,
    MIN_PROFIT_TARGET_RATE,
    MIN_REWARD_INTERVAL,
    MIN_REWARDABLE_SUPPLY,
)
from ..errors import InvalidConfigError

# field -> (minimum, maximum); None means unbounded on that side
CONFIG_BOUNDS = {
    "profit_target_rate": (MIN_PROFIT_TARGET_RATE, MAX_PROFIT_TARGET_RATE),
    "base_borrow_rate": (MIN_BASE_BORROW_RATE, MAX_BASE_BORROW_RATE),
    "reward_amount": (0, MAX_REWARD_AMOUNT),
    "reward_interval": (MIN_REWARD_INTERVAL, None),
    "rewardable_supply": (MIN_REWARDABLE_SUPPLY, None),
    "liquidator_governance_threshold": (MIN_LIQUIDATOR_THRESHOLD, None),
    "flash_loan_fee_bps": (MIN_FLASH_LOAN_FEE_BPS, MAX_FLASH_LOAN_FEE_BPS),
}


@dataclass(frozen=True)
class ProtocolConfig:
    """Global protocol parameters. Rates are annual, in RATE_SCALE."""
    profit_target_rate: int = DEFAULT_PROFIT_TARGET_RATE
    base_borrow_rate: int = DEFAULT_BASE_BORROW_RATE
    reward_amount: int = DEFAULT_REWARD_AMOUNT
    reward_interval: int = DEFAULT_REWARD_INTERVAL
    rewardable_supply: int = DEFAULT_REWARDABLE_SUPPLY
    liquidator_governance_threshold: int = DEFAULT_LIQUIDATOR_THRESHOLD
    flash_loan_fee_bps: int = DEFAULT_FLASH_LOAN_FEE_BPS

    def validate(self) -> None:
        """Check every field against its bounds; all violations are reported together"""
        problems = []
        for f in fields(self):
            value = getattr(self, f.name)
            low, high = CONFIG_BOUNDS[f.name]
            if not isinstance(value, int) or isinstance(value, bool):
                problems.append(f"{f.name} must be an integer, got {value!r}")
                continue
            if low is not None and value < low:
                problems.append(f"{f.name} {value} below minimum {low}")
            if high is not None and value > high:
                problems.append(f"{f.name} {value} above maximum {high}")
        if problems:
            raise InvalidConfigError(problems)
