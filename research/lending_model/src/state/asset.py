"""Asset configuration state"""
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Tuple

from ..constants import (
    DEFAULT_TIER_PARAMS,
    MAX_TIER_JUMP_RATE,
    MAX_TIER_LIQUIDATION_FEE,
    THRESHOLD_SCALE,
)
from ..errors import InvalidConfigError


class Tier(IntEnum):
    """Collateral risk tiers, ordered by economic risk"""
    STABLE = 0
    CROSS_A = 1
    CROSS_B = 2
    ISOLATED = 3


@dataclass
class TierParams:
    """Interest premium and liquidation fee for one tier (RATE_SCALE)"""
    jump_rate: int
    liquidation_fee: int

    def validate(self) -> None:
        problems = []
        if not 0 < self.jump_rate <= MAX_TIER_JUMP_RATE:
            problems.append(f"jump_rate {self.jump_rate} outside (0, {MAX_TIER_JUMP_RATE}]")
        if not 0 <= self.liquidation_fee <= MAX_TIER_LIQUIDATION_FEE:
            problems.append(
                f"liquidation_fee {self.liquidation_fee} outside [0, {MAX_TIER_LIQUIDATION_FEE}]"
            )
        if problems:
            raise InvalidConfigError(problems)


def default_tier_params() -> dict:
    return {
        tier: TierParams(*DEFAULT_TIER_PARAMS[tier.name])
        for tier in Tier
    }


@dataclass(frozen=True)
class AssetConfig:
    """Per-asset risk configuration.

    Thresholds are in THRESHOLD_SCALE (800 = 80%). ``oracles`` names the
    price feeds registered with the oracle gateway; ``primary_oracle`` must be
    one of them.
    """
    decimals: int
    borrow_threshold: int
    liquidation_threshold: int
    max_supply_threshold: int
    tier: Tier
    oracles: Tuple[str, ...]
    primary_oracle: Optional[str] = None
    oracle_decimals: int = 8
    isolation_debt_cap: int = 0
    min_oracles: int = 1
    active: bool = True

    @property
    def primary(self) -> str:
        return self.primary_oracle or self.oracles[0]

    def problems(self) -> list:
        """Return every field-level violation, empty when the config is valid"""
        problems = []
        if self.decimals <= 0:
            problems.append("decimals must be positive")
        if self.oracle_decimals <= 0:
            problems.append("oracle_decimals must be positive")
        if not 0 < self.borrow_threshold <= THRESHOLD_SCALE:
            problems.append(f"borrow_threshold {self.borrow_threshold} outside (0, {THRESHOLD_SCALE}]")
        if not 0 < self.liquidation_threshold <= THRESHOLD_SCALE:
            problems.append(
                f"liquidation_threshold {self.liquidation_threshold} outside (0, {THRESHOLD_SCALE}]"
            )
        if self.liquidation_threshold < self.borrow_threshold:
            problems.append("liquidation_threshold below borrow_threshold")
        if self.max_supply_threshold <= 0:
            problems.append("max_supply_threshold must be positive")
        if self.isolation_debt_cap < 0:
            problems.append("isolation_debt_cap must not be negative")
        if self.tier == Tier.ISOLATED and self.isolation_debt_cap == 0:
            problems.append("ISOLATED tier requires a nonzero isolation_debt_cap")
        if not self.oracles:
            problems.append("at least one oracle is required")
        elif self.primary not in self.oracles:
            problems.append(f"primary oracle {self.primary} is not bound to the asset")
        if not 1 <= self.min_oracles <= max(len(self.oracles), 1):
            problems.append(f"min_oracles {self.min_oracles} outside [1, {len(self.oracles)}]")
        return problems
