"""Interest rate model and lazy per-position accrual"""
import logging

from ..constants import (
    JUMP_MULTIPLIER,
    RATE_SCALE,
    U256_MAX,
    UTILIZATION_KINK,
    YEAR_IN_SECONDS,
)
from ..context import ExecutionContext
from ..errors import ArithmeticError
from ..registry import AssetRegistry
from ..state.asset import Tier
from ..state.pool import PoolState
from ..state.position import Position

logger = logging.getLogger(__name__)


def checked_mul(a: int, b: int) -> int:
    """Multiply with overflow checking"""
    result = a * b
    if result > U256_MAX:
        raise ArithmeticError("Arithmetic overflow in multiplication")
    return result

def checked_div(a: int, b: int) -> int:
    """Divide with zero checking"""
    if b == 0:
        raise ArithmeticError("Division by zero")
    return a // b

def checked_add(a: int, b: int) -> int:
    """Add with overflow checking"""
    result = a + b
    if result > U256_MAX:
        raise ArithmeticError("Arithmetic overflow in addition")
    return result

def checked_sub(a: int, b: int) -> int:
    """Subtract with underflow checking"""
    if b > a:
        raise ArithmeticError("Arithmetic underflow in subtraction")
    return a - b


def calculate_utilization(total_borrow: int, total_supplied_liquidity: int) -> int:
    """Utilization in RATE_SCALE; an empty pool reports zero"""
    if total_supplied_liquidity == 0:
        return 0
    return checked_mul(total_borrow, RATE_SCALE) // total_supplied_liquidity

def calculate_tier_premium(utilization: int, jump_rate: int) -> int:
    """Kinked premium curve.

    Below the kink the premium grows linearly from ``jump_rate`` at zero
    utilization to ``jump_rate * (1 + kink)``; above it the slope is
    JUMP_MULTIPLIER times steeper.
    """
    below_kink = min(utilization, UTILIZATION_KINK)
    premium = checked_mul(jump_rate, RATE_SCALE + below_kink) // RATE_SCALE
    if utilization > UTILIZATION_KINK:
        excess = utilization - UTILIZATION_KINK
        premium = checked_add(
            premium,
            checked_mul(checked_mul(jump_rate, JUMP_MULTIPLIER), excess) // RATE_SCALE,
        )
    return premium

def calculate_borrow_rate(utilization: int, base_borrow_rate: int, jump_rate: int) -> int:
    """Annual borrow rate in RATE_SCALE"""
    return checked_add(base_borrow_rate, calculate_tier_premium(utilization, jump_rate))

def calculate_supply_rate(pool: PoolState, profit_target_rate: int) -> int:
    """Annualized share of profit above target, spread over supplied liquidity"""
    if pool.total_supplied_liquidity == 0:
        return 0
    profit = pool.profit
    target = pool.profit_target(profit_target_rate)
    if profit <= target:
        return 0
    return checked_mul(profit - target, RATE_SCALE) // pool.total_supplied_liquidity

def calculate_interest(debt: int, rate: int, time_elapsed: int) -> int:
    """Linear per-second accrual: debt * rate * elapsed / (year * RATE_SCALE)"""
    if debt == 0 or time_elapsed <= 0:
        return 0
    return checked_mul(checked_mul(debt, rate), time_elapsed) // (YEAR_IN_SECONDS * RATE_SCALE)


def position_tier(position: Position, registry: AssetRegistry) -> Tier:
    """Highest risk tier among the position's current collateral"""
    tiers = [registry.get_asset_config(asset).tier for asset in position.collateral]
    return max(tiers, default=Tier.STABLE)

def tier_borrow_rate(ctx: ExecutionContext, tier: Tier) -> int:
    return calculate_borrow_rate(
        ctx.pool.utilization,
        ctx.config.base_borrow_rate,
        ctx.registry.tier_params(tier).jump_rate,
    )

def position_borrow_rate(ctx: ExecutionContext, position: Position) -> int:
    return tier_borrow_rate(ctx, position_tier(position, ctx.registry))

def debt_with_interest(ctx: ExecutionContext, position: Position) -> int:
    """Stored debt plus interest accrued since the last accrual, without storing it"""
    if position.debt_amount == 0:
        return 0
    elapsed = ctx.now - position.last_interest_accrual
    interest = calculate_interest(position.debt_amount, position_borrow_rate(ctx, position), elapsed)
    return checked_add(position.debt_amount, interest)

def accrue_interest(ctx: ExecutionContext, position: Position) -> int:
    """Fold accrued interest into the position and the pool's total borrow.

    Returns the interest added. Calling twice at the same instant is a no-op.
    """
    elapsed = ctx.now - position.last_interest_accrual
    if elapsed <= 0:
        return 0

    interest = 0
    if position.debt_amount > 0:
        interest = calculate_interest(position.debt_amount, position_borrow_rate(ctx, position), elapsed)
        position.update_debt(interest)
        ctx.pool.update_totals(borrow_change=interest)
    position.last_interest_accrual = ctx.now

    if interest:
        logger.debug(
            "Interest accrued",
            extra={
                "event": "lending.interest_accrued",
                "owner": position.owner,
                "position": position.index,
                "interest": interest,
                "elapsed": elapsed,
            },
        )
    return interest
