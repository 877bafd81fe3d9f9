"""Liquidation of undercollateralized positions"""
import logging
from dataclasses import dataclass
from typing import Dict

from ..constants import RATE_SCALE
from ..context import ExecutionContext
from ..errors import NotEnoughGovernanceTokensError, NotLiquidatableError
from ..state.position import PositionStatus
from .accrue_interest import checked_mul, debt_with_interest, position_tier
from .health import health_factor, is_liquidatable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiquidationResult:
    debt_repaid: int
    fee: int
    collateral: Dict[str, int]


def liquidation_fee_rate(ctx: ExecutionContext, position) -> int:
    """Fee rate of the riskiest tier in the position, in RATE_SCALE"""
    return ctx.registry.tier_params(position_tier(position, ctx.registry)).liquidation_fee

def liquidate(ctx: ExecutionContext, liquidator: str, owner: str, position_id: int) -> LiquidationResult:
    """Repay a liquidatable position's debt plus fee and take all of its collateral.

    ``total_borrow`` drops by the stored debt only; the unaccrued interest and
    the fee arrive as cash and show up as pool profit.
    """
    position = ctx.state.get_active_position(owner, position_id)

    stake = ctx.governance_token.balance_of(liquidator)
    threshold = ctx.config.liquidator_governance_threshold
    if stake < threshold:
        raise NotEnoughGovernanceTokensError(
            f"{liquidator} holds {stake} governance tokens, {threshold} required"
        )

    if not is_liquidatable(ctx, position):
        raise NotLiquidatableError(
            f"Position {owner}#{position_id} health factor {health_factor(ctx, position)} is not below 1"
        )

    debt = debt_with_interest(ctx, position)
    fee = checked_mul(debt, liquidation_fee_rate(ctx, position)) // RATE_SCALE
    stored_debt = position.debt_amount

    ctx.pool.update_totals(borrow_change=-stored_debt, balance_change=debt + fee)
    released = position.clear(PositionStatus.LIQUIDATED)
    position.last_interest_accrual = ctx.now

    ctx.base_token.transfer_from(ctx.address, liquidator, ctx.address, debt + fee)
    for asset, amount in released.items():
        ctx.registry.vault(asset).withdraw(amount)
        ctx.token(asset).transfer(ctx.address, liquidator, amount)

    logger.info(
        "Position liquidated",
        extra={
            "event": "lending.liquidation",
            "owner": owner,
            "position": position_id,
            "liquidator": liquidator,
            "debt": debt,
            "fee": fee,
        },
    )
    return LiquidationResult(debt_repaid=debt, fee=fee, collateral=released)
