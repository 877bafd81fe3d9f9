"""Collateral valuation, credit limit and health factor"""
from ..constants import MAX_HEALTH_FACTOR, PRICE_DECIMALS, THRESHOLD_SCALE, WAD
from ..context import ExecutionContext
from ..state.position import Position
from .accrue_interest import checked_mul, debt_with_interest


def asset_value(ctx: ExecutionContext, asset: str, amount: int, threshold: int = THRESHOLD_SCALE) -> int:
    """Value of ``amount`` units of ``asset`` in base units, weighted by ``threshold``"""
    if amount == 0:
        return 0
    config = ctx.registry.get_asset_config(asset)
    price = ctx.price_of(asset)
    numerator = checked_mul(
        checked_mul(checked_mul(amount, price), threshold), 10 ** ctx.base_decimals
    )
    return numerator // (10 ** config.decimals * THRESHOLD_SCALE * 10 ** PRICE_DECIMALS)

def credit_limit(ctx: ExecutionContext, position: Position) -> int:
    """Borrow-threshold weighted collateral value: the most the position may owe"""
    registry = ctx.registry
    return sum(
        asset_value(ctx, asset, amount, registry.get_asset_config(asset).borrow_threshold)
        for asset, amount in position.collateral.items()
    )

def liquidation_level(ctx: ExecutionContext, position: Position) -> int:
    """Liquidation-threshold weighted collateral value"""
    registry = ctx.registry
    return sum(
        asset_value(ctx, asset, amount, registry.get_asset_config(asset).liquidation_threshold)
        for asset, amount in position.collateral.items()
    )

def total_collateral_value(ctx: ExecutionContext, position: Position) -> int:
    return sum(asset_value(ctx, asset, amount) for asset, amount in position.collateral.items())

def health_factor(ctx: ExecutionContext, position: Position) -> int:
    """Liquidation level over debt with interest, scaled by WAD.

    A debt-free position reports MAX_HEALTH_FACTOR.
    """
    debt = debt_with_interest(ctx, position)
    if debt == 0:
        return MAX_HEALTH_FACTOR
    return checked_mul(liquidation_level(ctx, position), WAD) // debt

def is_liquidatable(ctx: ExecutionContext, position: Position) -> bool:
    if not position.is_active or position.debt_amount == 0:
        return False
    return health_factor(ctx, position) < WAD
