"""Position lifecycle and collateral bookkeeping"""
import logging

from ..constants import MAX_ASSETS_PER_POSITION
from ..context import ExecutionContext
from ..errors import (
    CreditLimitExceededError,
    InvalidAssetForIsolationError,
    InvalidPositionError,
    IsolatedAssetViolationError,
    IsolationDebtCapExceededError,
    LowLiquidityError,
    MaximumAssetsReachedError,
    OutstandingDebtError,
    ZeroAmountError,
)
from ..state.asset import Tier
from ..state.position import Position, PositionStatus
from .accrue_interest import accrue_interest
from .health import credit_limit

logger = logging.getLogger(__name__)


def _require_amount(amount: int) -> None:
    if amount <= 0:
        raise ZeroAmountError("Amount must be positive")

def _check_collateral_admission(ctx: ExecutionContext, position: Position, asset: str) -> None:
    """Isolation rules and the asset-count cap for adding ``asset`` to ``position``"""
    tier = ctx.registry.get_asset_config(asset).tier
    if position.is_isolated:
        bound = position.isolated_asset
        if bound is not None and bound != asset:
            raise InvalidAssetForIsolationError(
                f"Position {position.owner}#{position.index} is bound to {bound}, not {asset}"
            )
        if tier != Tier.ISOLATED:
            raise InvalidAssetForIsolationError(
                f"{asset} is {tier.name}; isolated positions hold ISOLATED assets only"
            )
    elif tier == Tier.ISOLATED:
        raise IsolatedAssetViolationError(
            f"{asset} is ISOLATED and cannot back cross-collateral position "
            f"{position.owner}#{position.index}"
        )

    if asset not in position.collateral and len(position.collateral) >= MAX_ASSETS_PER_POSITION:
        raise MaximumAssetsReachedError(
            f"Position {position.owner}#{position.index} already holds {MAX_ASSETS_PER_POSITION} assets"
        )

def _check_credit(ctx: ExecutionContext, position: Position) -> None:
    limit = credit_limit(ctx, position)
    if position.debt_amount > limit:
        raise CreditLimitExceededError(
            f"Position {position.owner}#{position.index} debt {position.debt_amount} exceeds credit limit {limit}"
        )


def create_position(ctx: ExecutionContext, owner: str, asset: str, isolated: bool) -> int:
    """Open an empty position and return its index"""
    config = ctx.registry.require_active(asset)
    if isolated and config.tier != Tier.ISOLATED:
        raise InvalidAssetForIsolationError(f"{asset} is {config.tier.name}, not ISOLATED")

    positions = ctx.state.positions.setdefault(owner, [])
    position = Position(
        owner=owner,
        index=len(positions),
        is_isolated=isolated,
        created_at=ctx.now,
        last_interest_accrual=ctx.now,
    )
    positions.append(position)
    logger.info(
        "Position created",
        extra={
            "event": "lending.position_created",
            "owner": owner,
            "position": position.index,
            "isolated": isolated,
        },
    )
    return position.index

def supply_collateral(ctx: ExecutionContext, owner: str, asset: str, amount: int, position_id: int) -> None:
    _require_amount(amount)
    config = ctx.registry.require_active(asset)
    position = ctx.state.get_active_position(owner, position_id)

    accrue_interest(ctx, position)
    _check_collateral_admission(ctx, position, asset)
    ctx.registry.vault(asset).deposit(amount, config.max_supply_threshold)

    if position.is_isolated and position.isolated_asset is None:
        position.isolated_asset = asset
    position.update_collateral(asset, amount)

    ctx.token(asset).transfer_from(ctx.address, owner, ctx.address, amount)
    logger.info(
        "Collateral supplied",
        extra={
            "event": "lending.collateral_supplied",
            "owner": owner,
            "position": position_id,
            "asset": asset,
            "amount": amount,
        },
    )

def withdraw_collateral(ctx: ExecutionContext, owner: str, asset: str, amount: int, position_id: int) -> None:
    _require_amount(amount)
    ctx.registry.get_asset_config(asset)
    position = ctx.state.get_active_position(owner, position_id)

    accrue_interest(ctx, position)
    position.update_collateral(asset, -amount)
    ctx.registry.vault(asset).withdraw(amount)
    _check_credit(ctx, position)

    ctx.token(asset).transfer(ctx.address, owner, amount)
    logger.info(
        "Collateral withdrawn",
        extra={
            "event": "lending.collateral_withdrawn",
            "owner": owner,
            "position": position_id,
            "asset": asset,
            "amount": amount,
        },
    )

def transfer_between_positions(
    ctx: ExecutionContext, owner: str, from_id: int, to_id: int, asset: str, amount: int
) -> None:
    """Move collateral between two positions of the same owner without touching tokens"""
    _require_amount(amount)
    if from_id == to_id:
        raise InvalidPositionError("Source and destination positions are the same")
    config = ctx.registry.get_asset_config(asset)
    source = ctx.state.get_active_position(owner, from_id)
    destination = ctx.state.get_active_position(owner, to_id)

    if config.tier == Tier.ISOLATED and not (source.is_isolated and destination.is_isolated):
        raise IsolatedAssetViolationError(
            f"{asset} is ISOLATED and cannot move between {owner}#{from_id} and {owner}#{to_id}"
        )

    accrue_interest(ctx, source)
    accrue_interest(ctx, destination)
    _check_collateral_admission(ctx, destination, asset)

    source.update_collateral(asset, -amount)
    if destination.is_isolated and destination.isolated_asset is None:
        destination.isolated_asset = asset
    destination.update_collateral(asset, amount)
    _check_credit(ctx, source)

    logger.info(
        "Collateral transferred",
        extra={
            "event": "lending.collateral_transferred",
            "owner": owner,
            "from_position": from_id,
            "to_position": to_id,
            "asset": asset,
            "amount": amount,
        },
    )

def borrow(ctx: ExecutionContext, owner: str, position_id: int, amount: int) -> None:
    _require_amount(amount)
    position = ctx.state.get_active_position(owner, position_id)

    accrue_interest(ctx, position)
    new_debt = position.debt_amount + amount

    if position.is_isolated and position.isolated_asset is not None:
        cap = ctx.registry.get_asset_config(position.isolated_asset).isolation_debt_cap
        if new_debt > cap:
            raise IsolationDebtCapExceededError(
                f"Debt {new_debt} exceeds isolation cap {cap} for {position.isolated_asset}"
            )

    limit = credit_limit(ctx, position)
    if new_debt > limit:
        raise CreditLimitExceededError(f"Debt {new_debt} exceeds credit limit {limit}")

    if amount > ctx.pool.tracked_base_balance:
        raise LowLiquidityError(
            f"Borrow of {amount} exceeds available liquidity {ctx.pool.tracked_base_balance}"
        )

    position.update_debt(amount)
    position.last_interest_accrual = ctx.now
    ctx.pool.update_totals(borrow_change=amount, balance_change=-amount)

    ctx.base_token.transfer(ctx.address, owner, amount)
    logger.info(
        "Borrowed",
        extra={"event": "lending.borrow", "owner": owner, "position": position_id, "amount": amount},
    )

def repay(ctx: ExecutionContext, owner: str, position_id: int, amount: int) -> int:
    """Repay up to ``amount``; anything above the outstanding debt is not pulled.

    Returns the amount actually repaid.
    """
    _require_amount(amount)
    position = ctx.state.get_active_position(owner, position_id)

    accrue_interest(ctx, position)
    actual = min(amount, position.debt_amount)
    if actual == 0:
        return 0

    position.update_debt(-actual)
    position.last_interest_accrual = ctx.now
    ctx.pool.update_totals(borrow_change=-actual, balance_change=actual)

    ctx.base_token.transfer_from(ctx.address, owner, ctx.address, actual)
    logger.info(
        "Repaid",
        extra={
            "event": "lending.repay",
            "owner": owner,
            "position": position_id,
            "amount": actual,
            "remaining_debt": position.debt_amount,
        },
    )
    return actual

def exit_position(ctx: ExecutionContext, owner: str, position_id: int) -> dict:
    """Close a debt-free position and return its collateral to the owner"""
    position = ctx.state.get_active_position(owner, position_id)
    accrue_interest(ctx, position)
    if position.debt_amount > 0:
        raise OutstandingDebtError(
            f"Position {owner}#{position_id} still owes {position.debt_amount}"
        )

    released = position.clear(PositionStatus.CLOSED)
    for asset, amount in released.items():
        ctx.registry.vault(asset).withdraw(amount)
        ctx.token(asset).transfer(ctx.address, owner, amount)

    logger.info(
        "Position closed",
        extra={
            "event": "lending.position_closed",
            "owner": owner,
            "position": position_id,
            "assets": list(released),
        },
    )
    return released
