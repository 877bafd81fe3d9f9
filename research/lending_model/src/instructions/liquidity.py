"""Liquidity pool deposits, share redemption and yield injection"""
import logging
from dataclasses import dataclass

from ..constants import RATE_SCALE
from ..context import ExecutionContext
from ..errors import ArithmeticError, LowLiquidityError, ZeroAmountError
from .accrue_interest import checked_mul

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExchangeResult:
    shares_burned: int
    fee_shares: int
    base_amount: int
    reward: int = 0


def shares_for_deposit(ctx: ExecutionContext, amount: int) -> int:
    supply = ctx.share_token.total_supply()
    liquidity = ctx.pool.total_supplied_liquidity
    if supply == 0 or liquidity == 0:
        return amount
    return checked_mul(amount, supply) // liquidity

def share_value(ctx: ExecutionContext, shares: int) -> int:
    """Base units redeemable for ``shares`` before any fee"""
    supply = ctx.share_token.total_supply()
    if supply == 0:
        return 0
    return checked_mul(shares, ctx.pool.total_supplied_liquidity) // supply

def is_rewardable(ctx: ExecutionContext, account: str) -> bool:
    """True once the account has kept enough liquidity in the pool for a full reward interval"""
    started = ctx.state.liquidity_accrue_time.get(account)
    if started is None:
        return False
    if ctx.now - started < ctx.config.reward_interval:
        return False
    return share_value(ctx, ctx.share_token.balance_of(account)) >= ctx.config.rewardable_supply

def supply_liquidity(ctx: ExecutionContext, account: str, amount: int) -> int:
    """Deposit base asset and mint shares at the current exchange rate"""
    if amount <= 0:
        raise ZeroAmountError("Amount must be positive")

    shares = shares_for_deposit(ctx, amount)
    if shares == 0:
        raise ZeroAmountError(f"Deposit of {amount} mints no shares")

    ctx.pool.update_totals(liquidity_change=amount, balance_change=amount)
    ctx.state.liquidity_accrue_time[account] = ctx.now

    ctx.base_token.transfer_from(ctx.address, account, ctx.address, amount)
    ctx.share_token.mint(account, shares)
    logger.info(
        "Liquidity supplied",
        extra={"event": "pool.supply", "account": account, "amount": amount, "shares": shares},
    )
    return shares

def exchange(ctx: ExecutionContext, account: str, shares: int) -> ExchangeResult:
    """Redeem shares for base asset.

    While the pool holds profit above target a fee of ``profit_target_rate`` of
    the shares goes to the treasury instead of being redeemed.
    """
    if shares <= 0:
        raise ZeroAmountError("Amount must be positive")
    balance = ctx.share_token.balance_of(account)
    if shares > balance:
        raise ArithmeticError(f"{account} holds {balance} shares, cannot exchange {shares}")

    reward = 0
    if ctx.rewarder is not None and is_rewardable(ctx, account):
        reward = ctx.config.reward_amount
        ctx.state.liquidity_accrue_time[account] = ctx.now
        ctx.rewarder.reward(account, reward)

    fee_shares = 0
    if ctx.pool.has_profit_above_target(ctx.config.profit_target_rate):
        fee_shares = checked_mul(shares, ctx.config.profit_target_rate) // RATE_SCALE

    redeemed = shares - fee_shares
    base_amount = share_value(ctx, redeemed)
    if base_amount > ctx.pool.tracked_base_balance:
        raise LowLiquidityError(
            f"Redemption of {base_amount} exceeds available liquidity {ctx.pool.tracked_base_balance}"
        )

    ctx.pool.update_totals(liquidity_change=-base_amount, balance_change=-base_amount)
    if fee_shares:
        ctx.share_token.transfer(account, ctx.treasury, fee_shares)
    ctx.share_token.burn(account, redeemed)
    ctx.base_token.transfer(ctx.address, account, base_amount)

    logger.info(
        "Shares exchanged",
        extra={
            "event": "pool.exchange",
            "account": account,
            "shares": shares,
            "fee_shares": fee_shares,
            "base_amount": base_amount,
        },
    )
    return ExchangeResult(shares_burned=redeemed, fee_shares=fee_shares, base_amount=base_amount, reward=reward)

def boost_yield(ctx: ExecutionContext, caller: str, amount: int) -> None:
    """Add base asset to the pool without minting shares, raising the exchange rate"""
    if amount <= 0:
        raise ZeroAmountError("Amount must be positive")
    ctx.pool.update_totals(liquidity_change=amount, balance_change=amount)
    ctx.base_token.transfer_from(ctx.address, caller, ctx.address, amount)
    logger.info(
        "Yield boosted",
        extra={"event": "pool.boost_yield", "caller": caller, "amount": amount},
    )
