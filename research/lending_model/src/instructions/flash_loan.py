"""Single-call flash loans of the base asset"""
import logging
from typing import Any

from ..constants import BPS_SCALE
from ..context import ExecutionContext
from ..errors import (
    FlashLoanFailedError,
    FlashLoanRepaymentError,
    LowLiquidityError,
    ZeroAmountError,
)
from ..interfaces import FlashLoanReceiver
from .accrue_interest import checked_mul

logger = logging.getLogger(__name__)


def flash_loan_fee(ctx: ExecutionContext, amount: int) -> int:
    return checked_mul(amount, ctx.config.flash_loan_fee_bps) // BPS_SCALE

def flash_loan(
    ctx: ExecutionContext,
    initiator: str,
    receiver: FlashLoanReceiver,
    amount: int,
    params: Any = None,
) -> int:
    """Lend ``amount`` to ``receiver`` for the duration of its callback.

    The receiver must return ``amount + fee`` to the engine before the callback
    returns. Returns the fee collected.
    """
    if amount <= 0:
        raise ZeroAmountError("Amount must be positive")
    if amount > ctx.pool.tracked_base_balance:
        raise LowLiquidityError(
            f"Flash loan of {amount} exceeds available liquidity {ctx.pool.tracked_base_balance}"
        )

    fee = flash_loan_fee(ctx, amount)
    receiver_address = receiver.address
    balance_before = ctx.base_token.balance_of(ctx.address)

    ctx.base_token.transfer(ctx.address, receiver_address, amount)
    if not receiver.execute_operation(ctx.base_asset, amount, fee, initiator, params):
        raise FlashLoanFailedError(f"Receiver {receiver_address} reported failure")

    balance_after = ctx.base_token.balance_of(ctx.address)
    if balance_after < balance_before + fee:
        raise FlashLoanRepaymentError(
            f"Balance {balance_after} below required {balance_before + fee}"
        )

    ctx.pool.update_totals(liquidity_change=fee, balance_change=fee)
    ctx.pool.total_flash_loan_fees += fee
    logger.info(
        "Flash loan settled",
        extra={
            "event": "pool.flash_loan",
            "initiator": initiator,
            "receiver": receiver_address,
            "amount": amount,
            "fee": fee,
        },
    )
    return fee
