"""Liquidity pool state"""
from dataclasses import dataclass

from ..constants import RATE_SCALE, WAD
from ..errors import ArithmeticError


@dataclass
class PoolState:
    """Aggregate pool counters.

    ``total_borrow`` is the sum of stored position debts (interest is folded in
    on accrual). ``tracked_base_balance`` is the base asset the pool accounts
    for; anything the engine holds above it arrived outside an entry point.
    """
    total_supplied_liquidity: int = 0
    total_borrow: int = 0
    tracked_base_balance: int = 0
    total_flash_loan_fees: int = 0

    @property
    def utilization(self) -> int:
        if self.total_supplied_liquidity == 0:
            return 0
        return self.total_borrow * RATE_SCALE // self.total_supplied_liquidity

    @property
    def profit(self) -> int:
        """Cash plus receivables above the principal owed to depositors"""
        return self.tracked_base_balance + self.total_borrow - self.total_supplied_liquidity

    def profit_target(self, profit_target_rate: int) -> int:
        return self.total_supplied_liquidity * profit_target_rate // RATE_SCALE

    def has_profit_above_target(self, profit_target_rate: int) -> bool:
        return self.profit > self.profit_target(profit_target_rate)

    def exchange_rate(self, share_supply: int) -> int:
        """Base units per share, scaled by WAD"""
        if share_supply == 0:
            return WAD
        return self.total_supplied_liquidity * WAD // share_supply

    def update_totals(self, borrow_change: int = 0, liquidity_change: int = 0, balance_change: int = 0) -> None:
        if (
            self.total_borrow + borrow_change < 0
            or self.total_supplied_liquidity + liquidity_change < 0
            or self.tracked_base_balance + balance_change < 0
        ):
            raise ArithmeticError("Pool counter underflow")
        self.total_borrow += borrow_change
        self.total_supplied_liquidity += liquidity_change
        self.tracked_base_balance += balance_change
