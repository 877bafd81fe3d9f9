"""Collateral vault state management"""
from dataclasses import dataclass

from ..errors import AssetCapacityReachedError, InsufficientCollateralError


@dataclass
class CollateralVault:
    """Protocol-wide totals for one collateral asset"""
    asset: str
    total_deposited: int = 0

    def deposit(self, amount: int, max_supply: int) -> None:
        """Deposit collateral"""
        if self.total_deposited + amount > max_supply:
            raise AssetCapacityReachedError(
                f"{self.asset}: deposit of {amount} exceeds supply cap {max_supply} "
                f"({self.total_deposited} already deposited)"
            )
        self.total_deposited += amount

    def withdraw(self, amount: int) -> None:
        """Withdraw collateral"""
        if amount > self.total_deposited:
            raise InsufficientCollateralError("Insufficient collateral in vault")
        self.total_deposited -= amount
