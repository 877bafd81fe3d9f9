"""Position state management"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from ..errors import ArithmeticError, InsufficientCollateralError


class PositionStatus(Enum):
    ACTIVE = "active"
    CLOSED = "closed"
    LIQUIDATED = "liquidated"


@dataclass
class Position:
    """Represents a borrower position.

    ``collateral`` keeps insertion order: an asset id is appended on its first
    deposit and dropped when its balance returns to zero.
    """
    owner: str
    index: int
    is_isolated: bool
    created_at: int
    status: PositionStatus = PositionStatus.ACTIVE
    debt_amount: int = 0
    last_interest_accrual: int = 0
    isolated_asset: Optional[str] = None  # Bound on first supply
    collateral: Dict[str, int] = field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return self.status == PositionStatus.ACTIVE

    @property
    def assets(self) -> list:
        return list(self.collateral)

    def collateral_amount(self, asset: str) -> int:
        return self.collateral.get(asset, 0)

    def update_collateral(self, asset: str, amount_change: int) -> None:
        """Update position collateral"""
        current = self.collateral.get(asset, 0)
        if amount_change >= 0:
            self.collateral[asset] = current + amount_change
            return
        if current < abs(amount_change):
            raise InsufficientCollateralError(
                f"Position {self.owner}#{self.index} holds {current} {asset}, "
                f"cannot remove {abs(amount_change)}"
            )
        remaining = current - abs(amount_change)
        if remaining == 0:
            del self.collateral[asset]
        else:
            self.collateral[asset] = remaining

    def update_debt(self, amount_change: int) -> None:
        """Update position debt"""
        if amount_change >= 0:
            self.debt_amount += amount_change
        else:
            if self.debt_amount < abs(amount_change):
                raise ArithmeticError("Insufficient debt")
            self.debt_amount -= abs(amount_change)

    def clear(self, status: PositionStatus) -> Dict[str, int]:
        """Zero debt and collateral, move to a terminal status and return what was held"""
        released = dict(self.collateral)
        self.collateral.clear()
        self.debt_amount = 0
        self.status = status
        return released
