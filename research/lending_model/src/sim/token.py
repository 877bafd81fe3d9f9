"""In-memory fungible token with allowances, minting and burning"""
import copy
from dataclasses import dataclass, field
from typing import Dict

from ..errors import InsufficientBalanceError, ZeroAmountError


@dataclass
class FungibleToken:
    """Balances keyed by account string"""
    symbol: str
    decimals: int = 18
    balances: Dict[str, int] = field(default_factory=dict)
    allowances: Dict[str, Dict[str, int]] = field(default_factory=dict)
    supply: int = 0

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def total_supply(self) -> int:
        return self.supply

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get(owner, {}).get(spender, 0)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        if amount < 0:
            raise ZeroAmountError("Allowance must not be negative")
        self.allowances.setdefault(owner, {})[spender] = amount

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise ZeroAmountError("Transfer amount must not be negative")
        balance = self.balance_of(sender)
        if amount > balance:
            raise InsufficientBalanceError(
                f"{self.symbol}: {sender} holds {balance}, cannot send {amount}"
            )
        self.balances[sender] = balance - amount
        self.balances[recipient] = self.balance_of(recipient) + amount

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        self._move(sender, recipient, amount)

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        allowed = self.allowance(owner, spender)
        if amount > allowed:
            raise InsufficientBalanceError(
                f"{self.symbol}: {spender} may spend {allowed} of {owner}, not {amount}"
            )
        self._move(owner, recipient, amount)
        self.allowances[owner][spender] = allowed - amount

    def mint(self, recipient: str, amount: int) -> None:
        self.balances[recipient] = self.balance_of(recipient) + amount
        self.supply += amount

    def burn(self, holder: str, amount: int) -> None:
        balance = self.balance_of(holder)
        if amount > balance:
            raise InsufficientBalanceError(
                f"{self.symbol}: {holder} holds {balance}, cannot burn {amount}"
            )
        self.balances[holder] = balance - amount
        self.supply -= amount

    def snapshot(self):
        return copy.deepcopy((self.balances, self.allowances, self.supply))

    def restore(self, snapshot) -> None:
        self.balances, self.allowances, self.supply = copy.deepcopy(snapshot)

