"""Collaborator protocols the engine consumes.

Tokens, price feeds, access control, flash loan receivers and the reward
emitter live outside the engine; the ``sim`` package ships in-memory versions.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, runtime_checkable


class Role(Enum):
    """Roles checked by the engine."""
    ADMIN = "admin"
    MANAGER = "manager"
    PAUSER = "pauser"


@dataclass(frozen=True)
class RoundData:
    """One price feed round."""
    round_id: int
    answer: int
    started_at: int
    updated_at: int
    answered_in_round: int


class FungibleAsset(Protocol):
    """Transferable token; ``sender``/``spender`` stand in for the transaction caller."""

    decimals: int

    def balance_of(self, account: str) -> int: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None: ...

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None: ...

    def approve(self, owner: str, spender: str, amount: int) -> None: ...


class ShareToken(FungibleAsset, Protocol):
    """Pool share token; the engine is its only minter."""

    def total_supply(self) -> int: ...

    def mint(self, recipient: str, amount: int) -> None: ...

    def burn(self, holder: str, amount: int) -> None: ...


class PriceFeed(Protocol):
    """Round-based price feed."""

    decimals: int

    def latest_round_data(self) -> RoundData: ...

    def get_round_data(self, round_id: int) -> RoundData: ...


class AccessControl(Protocol):
    """Role checks and the global pause flag."""

    @property
    def paused(self) -> bool: ...

    def has_role(self, role: Role, account: str) -> bool: ...


class FlashLoanReceiver(Protocol):

    address: str

    def execute_operation(
        self, asset: str, amount: int, fee: int, initiator: str, params: Any
    ) -> bool: ...


class RewardEmitter(Protocol):

    def reward(self, recipient: str, amount: int) -> None: ...


@runtime_checkable
class Snapshottable(Protocol):
    """Collaborators whose state rolls back with a failed engine call."""

    def snapshot(self) -> Any: ...

    def restore(self, snapshot: Any) -> None: ...
