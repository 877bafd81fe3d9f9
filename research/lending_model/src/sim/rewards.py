"""Reward emitter that mints governance tokens"""
from dataclasses import dataclass, field
from typing import List, Tuple

from .token import FungibleToken


@dataclass
class EcosystemRewarder:
    governance_token: FungibleToken
    paid: List[Tuple[str, int]] = field(default_factory=list)

    def reward(self, recipient: str, amount: int) -> None:
        self.governance_token.mint(recipient, amount)
        self.paid.append((recipient, amount))

    def snapshot(self):
        return list(self.paid)

    def restore(self, snapshot) -> None:
        self.paid = list(snapshot)
