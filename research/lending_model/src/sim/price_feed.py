"""Settable round-based price feed"""
from dataclasses import dataclass, field
from typing import List, Optional

from ..errors import InvalidPriceError
from ..interfaces import RoundData


@dataclass
class MockPriceFeed:
    """Keeps every pushed round; round ids start at 1"""
    decimals: int = 8
    rounds: List[RoundData] = field(default_factory=list)

    def push_round(self, answer: int, updated_at: int, answered_in_round: Optional[int] = None) -> RoundData:
        round_id = len(self.rounds) + 1
        data = RoundData(
            round_id=round_id,
            answer=answer,
            started_at=updated_at,
            updated_at=updated_at,
            answered_in_round=round_id if answered_in_round is None else answered_in_round,
        )
        self.rounds.append(data)
        return data

    def latest_round_data(self) -> RoundData:
        if not self.rounds:
            raise InvalidPriceError("Feed has no rounds")
        return self.rounds[-1]

    def get_round_data(self, round_id: int) -> RoundData:
        if not 1 <= round_id <= len(self.rounds):
            raise InvalidPriceError(f"Unknown round {round_id}")
        return self.rounds[round_id - 1]
