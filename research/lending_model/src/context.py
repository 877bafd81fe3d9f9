"""Protocol state container and the per-call execution context"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .errors import InactivePositionError, InvalidPositionError
from .interfaces import FungibleAsset, RewardEmitter, ShareToken
from .oracle import OracleGateway
from .registry import AssetRegistry
from .state.pool import PoolState
from .state.position import Position
from .state.protocol_config import ProtocolConfig


@dataclass
class ProtocolState:
    """Everything the engine owns; snapshotted as a unit around each mutating call"""
    config: ProtocolConfig = field(default_factory=ProtocolConfig)
    registry: AssetRegistry = field(default_factory=AssetRegistry)
    pool: PoolState = field(default_factory=PoolState)
    positions: Dict[str, List[Position]] = field(default_factory=dict)
    liquidity_accrue_time: Dict[str, int] = field(default_factory=dict)

    def owner_positions(self, owner: str) -> List[Position]:
        return self.positions.get(owner, [])

    def get_position(self, owner: str, position_id: int) -> Position:
        positions = self.owner_positions(owner)
        if not isinstance(position_id, int) or not 0 <= position_id < len(positions):
            raise InvalidPositionError(f"{owner} has no position {position_id}")
        return positions[position_id]

    def get_active_position(self, owner: str, position_id: int) -> Position:
        position = self.get_position(owner, position_id)
        if not position.is_active:
            raise InactivePositionError(
                f"Position {owner}#{position_id} is {position.status.value}"
            )
        return position

    def all_positions(self):
        for positions in self.positions.values():
            yield from positions


@dataclass
class ExecutionContext:
    """State plus collaborators, bound to one instant"""
    state: ProtocolState
    oracle: OracleGateway
    now: int
    address: str
    base_asset: str
    base_token: FungibleAsset
    share_token: ShareToken
    governance_token: FungibleAsset
    tokens: Dict[str, FungibleAsset]
    treasury: str
    rewarder: Optional[RewardEmitter] = None

    @property
    def config(self) -> ProtocolConfig:
        return self.state.config

    @property
    def registry(self) -> AssetRegistry:
        return self.state.registry

    @property
    def pool(self) -> PoolState:
        return self.state.pool

    @property
    def base_decimals(self) -> int:
        return self.base_token.decimals

    def price_of(self, asset: str) -> int:
        return self.registry.get_asset_price(asset, self.oracle)

    def token(self, asset: str) -> FungibleAsset:
        return self.tokens[asset]
