"""
Lending protocol engine.

Wraps the instruction functions with the execution guarantees of a sequential
ledger:

- one engine-wide lock serializes every mutating call; reentrant calls fail
- the pause flag of the access-control collaborator blocks every mutating call
- a failed call restores engine state and every snapshottable collaborator
- every call sees a single timestamp, so accrual has one baseline per call

Views take the same lock, so they never observe a call in progress, and are
allowed while paused. Positions and pool counters are returned as copies.
"""
import copy
import functools
import logging
import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional

from .context import ExecutionContext, ProtocolState
from .errors import (
    InvalidConfigError,
    MissingRoleError,
    ProtocolPausedError,
    ReentrancyError,
)
from .instructions import flash_loan as flash_loan_ix
from .instructions import liquidate as liquidate_ix
from .instructions import liquidity as liquidity_ix
from .instructions import positions as positions_ix
from .instructions.accrue_interest import (
    accrue_interest as accrue_position_interest,
    calculate_supply_rate,
    debt_with_interest,
    position_borrow_rate,
    position_tier,
    tier_borrow_rate,
)
from .instructions.health import (
    credit_limit,
    health_factor,
    is_liquidatable,
    liquidation_level,
    total_collateral_value,
)
from .interfaces import (
    AccessControl,
    FlashLoanReceiver,
    FungibleAsset,
    PriceFeed,
    RewardEmitter,
    Role,
    ShareToken,
    Snapshottable,
)
from .oracle import OracleGateway
from .state.asset import AssetConfig, Tier
from .state.pool import PoolState
from .state.position import Position
from .state.protocol_config import ProtocolConfig

logger = logging.getLogger(__name__)


def _view(method):
    """Run a read-only method under the engine lock"""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)
    return wrapper


class LendingProtocol:
    """Over-collateralized lending pool with tiered collateral.

    Example usage:
        protocol = LendingProtocol(usdc, shares, gov, roles, treasury="treasury")
        protocol.add_price_feed("manager", "ETH/USD", feed)
        protocol.set_asset_config("manager", "WETH", weth_config, token=weth)
        position_id = protocol.create_position("alice", "WETH")
        protocol.supply_collateral("alice", "WETH", 10 * 10**18, position_id)
        protocol.borrow("alice", position_id, 15_000 * 10**6)
    """

    def __init__(
        self,
        base_token: FungibleAsset,
        share_token: ShareToken,
        governance_token: FungibleAsset,
        access_control: AccessControl,
        treasury: str,
        base_asset: str = "USDC",
        rewarder: Optional[RewardEmitter] = None,
        clock: Optional[Callable[[], int]] = None,
        config: Optional[ProtocolConfig] = None,
        address: str = "lending-protocol",
    ):
        config = config or ProtocolConfig()
        config.validate()

        self.base_token = base_token
        self.share_token = share_token
        self.governance_token = governance_token
        self.access_control = access_control
        self.treasury = treasury
        self.base_asset = base_asset
        self.rewarder = rewarder
        self.address = address
        self.clock = clock or (lambda: int(time.time()))

        self.state = ProtocolState(config=config)
        self.oracle = OracleGateway(self.clock)
        self.tokens: Dict[str, FungibleAsset] = {}

        self._lock = threading.RLock()
        self._entered = False

    # ------------------------------------------------------------------
    # Execution plumbing
    # ------------------------------------------------------------------

    def _context(self) -> ExecutionContext:
        return ExecutionContext(
            state=self.state,
            oracle=self.oracle,
            now=self.clock(),
            address=self.address,
            base_asset=self.base_asset,
            base_token=self.base_token,
            share_token=self.share_token,
            governance_token=self.governance_token,
            tokens=self.tokens,
            treasury=self.treasury,
            rewarder=self.rewarder,
        )

    def _snapshottables(self) -> List[Snapshottable]:
        seen = {}
        candidates = [self.base_token, self.share_token, self.governance_token, self.rewarder]
        candidates.extend(self.tokens.values())
        for candidate in candidates:
            if isinstance(candidate, Snapshottable):
                seen.setdefault(id(candidate), candidate)
        return list(seen.values())

    @contextmanager
    def _transaction(self, operation: str, caller: str, role: Optional[Role] = None):
        with self._lock:
            if self._entered:
                raise ReentrancyError(f"{operation} called while another operation is in progress")
            if self.access_control.paused:
                raise ProtocolPausedError(f"{operation} rejected: protocol is paused")
            if role is not None and not self.access_control.has_role(role, caller):
                raise MissingRoleError(f"{caller} lacks role {role.value} for {operation}")

            self._entered = True
            state_snapshot = copy.deepcopy(self.state)
            collaborator_snapshots = [(c, c.snapshot()) for c in self._snapshottables()]
            try:
                yield self._context()
            except Exception as exc:
                self.state = state_snapshot
                for collaborator, snapshot in collaborator_snapshots:
                    collaborator.restore(snapshot)
                logger.warning(
                    "Operation reverted",
                    extra={
                        "event": f"lending.{operation}.reverted",
                        "caller": caller,
                        "error": type(exc).__name__,
                        "reason": str(exc),
                    },
                )
                raise
            finally:
                self._entered = False

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def add_price_feed(self, caller: str, name: str, feed: PriceFeed) -> None:
        with self._transaction("add_price_feed", caller, Role.MANAGER):
            self.oracle.add_feed(name, feed)

    def set_asset_config(
        self, caller: str, asset: str, config: AssetConfig, token: Optional[FungibleAsset] = None
    ) -> None:
        with self._transaction("set_asset_config", caller, Role.MANAGER) as ctx:
            if token is None and asset not in self.tokens:
                raise InvalidConfigError(f"{asset}: a token is required when listing")
            bound = token if token is not None else self.tokens[asset]
            if bound.decimals != config.decimals:
                raise InvalidConfigError(
                    f"{asset}: config decimals {config.decimals} differ from token decimals {bound.decimals}"
                )
            ctx.registry.set_asset_config(asset, config, self.oracle)
            if token is not None:
                self.tokens[asset] = token

    def update_tier_config(self, caller: str, tier: Tier, jump_rate: int, liquidation_fee: int) -> None:
        with self._transaction("update_tier_config", caller, Role.MANAGER) as ctx:
            ctx.registry.update_tier_config(tier, jump_rate, liquidation_fee)

    def load_protocol_config(self, caller: str, config: ProtocolConfig) -> None:
        with self._transaction("load_protocol_config", caller, Role.MANAGER):
            config.validate()
            self.state.config = config
            logger.info(
                "Protocol config loaded",
                extra={"event": "lending.config_loaded", "caller": caller},
            )

    # ------------------------------------------------------------------
    # Positions
    # ------------------------------------------------------------------

    def create_position(self, owner: str, asset: str, isolated: bool = False) -> int:
        with self._transaction("create_position", owner) as ctx:
            return positions_ix.create_position(ctx, owner, asset, isolated)

    def supply_collateral(self, owner: str, asset: str, amount: int, position_id: int) -> None:
        with self._transaction("supply_collateral", owner) as ctx:
            positions_ix.supply_collateral(ctx, owner, asset, amount, position_id)

    def withdraw_collateral(self, owner: str, asset: str, amount: int, position_id: int) -> None:
        with self._transaction("withdraw_collateral", owner) as ctx:
            positions_ix.withdraw_collateral(ctx, owner, asset, amount, position_id)

    def transfer_between_positions(
        self, owner: str, from_id: int, to_id: int, asset: str, amount: int
    ) -> None:
        with self._transaction("transfer_between_positions", owner) as ctx:
            positions_ix.transfer_between_positions(ctx, owner, from_id, to_id, asset, amount)

    def borrow(self, owner: str, position_id: int, amount: int) -> None:
        with self._transaction("borrow", owner) as ctx:
            positions_ix.borrow(ctx, owner, position_id, amount)

    def repay(self, owner: str, position_id: int, amount: int) -> int:
        with self._transaction("repay", owner) as ctx:
            return positions_ix.repay(ctx, owner, position_id, amount)

    def exit_position(self, owner: str, position_id: int) -> Dict[str, int]:
        with self._transaction("exit_position", owner) as ctx:
            return positions_ix.exit_position(ctx, owner, position_id)

    def accrue_interest(self, owner: str, position_id: int) -> int:
        with self._transaction("accrue_interest", owner) as ctx:
            position = ctx.state.get_active_position(owner, position_id)
            return accrue_position_interest(ctx, position)

    def liquidate(self, liquidator: str, owner: str, position_id: int) -> liquidate_ix.LiquidationResult:
        with self._transaction("liquidate", liquidator) as ctx:
            return liquidate_ix.liquidate(ctx, liquidator, owner, position_id)

    # ------------------------------------------------------------------
    # Liquidity
    # ------------------------------------------------------------------

    def supply_liquidity(self, account: str, amount: int) -> int:
        with self._transaction("supply_liquidity", account) as ctx:
            return liquidity_ix.supply_liquidity(ctx, account, amount)

    def exchange(self, account: str, shares: int) -> liquidity_ix.ExchangeResult:
        with self._transaction("exchange", account) as ctx:
            return liquidity_ix.exchange(ctx, account, shares)

    def boost_yield(self, caller: str, amount: int) -> None:
        with self._transaction("boost_yield", caller, Role.MANAGER) as ctx:
            liquidity_ix.boost_yield(ctx, caller, amount)

    def flash_loan(self, initiator: str, receiver: FlashLoanReceiver, amount: int, params: Any = None) -> int:
        with self._transaction("flash_loan", initiator) as ctx:
            return flash_loan_ix.flash_loan(ctx, initiator, receiver, amount, params)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    @_view
    def protocol_config(self) -> ProtocolConfig:
        return self.state.config

    @property
    @_view
    def pool(self) -> PoolState:
        return copy.copy(self.state.pool)

    @_view
    def get_asset_config(self, asset: str) -> AssetConfig:
        return self.state.registry.get_asset_config(asset)

    @_view
    def list_assets(self) -> List[str]:
        return self.state.registry.list_assets()

    @_view
    def get_asset_price(self, asset: str) -> int:
        return self.state.registry.get_asset_price(asset, self.oracle)

    @_view
    def get_positions(self, owner: str) -> List[Position]:
        return copy.deepcopy(list(self.state.owner_positions(owner)))

    @_view
    def get_position(self, owner: str, position_id: int) -> Position:
        return copy.deepcopy(self.state.get_position(owner, position_id))

    @_view
    def position_tier(self, owner: str, position_id: int) -> Tier:
        return position_tier(self.state.get_position(owner, position_id), self.state.registry)

    @_view
    def credit_limit(self, owner: str, position_id: int) -> int:
        return credit_limit(self._context(), self.state.get_position(owner, position_id))

    @_view
    def liquidation_level(self, owner: str, position_id: int) -> int:
        return liquidation_level(self._context(), self.state.get_position(owner, position_id))

    @_view
    def collateral_value(self, owner: str, position_id: int) -> int:
        return total_collateral_value(self._context(), self.state.get_position(owner, position_id))

    @_view
    def debt_with_interest(self, owner: str, position_id: int) -> int:
        return debt_with_interest(self._context(), self.state.get_position(owner, position_id))

    @_view
    def health_factor(self, owner: str, position_id: int) -> int:
        return health_factor(self._context(), self.state.get_position(owner, position_id))

    @_view
    def is_liquidatable(self, owner: str, position_id: int) -> bool:
        return is_liquidatable(self._context(), self.state.get_position(owner, position_id))

    @_view
    def position_borrow_rate(self, owner: str, position_id: int) -> int:
        return position_borrow_rate(self._context(), self.state.get_position(owner, position_id))

    @_view
    def utilization(self) -> int:
        return self.state.pool.utilization

    @_view
    def borrow_rate(self, tier: Tier) -> int:
        return tier_borrow_rate(self._context(), tier)

    @_view
    def supply_rate(self) -> int:
        return calculate_supply_rate(self.state.pool, self.state.config.profit_target_rate)

    @_view
    def exchange_rate(self) -> int:
        return self.state.pool.exchange_rate(self.share_token.total_supply())

    @_view
    def untracked_balance(self) -> int:
        return self.base_token.balance_of(self.address) - self.state.pool.tracked_base_balance

    @_view
    def is_rewardable(self, account: str) -> bool:
        return liquidity_ix.is_rewardable(self._context(), account)

    @_view
    def audit_total_borrow(self) -> int:
        """Recompute total borrow from the positions; should equal ``pool.total_borrow``"""
        return sum(position.debt_amount for position in self.state.all_positions())
