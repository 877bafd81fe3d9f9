"""Shared fixtures: clock, tokens, price feeds, roles and a listed protocol"""
import pytest

from lending_model.src.constants import HOUR_IN_SECONDS
from lending_model.src.interfaces import Role
from lending_model.src.protocol import LendingProtocol
from lending_model.src.sim.access import RoleRegistry
from lending_model.src.sim.clock import ManualClock
from lending_model.src.sim.price_feed import MockPriceFeed
from lending_model.src.sim.rewards import EcosystemRewarder
from lending_model.src.sim.token import FungibleToken
from lending_model.src.state.asset import AssetConfig, Tier

USDC = 10**6
ETH = 10**18
BTC = 10**8
PRICE = 10**8

FEED_PRICES = {
    "USDT/USD": 1 * PRICE,
    "ETH/USD": 2500 * PRICE,
    "BTC/USD": 60_000 * PRICE,
    "BTC/USD-2": 60_000 * PRICE,
    "LINK/USD": 15 * PRICE,
}

ASSET_CONFIGS = {
    "USDT": AssetConfig(
        decimals=6,
        borrow_threshold=900,
        liquidation_threshold=950,
        max_supply_threshold=1_000_000 * USDC,
        tier=Tier.STABLE,
        oracles=("USDT/USD",),
    ),
    "WETH": AssetConfig(
        decimals=18,
        borrow_threshold=800,
        liquidation_threshold=850,
        max_supply_threshold=1_000 * ETH,
        tier=Tier.CROSS_A,
        oracles=("ETH/USD",),
    ),
    "WBTC": AssetConfig(
        decimals=8,
        borrow_threshold=700,
        liquidation_threshold=750,
        max_supply_threshold=100 * BTC,
        tier=Tier.CROSS_B,
        oracles=("BTC/USD", "BTC/USD-2"),
        primary_oracle="BTC/USD",
        min_oracles=2,
    ),
    "LINK": AssetConfig(
        decimals=18,
        borrow_threshold=650,
        liquidation_threshold=700,
        max_supply_threshold=1_000_000 * ETH,
        tier=Tier.ISOLATED,
        oracles=("LINK/USD",),
        isolation_debt_cap=5_000 * USDC,
    ),
}


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock(start=1_700_000_000)


@pytest.fixture()
def usdc() -> FungibleToken:
    return FungibleToken("USDC", decimals=6)


@pytest.fixture()
def shares() -> FungibleToken:
    return FungibleToken("lpUSDC", decimals=6)


@pytest.fixture()
def gov() -> FungibleToken:
    return FungibleToken("GOV", decimals=18)


@pytest.fixture()
def collateral_tokens() -> dict:
    return {
        symbol: FungibleToken(symbol, decimals=config.decimals)
        for symbol, config in ASSET_CONFIGS.items()
    }


@pytest.fixture()
def roles() -> RoleRegistry:
    registry = RoleRegistry(admin="admin")
    registry.grant_role("admin", Role.MANAGER, "manager")
    registry.grant_role("admin", Role.PAUSER, "pauser")
    return registry


@pytest.fixture()
def feeds(clock) -> dict:
    result = {}
    for name, price in FEED_PRICES.items():
        feed = MockPriceFeed(decimals=8)
        feed.push_round(price, clock() - 2 * HOUR_IN_SECONDS)
        result[name] = feed
    return result


@pytest.fixture()
def protocol(clock, usdc, shares, gov, roles, feeds, collateral_tokens) -> LendingProtocol:
    """All four assets listed, no liquidity"""
    engine = LendingProtocol(
        usdc,
        shares,
        gov,
        roles,
        treasury="treasury",
        rewarder=EcosystemRewarder(gov),
        clock=clock,
    )
    for name, feed in feeds.items():
        engine.add_price_feed("manager", name, feed)
    for symbol, config in ASSET_CONFIGS.items():
        engine.set_asset_config("manager", symbol, config, token=collateral_tokens[symbol])
    return engine


@pytest.fixture()
def fund(protocol):
    """Mint ``amount`` of a token to ``account`` and approve the protocol for it"""
    def _fund(token, account, amount):
        token.mint(account, amount)
        token.approve(account, protocol.address, token.allowance(account, protocol.address) + amount)
    return _fund


@pytest.fixture()
def funded_protocol(protocol, usdc, fund) -> LendingProtocol:
    """Listed protocol with 100,000 USDC of pool liquidity from ``lender``"""
    fund(usdc, "lender", 100_000 * USDC)
    protocol.supply_liquidity("lender", 100_000 * USDC)
    return protocol


@pytest.fixture()
def open_position(funded_protocol, collateral_tokens, fund):
    """Create a position for ``owner`` backed by ``amount`` of ``asset``; returns its index"""
    def _open(owner, asset, amount, isolated=False):
        fund(collateral_tokens[asset], owner, amount)
        position_id = funded_protocol.create_position(owner, asset, isolated)
        funded_protocol.supply_collateral(owner, asset, amount, position_id)
        return position_id
    return _open


@pytest.fixture()
def set_price(feeds, clock):
    """Publish a new round for a feed at the current instant"""
    def _set(name, price):
        return feeds[name].push_round(price, clock())
    return _set


@pytest.fixture()
def refresh_prices(feeds, clock):
    """Republish every feed's latest answer at the current instant"""
    def _refresh():
        for feed in feeds.values():
            feed.push_round(feed.latest_round_data().answer, clock())
    return _refresh
