"""Oracle validation, normalization and median aggregation"""
import pytest

from lending_model.src.constants import HOUR_IN_SECONDS, ORACLE_TIMEOUT
from lending_model.src.errors import (
    InsufficientOraclesError,
    InvalidPriceError,
    OracleTimeoutError,
    PriceVolatilityError,
    StalePriceError,
)
from lending_model.src.oracle import OracleGateway, median, normalize_price
from lending_model.src.sim.clock import ManualClock
from lending_model.src.sim.price_feed import MockPriceFeed

from conftest import ETH, PRICE, USDC


@pytest.fixture()
def gateway(clock):
    return OracleGateway(clock)


def make_feed(gateway, name, *rounds, decimals=8):
    """Register a feed holding ``(answer, updated_at)`` rounds"""
    feed = MockPriceFeed(decimals=decimals)
    for answer, updated_at in rounds:
        feed.push_round(answer, updated_at)
    gateway.add_feed(name, feed)
    return feed


def test_normalize_price():
    assert normalize_price(2500 * 10**18, 18) == 2500 * PRICE
    assert normalize_price(2500 * 10**6, 6) == 2500 * PRICE
    assert normalize_price(2500 * PRICE, 8) == 2500 * PRICE

def test_median():
    assert median([3, 1, 2]) == 2
    assert median([4, 1, 3, 2]) == 2
    assert median([7]) == 7

def test_valid_price(gateway, clock):
    make_feed(gateway, "ETH/USD", (2500 * PRICE, clock() - 60))
    assert gateway.get_price("ETH/USD") == 2500 * PRICE

def test_unknown_feed(gateway):
    with pytest.raises(InvalidPriceError):
        gateway.get_price("DOGE/USD")

@pytest.mark.parametrize("answer", [0, -1])
def test_non_positive_answer(gateway, clock, answer):
    make_feed(gateway, "ETH/USD", (answer, clock()))
    with pytest.raises(InvalidPriceError):
        gateway.get_price("ETH/USD")

def test_stale_round(gateway, clock):
    feed = MockPriceFeed()
    feed.push_round(2500 * PRICE, clock() - 2 * HOUR_IN_SECONDS)
    feed.push_round(2500 * PRICE, clock(), answered_in_round=1)
    gateway.add_feed("ETH/USD", feed)
    with pytest.raises(StalePriceError):
        gateway.get_price("ETH/USD")

def test_timeout_boundary(gateway, clock):
    make_feed(gateway, "ETH/USD", (2500 * PRICE, clock() - ORACLE_TIMEOUT))
    assert gateway.get_price("ETH/USD") == 2500 * PRICE

    clock.advance(1)
    with pytest.raises(OracleTimeoutError):
        gateway.get_price("ETH/USD")

def test_volatility_within_window(gateway, clock):
    make_feed(
        gateway,
        "ETH/USD",
        (2500 * PRICE, clock() - 30 * 60),
        (3100 * PRICE, clock()),
    )
    with pytest.raises(PriceVolatilityError):
        gateway.get_price("ETH/USD")

def test_volatility_after_window(gateway, clock):
    make_feed(
        gateway,
        "ETH/USD",
        (2500 * PRICE, clock() - 2 * HOUR_IN_SECONDS),
        (3100 * PRICE, clock()),
    )
    assert gateway.get_price("ETH/USD") == 3100 * PRICE

def test_small_move_within_window(gateway, clock):
    make_feed(
        gateway,
        "ETH/USD",
        (2500 * PRICE, clock() - 30 * 60),
        (2875 * PRICE, clock()),
    )
    assert gateway.get_price("ETH/USD") == 2875 * PRICE

def test_no_fallback_to_older_round(gateway, clock):
    """A rejected latest round is never replaced by the previous one"""
    feed = make_feed(gateway, "ETH/USD", (2500 * PRICE, clock() - 2 * HOUR_IN_SECONDS))
    feed.push_round(0, clock())
    with pytest.raises(InvalidPriceError):
        gateway.get_price("ETH/USD")

def test_normalized_from_18_decimals(gateway, clock):
    make_feed(gateway, "ETH/USD", (2500 * 10**18, clock()), decimals=18)
    assert gateway.get_normalized_price("ETH/USD", 18) == 2500 * PRICE


# ---------------------------------------------------------------------------
# Median aggregation
# ---------------------------------------------------------------------------

def test_median_of_healthy_feeds(gateway, clock):
    for name, price in (("a", 2500), ("b", 2600), ("c", 2700)):
        make_feed(gateway, name, (price * PRICE, clock()))
    assert gateway.get_median_price(["a", "b", "c"], 8, 2) == 2600 * PRICE

def test_median_skips_failing_feed(gateway, clock):
    make_feed(gateway, "a", (2500 * PRICE, clock()))
    make_feed(gateway, "b", (2600 * PRICE, clock()))
    make_feed(gateway, "c", (2700 * PRICE, clock() - ORACLE_TIMEOUT - 1))
    assert gateway.get_median_price(["a", "b", "c"], 8, 2) == 2550 * PRICE

def test_quorum_not_met(gateway, clock):
    make_feed(gateway, "a", (2500 * PRICE, clock()))
    make_feed(gateway, "b", (0, clock()))
    make_feed(gateway, "c", (2700 * PRICE, clock() - ORACLE_TIMEOUT - 1))
    with pytest.raises(InsufficientOraclesError):
        gateway.get_median_price(["a", "b", "c"], 8, 2)

def test_gateway_defaults_to_wall_clock():
    gateway = OracleGateway()
    assert gateway.clock() > ManualClock().now


# ---------------------------------------------------------------------------
# Through the engine
# ---------------------------------------------------------------------------

def test_asset_price_single_feed(protocol):
    assert protocol.get_asset_price("WETH") == 2500 * PRICE

def test_asset_price_multi_feed(protocol, set_price, clock):
    set_price("BTC/USD", 61_000 * PRICE)
    assert protocol.get_asset_price("WBTC") == 60_500 * PRICE

def test_multi_feed_quorum_through_engine(protocol, feeds, clock):
    feeds["BTC/USD-2"].push_round(0, clock())
    with pytest.raises(InsufficientOraclesError):
        protocol.get_asset_price("WBTC")

def test_stale_oracle_blocks_borrow(funded_protocol, open_position, clock):
    position_id = open_position("alice", "WETH", 10 * ETH)
    clock.advance(ORACLE_TIMEOUT)
    with pytest.raises(OracleTimeoutError):
        funded_protocol.borrow("alice", position_id, 1_000 * USDC)
    assert funded_protocol.get_position("alice", position_id).debt_amount == 0
