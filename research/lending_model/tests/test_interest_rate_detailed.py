"""Detailed test suite for the borrow rate curve and lazy interest accrual"""
import numpy as np
import pytest
from decimal import Decimal
from dataclasses import dataclass
from typing import Tuple

from lending_model.src.constants import (
    DEFAULT_BASE_BORROW_RATE,
    RATE_SCALE,
    UTILIZATION_KINK,
    YEAR_IN_SECONDS,
)
from lending_model.src.errors import ArithmeticError
from lending_model.src.instructions.accrue_interest import (
    calculate_borrow_rate,
    calculate_interest,
    calculate_supply_rate,
    calculate_tier_premium,
    calculate_utilization,
    checked_mul,
)
from lending_model.src.state.asset import Tier, default_tier_params
from lending_model.src.state.pool import PoolState

from conftest import BTC, ETH, USDC

@dataclass
class TestCase:
    """Test case for borrow rate calculation"""
    description: str
    utilization: int  # Scaled by RATE_SCALE
    tier: Tier
    expected_rate_range: Tuple[Decimal, Decimal]  # min/max expected annual rate

def borrow_rate_numpy(utilization: int, base_rate: int, jump_rate: int) -> float:
    """Float reference of the kinked curve"""
    u = utilization / RATE_SCALE
    kink = UTILIZATION_KINK / RATE_SCALE
    jump = jump_rate / RATE_SCALE
    premium = jump * (1 + np.minimum(u, kink)) + jump * 4 * np.maximum(u - kink, 0)
    return base_rate / RATE_SCALE + premium

def test_borrow_rate_calculation():
    """Test borrow rate responses to utilization per tier"""
    tiers = default_tier_params()
    test_cases = [
        TestCase("Empty pool, stable", 0, Tier.STABLE, (Decimal("0.10"), Decimal("0.12"))),
        TestCase("Empty pool, isolated", 0, Tier.ISOLATED, (Decimal("0.20"), Decimal("0.22"))),
        TestCase("Half utilized, cross A", 500_000, Tier.CROSS_A, (Decimal("0.17"), Decimal("0.19"))),
        TestCase("At kink, cross B", UTILIZATION_KINK, Tier.CROSS_B, (Decimal("0.27"), Decimal("0.28"))),
        TestCase("Fully utilized, stable", RATE_SCALE, Tier.STABLE, (Decimal("0.18"), Decimal("0.20"))),
    ]

    print("\nTesting Borrow Rate Calculations")
    print("=" * 80)

    for case in test_cases:
        print(f"\nTesting: {case.description}")
        jump = tiers[case.tier].jump_rate
        rate = calculate_borrow_rate(case.utilization, DEFAULT_BASE_BORROW_RATE, jump)
        reference = borrow_rate_numpy(case.utilization, DEFAULT_BASE_BORROW_RATE, jump)

        print(f"Utilization: {case.utilization / RATE_SCALE:.2%}")
        print(f"  Integer: {rate / RATE_SCALE:.6f}")
        print(f"  Numpy:   {reference:.6f}")

        assert case.expected_rate_range[0] <= Decimal(rate) / Decimal(RATE_SCALE) <= case.expected_rate_range[1], \
            f"Rate {rate / RATE_SCALE} outside expected range {case.expected_rate_range}"
        assert abs(rate / RATE_SCALE - reference) < 1e-6

def test_exact_curve_points():
    assert calculate_tier_premium(0, 50_000) == 50_000
    assert calculate_tier_premium(UTILIZATION_KINK, 50_000) == 90_000
    assert calculate_tier_premium(RATE_SCALE, 50_000) == 130_000
    assert calculate_borrow_rate(0, 60_000, 50_000) == 110_000
    assert calculate_borrow_rate(RATE_SCALE, 60_000, 50_000) == 190_000

def test_rate_increases_with_utilization():
    """Rates rise strictly through 0 -> 25 -> 50 -> 75 -> 90 percent utilization"""
    tiers = default_tier_params()
    for tier in Tier:
        rates = [
            calculate_borrow_rate(u, DEFAULT_BASE_BORROW_RATE, tiers[tier].jump_rate)
            for u in (0, 250_000, 500_000, 750_000, 900_000)
        ]
        print(f"{tier.name}: {[r / RATE_SCALE for r in rates]}")
        assert all(a < b for a, b in zip(rates, rates[1:]))

def test_slope_steepens_above_kink():
    jump = default_tier_params()[Tier.CROSS_A].jump_rate
    below = calculate_tier_premium(UTILIZATION_KINK, jump) - calculate_tier_premium(UTILIZATION_KINK - 100_000, jump)
    above = calculate_tier_premium(UTILIZATION_KINK + 100_000, jump) - calculate_tier_premium(UTILIZATION_KINK, jump)
    assert above == 4 * below

def test_tiers_strictly_ordered():
    """At any utilization a riskier tier never pays less"""
    tiers = default_tier_params()
    for u in np.linspace(0, RATE_SCALE, 21).astype(int):
        rates = [calculate_borrow_rate(int(u), DEFAULT_BASE_BORROW_RATE, tiers[t].jump_rate) for t in Tier]
        assert rates == sorted(rates)
        assert len(set(rates)) == len(rates)

def test_utilization():
    assert calculate_utilization(0, 0) == 0
    assert calculate_utilization(0, 100 * USDC) == 0
    assert calculate_utilization(25 * USDC, 100 * USDC) == 250_000
    assert calculate_utilization(100 * USDC, 100 * USDC) == RATE_SCALE

def test_interest_accrual():
    """Test interest accumulation over time against a float reference"""
    print("\nTesting Interest Accrual")
    print("=" * 80)

    initial_debt = 1000 * USDC
    rate = 100_000  # 10%
    test_periods = [
        (0, "0 seconds"),
        (1, "1 second"),
        (60, "1 minute"),
        (3600, "1 hour"),
        (86400, "1 day"),
        (YEAR_IN_SECONDS // 2, "half a year"),
        (YEAR_IN_SECONDS, "1 year"),
    ]

    for elapsed_time, description in test_periods:
        interest = calculate_interest(initial_debt, rate, elapsed_time)
        reference = initial_debt * (rate / RATE_SCALE) * elapsed_time / YEAR_IN_SECONDS
        print(f"{description:>12}: integer {interest}, numpy {reference:.4f}")
        # floor division loses less than one base unit
        assert -1e-6 <= reference - interest < 1

    assert calculate_interest(initial_debt, rate, YEAR_IN_SECONDS) == 100 * USDC
    assert calculate_interest(initial_debt, rate, YEAR_IN_SECONDS // 2) == 50 * USDC
    assert calculate_interest(0, rate, YEAR_IN_SECONDS) == 0

def test_overflow_is_reported():
    with pytest.raises(ArithmeticError):
        checked_mul(2**200, 2**100)

def test_supply_rate_only_counts_profit_above_target():
    pool = PoolState(total_supplied_liquidity=100_000 * USDC, tracked_base_balance=100_500 * USDC)
    assert calculate_supply_rate(pool, 10_000) == 0

    pool.tracked_base_balance = 102_280 * USDC
    assert calculate_supply_rate(pool, 10_000) == 12_800
    assert calculate_supply_rate(PoolState(), 10_000) == 0


# ---------------------------------------------------------------------------
# Accrual through the engine
# ---------------------------------------------------------------------------

def test_borrow_moves_utilization(funded_protocol, open_position):
    position_id = open_position("alice", "WETH", 10 * ETH)
    rates = [funded_protocol.borrow_rate(Tier.CROSS_A)]
    for _ in range(3):
        funded_protocol.borrow("alice", position_id, 5_000 * USDC)
        rates.append(funded_protocol.borrow_rate(Tier.CROSS_A))

    assert funded_protocol.utilization() == 150_000
    assert all(a < b for a, b in zip(rates, rates[1:]))

def test_accrual_is_idempotent_within_an_instant(funded_protocol, open_position, clock):
    position_id = open_position("alice", "WETH", 10 * ETH)
    funded_protocol.borrow("alice", position_id, 15_000 * USDC)
    clock.advance(30 * 86400)

    first = funded_protocol.accrue_interest("alice", position_id)
    debt = funded_protocol.get_position("alice", position_id).debt_amount
    second = funded_protocol.accrue_interest("alice", position_id)

    assert first > 0
    assert second == 0
    assert funded_protocol.get_position("alice", position_id).debt_amount == debt
    assert funded_protocol.get_position("alice", position_id).last_interest_accrual == clock()

def test_one_year_of_interest(funded_protocol, open_position, clock):
    position_id = open_position("alice", "WETH", 10 * ETH)
    funded_protocol.borrow("alice", position_id, 15_000 * USDC)
    # 15% utilization, CROSS_A: 6% + 8% * 1.15
    assert funded_protocol.position_borrow_rate("alice", position_id) == 152_000

    clock.advance(YEAR_IN_SECONDS)
    assert funded_protocol.debt_with_interest("alice", position_id) == 17_280 * USDC
    # the view does not store anything
    assert funded_protocol.get_position("alice", position_id).debt_amount == 15_000 * USDC

    interest = funded_protocol.accrue_interest("alice", position_id)
    assert interest == 2_280 * USDC
    assert funded_protocol.pool.total_borrow == 17_280 * USDC
    assert funded_protocol.audit_total_borrow() == funded_protocol.pool.total_borrow

def test_tier_follows_current_collateral(funded_protocol, open_position, collateral_tokens, fund):
    position_id = open_position("alice", "USDT", 1_000 * USDC)
    assert funded_protocol.position_tier("alice", position_id) == Tier.STABLE

    fund(collateral_tokens["WBTC"], "alice", BTC)
    funded_protocol.supply_collateral("alice", "WBTC", BTC, position_id)
    assert funded_protocol.position_tier("alice", position_id) == Tier.CROSS_B
    assert funded_protocol.position_borrow_rate("alice", position_id) == funded_protocol.borrow_rate(Tier.CROSS_B)

    funded_protocol.withdraw_collateral("alice", "WBTC", BTC, position_id)
    assert funded_protocol.position_tier("alice", position_id) == Tier.STABLE

def test_empty_position_is_stable_tier(funded_protocol):
    position_id = funded_protocol.create_position("alice", "WETH")
    assert funded_protocol.position_tier("alice", position_id) == Tier.STABLE
