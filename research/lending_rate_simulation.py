import argparse
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Optional

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from lending_model.src.config_loader import LendingConfig, apply_config, load_config
from lending_model.src.constants import HOUR_IN_SECONDS, RATE_SCALE, WAD
from lending_model.src.errors import InvalidConfigError, NotLiquidatableError, ProtocolError
from lending_model.src.instructions.accrue_interest import calculate_borrow_rate
from lending_model.src.interfaces import Role
from lending_model.src.logging_setup import configure_logging
from lending_model.src.protocol import LendingProtocol
from lending_model.src.sim.access import RoleRegistry
from lending_model.src.sim.clock import ManualClock
from lending_model.src.sim.price_feed import MockPriceFeed
from lending_model.src.sim.token import FungibleToken
from lending_model.src.state.asset import AssetConfig, Tier, default_tier_params

logger = logging.getLogger(__name__)

USDC = 10**6

# used when no config file is given
DEFAULT_CONFIG = LendingConfig(
    assets={
        "WETH": AssetConfig(
            decimals=18,
            borrow_threshold=800,
            liquidation_threshold=850,
            max_supply_threshold=100_000 * 10**18,
            tier=Tier.CROSS_A,
            oracles=("ETH/USD",),
        )
    }
)


@dataclass
class SimulationParams:
    collateral_asset: str = "WETH"
    initial_price: float = 2500.0
    price_volatility: float = 0.01  # per hourly step
    price_drift: float = -0.0005  # per hourly step
    simulation_days: int = 30
    steps_per_day: int = 24  # hourly steps
    collateral_units: int = 10
    borrow_usdc: int = 15_000
    pool_liquidity_usdc: int = 100_000
    random_seed: Optional[int] = None
    experiment_name: str = "default"


def rate_curves(config: LendingConfig, n_points: int = 101) -> pd.DataFrame:
    """Borrow rate of every tier across utilization, with the config's tier overrides"""
    tiers = {**default_tier_params(), **config.tiers}
    utilizations = np.linspace(0, 1, n_points)
    data = {"utilization": utilizations}
    for tier, params in tiers.items():
        data[tier.name] = [
            calculate_borrow_rate(int(u * RATE_SCALE), config.protocol.base_borrow_rate, params.jump_rate)
            / RATE_SCALE
            for u in utilizations
        ]
    return pd.DataFrame(data)


class LiquidationSimulation:
    """Drives one borrower through a random price path until liquidation or the end"""

    def __init__(self, params: SimulationParams, config: LendingConfig = DEFAULT_CONFIG):
        if params.collateral_asset not in config.assets:
            raise InvalidConfigError(f"{params.collateral_asset}: not configured")
        self.params = params
        self.asset_config = config.assets[params.collateral_asset]
        self.unit = 10**self.asset_config.decimals
        self.price_unit = 10**self.asset_config.oracle_decimals
        self.rng = np.random.default_rng(params.random_seed)
        self.clock = ManualClock()
        self.records = []

        self.usdc = FungibleToken("USDC", decimals=6)
        self.collateral = FungibleToken(params.collateral_asset, decimals=self.asset_config.decimals)
        self.shares = FungibleToken("lpUSDC", decimals=6)
        self.gov = FungibleToken("GOV", decimals=18)
        self.roles = RoleRegistry(admin="admin")
        self.roles.grant_role("admin", Role.MANAGER, "manager")

        self.protocol = LendingProtocol(
            self.usdc, self.shares, self.gov, self.roles, treasury="treasury", clock=self.clock
        )
        # every feed of the collateral follows the same simulated price
        self.feeds = []
        for name in self.asset_config.oracles:
            feed = MockPriceFeed(decimals=self.asset_config.oracle_decimals)
            feed.push_round(int(params.initial_price * self.price_unit), self.clock() - HOUR_IN_SECONDS)
            self.protocol.add_price_feed("manager", name, feed)
            self.feeds.append(feed)

        apply_config(
            self.protocol,
            "manager",
            replace(config, assets={params.collateral_asset: self.asset_config}),
            {params.collateral_asset: self.collateral},
        )

    def _fund(self) -> None:
        p = self.params
        protocol = self.protocol
        self.usdc.mint("lender", p.pool_liquidity_usdc * USDC)
        self.usdc.approve("lender", protocol.address, p.pool_liquidity_usdc * USDC)
        protocol.supply_liquidity("lender", p.pool_liquidity_usdc * USDC)

        amount = p.collateral_units * self.unit
        self.collateral.mint("borrower", amount)
        self.collateral.approve("borrower", protocol.address, amount)
        position_id = protocol.create_position(
            "borrower", p.collateral_asset, isolated=self.asset_config.tier == Tier.ISOLATED
        )
        protocol.supply_collateral("borrower", p.collateral_asset, amount, position_id)
        protocol.borrow("borrower", position_id, p.borrow_usdc * USDC)

        self.gov.mint("liquidator", protocol.protocol_config.liquidator_governance_threshold)
        self.usdc.mint("liquidator", 10 * p.borrow_usdc * USDC)
        self.usdc.approve("liquidator", protocol.address, 10 * p.borrow_usdc * USDC)

    def simulate(self) -> pd.DataFrame:
        p = self.params
        self._fund()
        price = p.initial_price
        total_steps = p.simulation_days * p.steps_per_day
        step_seconds = 24 * HOUR_IN_SECONDS // p.steps_per_day

        for step in range(total_steps):
            price *= 1 + self.rng.normal(p.price_drift, p.price_volatility)
            self.clock.advance(step_seconds)
            for feed in self.feeds:
                feed.push_round(int(price * self.price_unit), self.clock())

            hf = self.protocol.health_factor("borrower", 0)
            liquidated = False
            if self.protocol.is_liquidatable("borrower", 0):
                try:
                    self.protocol.liquidate("liquidator", "borrower", 0)
                    liquidated = True
                except NotLiquidatableError:
                    pass
                except ProtocolError as exc:
                    logger.warning("Liquidation attempt failed at step %d: %s", step, exc)

            self.records.append(
                {
                    "day": step / p.steps_per_day,
                    "price": price,
                    "health_factor": hf / WAD,
                    "debt": self.protocol.debt_with_interest("borrower", 0) / USDC,
                    "utilization": self.protocol.utilization() / RATE_SCALE,
                    "supply_rate": self.protocol.supply_rate() / RATE_SCALE,
                    "liquidated": liquidated,
                }
            )
            if liquidated:
                logger.info("Position liquidated on day %.2f at price %.2f", step / p.steps_per_day, price)
                break

        return pd.DataFrame.from_records(self.records)


def plot_results(curves: pd.DataFrame, history: pd.DataFrame, params: SimulationParams) -> Path:
    output_dir = Path("research/results") / params.experiment_name
    output_dir.mkdir(parents=True, exist_ok=True)

    fig, (ax1, ax2, ax3) = plt.subplots(3, 1, figsize=(12, 12))

    for tier in Tier:
        ax1.plot(curves["utilization"] * 100, curves[tier.name] * 100, label=tier.name)
    ax1.set_xlabel("Utilization (%)")
    ax1.set_ylabel("Borrow Rate (%)")
    ax1.set_title("Borrow Rate by Tier")
    ax1.legend()
    ax1.grid(True, alpha=0.3)

    ax2.plot(history["day"], history["price"], label="Collateral Price")
    ax2.set_ylabel("Price (USD)")
    ax2.set_title("Collateral Price Over Time")
    ax2.legend()
    ax2.grid(True, alpha=0.3)

    ax3.plot(history["day"], history["health_factor"], label="Health Factor", color="orange")
    ax3.axhline(y=1.0, color="r", linestyle="--", alpha=0.3)
    liquidations = history[history["liquidated"]]
    if not liquidations.empty:
        ax3.scatter(liquidations["day"], liquidations["health_factor"], color="r", label="Liquidation")
    ax3.set_xlabel("Time (days)")
    ax3.set_ylabel("Health Factor")
    ax3.set_title("Position Health Over Time")
    ax3.legend()
    ax3.grid(True, alpha=0.3)

    seed_text = f"Random Seed: {params.random_seed}" if params.random_seed is not None else "No Seed"
    fig.text(0.02, 0.02, seed_text, fontsize=8, alpha=0.7)
    plt.tight_layout()

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    plot_path = output_dir / f"lending_simulation_{timestamp}.png"
    plt.savefig(plot_path, bbox_inches="tight", dpi=150)
    plt.close()

    curves.to_csv(output_dir / "rate_curves.csv", index=False)
    history.to_csv(output_dir / f"history_{timestamp}.csv", index=False)
    return plot_path


def main():
    parser = argparse.ArgumentParser(description="Lending protocol rate and liquidation simulation")
    parser.add_argument("--days", type=int, default=30)
    parser.add_argument("--seed", type=int, default=57)
    parser.add_argument("--volatility", type=float, default=0.01)
    parser.add_argument("--experiment", default="liquidation_path")
    parser.add_argument("--config", type=Path, help="YAML config; defaults to a single WETH listing")
    parser.add_argument("--asset", default="WETH", help="collateral asset to simulate")
    parser.add_argument("--price", type=float, default=2500.0, help="initial collateral price in USD")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    configure_logging(args.log_level)
    config = load_config(args.config) if args.config else DEFAULT_CONFIG
    params = SimulationParams(
        collateral_asset=args.asset,
        initial_price=args.price,
        simulation_days=args.days,
        random_seed=args.seed,
        price_volatility=args.volatility,
        experiment_name=args.experiment,
    )

    curves = rate_curves(config)
    history = LiquidationSimulation(params, config).simulate()
    plot_path = plot_results(curves, history, params)
    logger.info("Results written to %s", plot_path)


if __name__ == "__main__":
    main()
