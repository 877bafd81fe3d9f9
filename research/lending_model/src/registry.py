"""Asset registry: listed assets, their risk configuration and tier parameters"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List

from .errors import AssetNotListedError, InvalidConfigError
from .oracle import OracleGateway
from .state.asset import AssetConfig, Tier, TierParams, default_tier_params
from .state.collateral import CollateralVault

logger = logging.getLogger(__name__)


@dataclass
class AssetRegistry:
    """Listed assets in listing order.

    Assets are never delisted; ``active=False`` only blocks new deposits.
    """
    assets: Dict[str, AssetConfig] = field(default_factory=dict)
    vaults: Dict[str, CollateralVault] = field(default_factory=dict)
    tiers: Dict[Tier, TierParams] = field(default_factory=default_tier_params)

    def set_asset_config(self, asset: str, config: AssetConfig, oracle: OracleGateway) -> None:
        problems = config.problems()
        for name in config.oracles:
            if not oracle.has_feed(name):
                problems.append(f"price feed {name} is not registered")
            elif oracle.feeds[name].decimals != config.oracle_decimals:
                problems.append(
                    f"price feed {name} reports {oracle.feeds[name].decimals} decimals, "
                    f"not {config.oracle_decimals}"
                )
        # positions only hold assets that match their isolation mode
        current = self.assets.get(asset)
        if current is not None and current.tier != config.tier and self.vaults[asset].total_deposited > 0:
            problems.append(
                f"tier cannot change from {current.tier.name} to {config.tier.name} while collateral is deposited"
            )
        if problems:
            raise InvalidConfigError([f"{asset}: {p}" for p in problems])

        newly_listed = asset not in self.assets
        self.assets[asset] = config
        self.vaults.setdefault(asset, CollateralVault(asset=asset))
        logger.info(
            "Asset listed" if newly_listed else "Asset updated",
            extra={
                "event": "registry.asset_set",
                "asset": asset,
                "tier": config.tier.name,
                "active": config.active,
            },
        )

    def get_asset_config(self, asset: str) -> AssetConfig:
        try:
            return self.assets[asset]
        except KeyError:
            raise AssetNotListedError(f"Asset {asset} is not listed") from None

    def require_active(self, asset: str) -> AssetConfig:
        config = self.get_asset_config(asset)
        if not config.active:
            raise AssetNotListedError(f"Asset {asset} is deactivated")
        return config

    def is_listed(self, asset: str) -> bool:
        return asset in self.assets

    def list_assets(self) -> List[str]:
        return list(self.assets)

    def assets_by_tier(self, tier: Tier) -> List[str]:
        return [asset for asset, config in self.assets.items() if config.tier == tier]

    def vault(self, asset: str) -> CollateralVault:
        self.get_asset_config(asset)
        return self.vaults[asset]

    def tier_params(self, tier: Tier) -> TierParams:
        return self.tiers[tier]

    def update_tier_config(self, tier: Tier, jump_rate: int, liquidation_fee: int) -> None:
        params = TierParams(jump_rate=jump_rate, liquidation_fee=liquidation_fee)
        params.validate()
        self.tiers[tier] = params
        logger.info(
            "Tier parameters updated",
            extra={
                "event": "registry.tier_updated",
                "tier": tier.name,
                "jump_rate": jump_rate,
                "liquidation_fee": liquidation_fee,
            },
        )

    def get_asset_price(self, asset: str, oracle: OracleGateway) -> int:
        """Price of one whole unit of ``asset`` at PRICE_DECIMALS precision"""
        config = self.get_asset_config(asset)
        if len(config.oracles) == 1:
            return oracle.get_normalized_price(config.primary, config.oracle_decimals)
        return oracle.get_median_price(config.oracles, config.oracle_decimals, config.min_oracles)
