"""Configuration loader: reads a YAML file, interpolates env vars, validates, applies."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import InvalidConfigError
from .interfaces import FungibleAsset
from .protocol import LendingProtocol
from .state.asset import AssetConfig, Tier, TierParams
from .state.protocol_config import ProtocolConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LendingConfig:
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)
    tiers: dict[Tier, TierParams] = field(default_factory=dict)
    assets: dict[str, AssetConfig] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


def _as_int(raw: Any, name: str) -> int:
    """Accept ints, digit strings with underscores, and ``a * 10**b`` style scientific strings."""
    if isinstance(raw, bool):
        raise InvalidConfigError(f"{name} must be an integer, got {raw!r}")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        text = raw.replace("_", "").strip()
        if text.isdigit():
            return int(text)
        match = re.fullmatch(r"(\d+)e(\d+)", text)
        if match:
            return int(match.group(1)) * 10 ** int(match.group(2))
    raise InvalidConfigError(f"{name} must be an integer, got {raw!r}")


def _as_bool(raw: Any, default: bool = True) -> bool:
    """Booleans may arrive as strings after env interpolation; an empty string keeps the default."""
    if isinstance(raw, str):
        text = raw.strip().lower()
        if not text:
            return default
        return text in ("true", "yes", "1", "on")
    return bool(raw)


# ---------------------------------------------------------------------------
# YAML -> dataclass builders
# ---------------------------------------------------------------------------


def _build_protocol(raw: dict[str, Any]) -> ProtocolConfig:
    defaults = ProtocolConfig()
    values = {
        name: _as_int(raw.get(name, getattr(defaults, name)), f"protocol.{name}")
        for name in (f.name for f in fields(ProtocolConfig))
    }
    config = ProtocolConfig(**values)
    config.validate()
    return config


def _parse_tier(raw: Any, name: str) -> Tier:
    try:
        return Tier[str(raw).upper()]
    except KeyError:
        raise InvalidConfigError(f"{name}: unknown tier {raw!r}") from None


def _build_tiers(raw: dict[str, Any]) -> dict[Tier, TierParams]:
    tiers: dict[Tier, TierParams] = {}
    for name, cfg in raw.items():
        tier = _parse_tier(name, f"tiers.{name}")
        params = TierParams(
            jump_rate=_as_int(cfg.get("jump_rate"), f"tiers.{name}.jump_rate"),
            liquidation_fee=_as_int(cfg.get("liquidation_fee"), f"tiers.{name}.liquidation_fee"),
        )
        params.validate()
        tiers[tier] = params
    return tiers


def _build_assets(raw: dict[str, Any]) -> dict[str, AssetConfig]:
    assets: dict[str, AssetConfig] = {}
    for symbol, cfg in raw.items():
        oracles = cfg.get("oracles", [])
        if isinstance(oracles, str):
            oracles = [oracles]
        config = AssetConfig(
            decimals=_as_int(cfg.get("decimals", 18), f"assets.{symbol}.decimals"),
            borrow_threshold=_as_int(cfg.get("borrow_threshold"), f"assets.{symbol}.borrow_threshold"),
            liquidation_threshold=_as_int(
                cfg.get("liquidation_threshold"), f"assets.{symbol}.liquidation_threshold"
            ),
            max_supply_threshold=_as_int(
                cfg.get("max_supply_threshold"), f"assets.{symbol}.max_supply_threshold"
            ),
            tier=_parse_tier(cfg.get("tier", "STABLE"), f"assets.{symbol}.tier"),
            oracles=tuple(str(o) for o in oracles),
            primary_oracle=cfg.get("primary_oracle"),
            oracle_decimals=_as_int(cfg.get("oracle_decimals", 8), f"assets.{symbol}.oracle_decimals"),
            isolation_debt_cap=_as_int(cfg.get("isolation_debt_cap", 0), f"assets.{symbol}.isolation_debt_cap"),
            min_oracles=_as_int(cfg.get("min_oracles", 1), f"assets.{symbol}.min_oracles"),
            active=_as_bool(cfg.get("active", True)),
        )
        problems = config.problems()
        if problems:
            raise InvalidConfigError([f"{symbol}: {p}" for p in problems])
        assets[symbol] = config
    return assets


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(path: str | Path) -> LendingConfig:
    """Load and validate a lending config file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    config = LendingConfig(
        protocol=_build_protocol(raw.get("protocol", {}) or {}),
        tiers=_build_tiers(raw.get("tiers", {}) or {}),
        assets=_build_assets(raw.get("assets", {}) or {}),
    )
    logger.info(
        "Config loaded from %s: %d assets, %d tier overrides",
        path,
        len(config.assets),
        len(config.tiers),
    )
    return config


def apply_config(
    protocol: LendingProtocol,
    caller: str,
    config: LendingConfig,
    tokens: Mapping[str, FungibleAsset],
) -> None:
    """Push a loaded config into an engine.

    Price feeds named by the assets must already be registered with the engine.
    Every configured asset needs a token in ``tokens``.
    """
    missing = [symbol for symbol in config.assets if symbol not in tokens]
    if missing:
        raise InvalidConfigError([f"{symbol}: no token supplied" for symbol in missing])

    protocol.load_protocol_config(caller, config.protocol)
    for tier, params in config.tiers.items():
        protocol.update_tier_config(caller, tier, params.jump_rate, params.liquidation_fee)
    for symbol, asset_config in config.assets.items():
        protocol.set_asset_config(caller, symbol, asset_config, token=tokens[symbol])
    logger.info(
        "Config applied: %d assets, %d tier overrides",
        len(config.assets),
        len(config.tiers),
    )
