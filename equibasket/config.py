"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .fixed_point import BPS_DENOMINATOR, to_wad

logger = logging.getLogger(__name__)

LIQUIDATION_POLICIES = ("permissionless", "permissioned")

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VaultConfig:
    min_mint_ratio: int = 500
    liquidation_threshold: int = 150
    liquidation_penalty_bps: int = 1000
    liquidation_policy: str = "permissionless"
    liquidator: str = ""


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    feeds: dict[str, str] = field(default_factory=dict)
    fee_per_update: int = 1


@dataclass(frozen=True)
class OracleConfig:
    settlement_price: int = 0
    asset_prices: dict[str, int] = field(default_factory=dict)
    max_price_age: int = 60
    use_feeds: bool = False
    pyth: PythConfig = field(default_factory=PythConfig)


@dataclass(frozen=True)
class BasketConfig:
    name: str = ""
    symbol: str = ""
    creator: str = ""
    assets: tuple[str, ...] = ()
    weights: tuple[int, ...] = ()
    active: bool = True


@dataclass(frozen=True)
class AppConfig:
    admin: str = ""
    vault: VaultConfig = field(default_factory=VaultConfig)
    oracle: OracleConfig = field(default_factory=OracleConfig)
    baskets: tuple[BasketConfig, ...] = ()


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


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_vault(raw: dict[str, Any]) -> VaultConfig:
    liquidator = raw.get("liquidator") or ""
    return VaultConfig(
        min_mint_ratio=int(raw.get("min_mint_ratio", 500)),
        liquidation_threshold=int(raw.get("liquidation_threshold", 150)),
        liquidation_penalty_bps=int(raw.get("liquidation_penalty_bps", 1000)),
        liquidation_policy=str(raw.get("liquidation_policy", "permissionless")),
        liquidator=str(liquidator),
    )


def _build_oracle(raw: dict[str, Any]) -> OracleConfig:
    pyth_raw = raw.get("pyth", {}) or {}
    settlement = raw.get("settlement_price")
    return OracleConfig(
        settlement_price=to_wad(settlement) if settlement not in (None, "") else 0,
        asset_prices={
            str(symbol): to_wad(price)
            for symbol, price in (raw.get("asset_prices", {}) or {}).items()
        },
        max_price_age=int(raw.get("max_price_age", 60)),
        use_feeds=bool(raw.get("use_feeds", False)),
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            feeds={str(k): str(v) for k, v in (pyth_raw.get("feeds", {}) or {}).items()},
            fee_per_update=int(pyth_raw.get("fee_per_update", 1)),
        ),
    )


def _build_baskets(raw: list[dict[str, Any]]) -> tuple[BasketConfig, ...]:
    baskets: list[BasketConfig] = []
    for b in raw:
        baskets.append(
            BasketConfig(
                name=b.get("name", ""),
                symbol=b.get("symbol", ""),
                creator=b.get("creator", ""),
                assets=tuple(str(a) for a in b.get("assets", [])),
                weights=tuple(int(w) for w in b.get("weights", [])),
                active=bool(b.get("active", True)),
            )
        )
    return tuple(baskets)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (two levels up from this file).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        admin=str(raw.get("admin", "")),
        vault=_build_vault(raw.get("vault", {}) or {}),
        oracle=_build_oracle(raw.get("oracle", {}) or {}),
        baskets=_build_baskets(raw.get("baskets", []) or []),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.admin:
        raise ValueError("An admin account must be configured")

    vault = cfg.vault
    if vault.liquidation_threshold <= 0:
        raise ValueError("liquidation_threshold must be positive")
    if vault.min_mint_ratio < vault.liquidation_threshold:
        raise ValueError("min_mint_ratio must not be below liquidation_threshold")
    if not 0 <= vault.liquidation_penalty_bps <= BPS_DENOMINATOR:
        raise ValueError("liquidation_penalty_bps must be between 0 and 10000")
    if vault.liquidation_policy not in LIQUIDATION_POLICIES:
        raise ValueError(f"Unknown liquidation policy '{vault.liquidation_policy}'")
    if vault.liquidation_policy == "permissioned" and not vault.liquidator:
        raise ValueError("Permissioned liquidation requires a liquidator")

    if cfg.oracle.max_price_age <= 0:
        raise ValueError("max_price_age must be positive")

    for basket in cfg.baskets:
        if not basket.symbol:
            raise ValueError(f"Basket '{basket.name}' has no symbol")
        if len(basket.assets) != len(basket.weights):
            raise ValueError(
                f"Basket '{basket.symbol}' has {len(basket.assets)} assets "
                f"but {len(basket.weights)} weights"
            )
