"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from equibasket.fixed_point import to_wad
from equibasket.oracles import PriceOracle, PushPriceFeed
from equibasket.registry import InMemoryBasketRegistry
from equibasket.settlement import SettlementLedger
from equibasket.token import BasketToken
from equibasket.vault import CollateralVault

ADMIN = "0xADMIN"
CREATOR = "0xCREATOR"
USER = "0xUSER"
USER2 = "0xUSER2"
LIQUIDATOR = "0xLIQUIDATOR"

TECH_ASSETS = ["AAPL", "NVDA", "MSFT"]
TECH_WEIGHTS = [5000, 3000, 2000]
TECH_PRICES = {"AAPL": to_wad("175"), "NVDA": to_wad("490"), "MSFT": to_wad("380")}

METAL_ASSETS = ["GOLD", "SILVER"]
METAL_WEIGHTS = [7000, 3000]
METAL_PRICES = {"GOLD": to_wad("2000"), "SILVER": to_wad("25")}

STARTING_BALANCE = to_wad("1000000")


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def registry() -> InMemoryBasketRegistry:
    return InMemoryBasketRegistry(ADMIN)


@pytest.fixture()
def settlement() -> SettlementLedger:
    ledger = SettlementLedger()
    for account in (USER, USER2, LIQUIDATOR, ADMIN):
        ledger.credit(account, STARTING_BALANCE)
    return ledger


@pytest.fixture()
def clock() -> list[int]:
    """Mutable fake clock; tests advance ``clock[0]``."""
    return [1_700_000_000]


@pytest.fixture()
def feed() -> PushPriceFeed:
    return PushPriceFeed(address="pyth", fee_per_update=10)


@pytest.fixture()
def oracle(
    registry: InMemoryBasketRegistry,
    settlement: SettlementLedger,
    feed: PushPriceFeed,
    clock: list[int],
) -> PriceOracle:
    oracle = PriceOracle(
        registry,
        ADMIN,
        feed=feed,
        settlement=settlement,
        clock=lambda: clock[0],
    )
    oracle.set_settlement_price(ADMIN, to_wad("0.5"))
    for symbol, price in {**TECH_PRICES, **METAL_PRICES}.items():
        oracle.set_asset_price(ADMIN, symbol, price)
    return oracle


@pytest.fixture()
def vault(
    registry: InMemoryBasketRegistry,
    oracle: PriceOracle,
    settlement: SettlementLedger,
) -> CollateralVault:
    return CollateralVault(registry, oracle, settlement, ADMIN)


def _create_with_token(
    registry: InMemoryBasketRegistry,
    vault: CollateralVault,
    assets: list[str],
    weights: list[int],
    name: str,
    symbol: str,
) -> tuple[int, BasketToken]:
    basket_id = registry.create_basket(CREATOR, assets, weights, name, symbol)
    token = BasketToken(basket_id, name, symbol, owner=CREATOR)
    token.set_vault(CREATOR, vault.address)
    vault.register_basket_token(ADMIN, basket_id, token)
    return basket_id, token


@pytest.fixture()
def tech_basket(
    registry: InMemoryBasketRegistry, vault: CollateralVault
) -> tuple[int, BasketToken]:
    return _create_with_token(registry, vault, TECH_ASSETS, TECH_WEIGHTS, "Tech Giants", "eTECH")


@pytest.fixture()
def metal_basket(
    registry: InMemoryBasketRegistry, vault: CollateralVault
) -> tuple[int, BasketToken]:
    return _create_with_token(
        registry, vault, METAL_ASSETS, METAL_WEIGHTS, "Precious Metals", "eMETAL"
    )


def crash_tech_prices(oracle: PriceOracle) -> None:
    """Tenfold constituent prices and a settlement drop to $0.10."""
    oracle.set_asset_price(ADMIN, "AAPL", to_wad("1750"))
    oracle.set_asset_price(ADMIN, "NVDA", to_wad("4900"))
    oracle.set_asset_price(ADMIN, "MSFT", to_wad("3800"))
    oracle.set_settlement_price(ADMIN, to_wad("0.1"))


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    admin: "0xADMIN"
    vault:
      min_mint_ratio: 500
      liquidation_threshold: 150
      liquidation_penalty_bps: 1000
      liquidation_policy: permissionless
    oracle:
      settlement_price: "0.5"
      max_price_age: 60
      asset_prices:
        AAPL: "175"
        NVDA: "490"
        MSFT: "380"
      pyth:
        hermes_url: "https://hermes.example.com"
        fee_per_update: 2
        feeds: {BTC: "0xbbb"}
    baskets:
      - name: Tech Giants
        symbol: eTECH
        creator: "0xCREATOR"
        assets: [AAPL, NVDA, MSFT]
        weights: [5000, 3000, 2000]
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
