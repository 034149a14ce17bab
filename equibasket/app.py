"""Wires registry, oracle, settlement ledger, vault and tokens from AppConfig."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .config import AppConfig
from .oracles import PriceOracle, PushPriceFeed
from .registry import InMemoryBasketRegistry
from .settlement import SettlementLedger
from .token import BasketToken
from .vault import CollateralVault, LiquidationPolicy

logger = logging.getLogger(__name__)


@dataclass
class EquiBasketApp:
    """A fully wired in-process system."""

    config: AppConfig
    registry: InMemoryBasketRegistry
    settlement: SettlementLedger
    oracle: PriceOracle
    vault: CollateralVault
    feed: PushPriceFeed | None = None
    tokens: dict[int, BasketToken] = field(default_factory=dict)

    def create_basket(
        self,
        creator: str,
        assets: list[str],
        weights: list[int],
        name: str,
        symbol: str,
    ) -> int:
        """Create a basket, deploy its token and register it with the vault."""
        basket_id = self.registry.create_basket(creator, assets, weights, name, symbol)
        token = BasketToken(basket_id, name, symbol, owner=creator)
        token.set_vault(creator, self.vault.address)
        self.vault.register_basket_token(self.config.admin, basket_id, token)
        self.tokens[basket_id] = token
        return basket_id


def build_app(config: AppConfig) -> EquiBasketApp:
    """Build the system and seed it with configured prices and baskets."""
    admin = config.admin
    registry = InMemoryBasketRegistry(admin)
    settlement = SettlementLedger()

    feed: PushPriceFeed | None = None
    if config.oracle.use_feeds:
        feed = PushPriceFeed(fee_per_update=config.oracle.pyth.fee_per_update)

    oracle = PriceOracle(
        registry,
        admin,
        feed=feed,
        settlement=settlement,
        max_price_age=config.oracle.max_price_age,
    )
    if config.oracle.settlement_price:
        oracle.set_settlement_price(admin, config.oracle.settlement_price)
    for symbol, price in config.oracle.asset_prices.items():
        oracle.set_asset_price(admin, symbol, price)
    if feed is not None:
        for symbol, feed_id in config.oracle.pyth.feeds.items():
            oracle.set_asset_feed(admin, symbol, feed_id)

    vault_cfg = config.vault
    vault = CollateralVault(
        registry,
        oracle,
        settlement,
        admin,
        min_mint_ratio=vault_cfg.min_mint_ratio,
        liquidation_threshold=vault_cfg.liquidation_threshold,
        liquidation_penalty_bps=vault_cfg.liquidation_penalty_bps,
        liquidation_policy=LiquidationPolicy(vault_cfg.liquidation_policy),
        liquidator=vault_cfg.liquidator or None,
    )

    app = EquiBasketApp(
        config=config,
        registry=registry,
        settlement=settlement,
        oracle=oracle,
        vault=vault,
        feed=feed,
    )
    for basket in config.baskets:
        basket_id = app.create_basket(
            basket.creator or admin,
            list(basket.assets),
            list(basket.weights),
            basket.name,
            basket.symbol,
        )
        if not basket.active:
            registry.set_basket_active(admin, basket_id, False)

    logger.info(
        "System ready: %d baskets, %d priced assets",
        registry.basket_count,
        len(oracle.registered_assets()),
    )
    return app
