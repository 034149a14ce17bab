"""Basket price oracle — weighted composite prices from per-asset prices."""
from __future__ import annotations

import logging
import time
from typing import Callable

from ..errors import (
    ArrayLengthMismatch,
    AssetAlreadyRegistered,
    AssetPriceNotAvailable,
    BasketDoesNotExist,
    InsufficientFee,
    NotAdmin,
    PriceNotSet,
    StalePrice,
    ZeroPrice,
)
from ..fixed_point import BPS_DENOMINATOR, WAD, rescale_exponent
from ..interfaces import BasketRegistry, PriceFeed, SettlementAsset
from ..models import FeedUpdate, PriceValidation
from .pyth import normalize_feed_id

logger = logging.getLogger(__name__)

DEFAULT_MAX_PRICE_AGE = 60


class PriceOracle:
    """Single source of truth for basket and settlement-asset prices.

    Prices are 18-digit fixed-point ints; zero means unavailable. An asset
    mapped to a feed id is read from the attached push feed instead of the
    manual table, subject to a freshness window.
    """

    def __init__(
        self,
        registry: BasketRegistry,
        admin: str,
        *,
        feed: PriceFeed | None = None,
        settlement: SettlementAsset | None = None,
        address: str = "oracle",
        max_price_age: int = DEFAULT_MAX_PRICE_AGE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._registry = registry
        self.admin = admin
        self.address = address
        self._feed = feed
        self._settlement = settlement
        self._clock = clock
        self.max_price_age = max_price_age

        self._asset_prices: dict[str, int] = {}
        self._asset_ids: dict[str, int] = {}
        self._registered: list[str] = []
        self._feed_ids: dict[str, str] = {}
        self.settlement_price = 0

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def _require_admin(self, caller: str) -> None:
        if caller != self.admin:
            raise NotAdmin(f"{caller} is not the oracle admin")

    def _track(self, asset: str) -> None:
        if asset not in self._asset_ids:
            self._asset_ids[asset] = len(self._registered)
            self._registered.append(asset)

    def register_asset(self, caller: str, asset: str, price: int) -> None:
        self._require_admin(caller)
        if price <= 0:
            raise ZeroPrice(f"Price for {asset} must be non-zero")
        if asset in self._asset_ids:
            raise AssetAlreadyRegistered(f"{asset} is already registered")
        self._track(asset)
        self._asset_prices[asset] = price
        logger.info("Registered asset %s at %d", asset, price)

    def set_asset_price(self, caller: str, asset: str, price: int) -> None:
        self._require_admin(caller)
        if price <= 0:
            raise ZeroPrice(f"Price for {asset} must be non-zero")
        self._track(asset)
        self._asset_prices[asset] = price
        logger.info("Asset price %s set to %d", asset, price)

    def set_asset_prices(self, caller: str, assets: list[str], prices: list[int]) -> None:
        """Batch form of :meth:`set_asset_price`; all entries are checked first."""
        self._require_admin(caller)
        if len(assets) != len(prices):
            raise ArrayLengthMismatch(f"{len(assets)} assets but {len(prices)} prices")
        for asset, price in zip(assets, prices):
            if price <= 0:
                raise ZeroPrice(f"Price for {asset} must be non-zero")
        for asset, price in zip(assets, prices):
            self.set_asset_price(caller, asset, price)

    def set_settlement_price(self, caller: str, price: int) -> None:
        self._require_admin(caller)
        if price <= 0:
            raise ZeroPrice("Settlement price must be non-zero")
        self.settlement_price = price
        logger.info("Settlement price set to %d", price)

    def set_asset_feed(self, caller: str, asset: str, feed_id: str) -> None:
        """Resolve ``asset`` from the push feed under ``feed_id``."""
        self._require_admin(caller)
        self._track(asset)
        self._feed_ids[asset] = normalize_feed_id(feed_id)
        logger.info("Asset %s mapped to feed %s", asset, feed_id)

    # ------------------------------------------------------------------
    # Asset prices
    # ------------------------------------------------------------------

    def registered_assets(self) -> list[str]:
        return list(self._registered)

    def asset_id(self, asset: str) -> int | None:
        return self._asset_ids.get(asset)

    def _feed_price(
        self, feed: PriceFeed, asset: str, feed_id: str
    ) -> tuple[int, int, int, int, int]:
        try:
            feed_price = feed.get_price_unsafe(feed_id)
        except AssetPriceNotAvailable:
            raise AssetPriceNotAvailable(asset) from None
        age = int(self._clock()) - feed_price.publish_time
        if age > self.max_price_age:
            raise StalePrice(asset, age)
        if feed_price.price <= 0:
            raise AssetPriceNotAvailable(asset)
        scaled = rescale_exponent(feed_price.price, feed_price.expo)
        return scaled, feed_price.price, feed_price.expo, feed_price.conf, feed_price.publish_time

    def get_asset_price(self, asset: str) -> int:
        """Current price for ``asset``; 0 when a manual price is unset."""
        feed_id = self._feed_ids.get(asset)
        if feed_id is not None and self._feed is not None:
            return self._feed_price(self._feed, asset, feed_id)[0]
        return self._asset_prices.get(asset, 0)

    def get_asset_price_debug(self, asset: str) -> tuple[int, int, int, int, int]:
        """Return ``(scaled, raw, expo, conf, publish_time)`` for a feed-backed asset."""
        feed_id = self._feed_ids.get(asset)
        if feed_id is None or self._feed is None:
            raise AssetPriceNotAvailable(asset)
        return self._feed_price(self._feed, asset, feed_id)

    # ------------------------------------------------------------------
    # Basket prices
    # ------------------------------------------------------------------

    def get_basket_price(self, basket_id: int) -> int:
        """Weighted composite price: Σ(price_i × weight_i) / 10000."""
        if not self._registry.exists(basket_id):
            raise BasketDoesNotExist(basket_id)
        assets, weights = self._registry.get_composition(basket_id)

        total = 0
        for asset, weight in zip(assets, weights):
            price = self.get_asset_price(asset)
            if price <= 0:
                raise AssetPriceNotAvailable(asset)
            total += price * weight
        return total // BPS_DENOMINATOR

    def validate_basket_prices(self, basket_id: int) -> PriceValidation:
        if not self._registry.exists(basket_id):
            raise BasketDoesNotExist(basket_id)
        assets, _ = self._registry.get_composition(basket_id)
        for asset in assets:
            try:
                price = self.get_asset_price(asset)
            except (AssetPriceNotAvailable, StalePrice):
                price = 0
            if price <= 0:
                return PriceValidation(valid=False, missing_asset=asset)
        return PriceValidation(valid=True)

    # ------------------------------------------------------------------
    # Settlement conversions
    # ------------------------------------------------------------------

    def settlement_value(self, amount: int) -> int:
        """USD value of ``amount`` settlement units."""
        if self.settlement_price == 0:
            raise PriceNotSet("Settlement price not set")
        return amount * self.settlement_price // WAD

    def settlement_amount_from_value(self, usd_value: int) -> int:
        """Settlement units worth ``usd_value``, rounded down."""
        if self.settlement_price == 0:
            raise PriceNotSet("Settlement price not set")
        return usd_value * WAD // self.settlement_price

    # ------------------------------------------------------------------
    # Feed updates
    # ------------------------------------------------------------------

    def get_update_fee(self, updates: list[FeedUpdate]) -> int:
        if self._feed is None:
            raise PriceNotSet("No price feed attached")
        return self._feed.get_update_fee(updates)

    def update_price_feeds(self, caller: str, updates: list[FeedUpdate], payment: int) -> int:
        """Push ``updates`` to the feed, paying the fee out of ``payment``.

        Only the fee is taken from the caller; the excess never leaves their
        balance. The feed write is the last step, so nothing can fail after
        it. Returns the unspent excess.
        """
        if self._feed is None or self._settlement is None:
            raise PriceNotSet("No price feed attached")
        fee = self._feed.get_update_fee(updates)
        if payment < fee:
            raise InsufficientFee(f"Update fee is {fee}, got {payment}")

        self._settlement.transfer(caller, self.address, fee)
        try:
            self._settlement.transfer(self.address, self._feed.address, fee)
            try:
                self._feed.update_price_feeds(updates, fee)
            except Exception:
                self._settlement.transfer(self._feed.address, self.address, fee, notify=False)
                raise
        except Exception:
            self._settlement.transfer(self.address, caller, fee, notify=False)
            raise

        refund = payment - fee
        logger.info("Pushed %d feed updates for fee %d (refund %d)", len(updates), fee, refund)
        return refund
