"""Pyth Network push-price feed: in-process feed store and Hermes HTTP client."""
from __future__ import annotations

import logging
import ssl

import aiohttp
import certifi

from ..config import PythConfig
from ..errors import AssetPriceNotAvailable, InsufficientFee
from ..models import FeedPrice, FeedUpdate

logger = logging.getLogger(__name__)


class PushPriceFeed:
    """Push-oracle network stand-in.

    Holds the newest update per feed id and charges a flat fee per update,
    the way the on-chain Pyth receiver does.
    """

    def __init__(self, address: str = "pyth", fee_per_update: int = 1) -> None:
        self._address = address
        self.fee_per_update = fee_per_update
        self._prices: dict[str, FeedPrice] = {}

    @property
    def address(self) -> str:
        return self._address

    def get_update_fee(self, updates: list[FeedUpdate]) -> int:
        return self.fee_per_update * len(updates)

    def update_price_feeds(self, updates: list[FeedUpdate], fee_paid: int) -> None:
        fee = self.get_update_fee(updates)
        if fee_paid < fee:
            raise InsufficientFee(f"Update fee is {fee}, got {fee_paid}")

        for update in updates:
            feed_id = normalize_feed_id(update.feed_id)
            current = self._prices.get(feed_id)
            if current is not None and current.publish_time >= update.publish_time:
                continue
            self._prices[feed_id] = FeedPrice(
                price=update.price,
                expo=update.expo,
                conf=update.conf,
                publish_time=update.publish_time,
            )
        logger.debug("Applied %d price feed updates", len(updates))

    def get_price_unsafe(self, feed_id: str) -> FeedPrice:
        """Return the stored price without any freshness check."""
        try:
            return self._prices[normalize_feed_id(feed_id)]
        except KeyError:
            raise AssetPriceNotAvailable(feed_id) from None


class HermesClient:
    """Fetch latest price updates from a Pyth Hermes endpoint."""

    def __init__(self, config: PythConfig) -> None:
        self.hermes_url = config.hermes_url
        self.price_feeds = dict(config.feeds)

    async def fetch_updates(self, symbols: list[str] | None = None) -> dict[str, FeedUpdate]:
        """Fetch the latest update for each configured asset.

        Args:
            symbols: Optional list of symbols to fetch. If None, fetches all
                     configured feeds.

        Returns a mapping of asset symbol to :class:`FeedUpdate`; empty on any
        HTTP or network failure.
        """
        updates: dict[str, FeedUpdate] = {}

        feeds = self.price_feeds
        if symbols is not None:
            feeds = {k: v for k, v in self.price_feeds.items() if k in symbols}

        feed_ids = sorted(set(feeds.values()))
        if not feed_ids:
            return updates

        query_params = "&".join([f"ids[]={fid}" for fid in feed_ids])
        url = f"{self.hermes_url}?{query_params}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        logger.error(
                            "Error fetching prices from Hermes: HTTP %s", response.status
                        )
                        return updates

                    data = await response.json()
                    parsed = data.get("parsed", [])

                    id_to_assets: dict[str, list[str]] = {}
                    for asset, feed_id in feeds.items():
                        id_to_assets.setdefault(normalize_feed_id(feed_id), []).append(asset)

                    for item in parsed:
                        feed_id = normalize_feed_id(item.get("id", ""))
                        price_data = item.get("price", {})
                        update = FeedUpdate(
                            feed_id=feed_id,
                            price=int(price_data.get("price", 0)),
                            expo=int(price_data.get("expo", 0)),
                            conf=int(price_data.get("conf", 0)),
                            publish_time=int(price_data.get("publish_time", 0)),
                        )
                        for asset in id_to_assets.get(feed_id, []):
                            updates[asset] = update

                    logger.info("Fetched %d price updates from Hermes", len(updates))

        except Exception as e:
            logger.error("Error fetching prices from Hermes: %s", e)

        return updates


def normalize_feed_id(feed_id: str) -> str:
    """Hermes returns ids without the 0x prefix; config may carry it."""
    feed_id = feed_id.lower()
    return feed_id[2:] if feed_id.startswith("0x") else feed_id
