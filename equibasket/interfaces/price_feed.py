"""Push-price feed protocol — external oracle network abstraction."""
from typing import Protocol

from ..models import FeedPrice, FeedUpdate


class PriceFeed(Protocol):
    """Abstract interface for a push-based price feed network."""

    @property
    def address(self) -> str: ...

    def get_update_fee(self, updates: list[FeedUpdate]) -> int: ...

    def update_price_feeds(self, updates: list[FeedUpdate], fee_paid: int) -> None: ...

    def get_price_unsafe(self, feed_id: str) -> FeedPrice: ...
