"""Protocol interfaces for the basket vault collaborators."""
from .price_feed import PriceFeed
from .price_oracle import BasketPriceSource
from .registry import BasketRegistry
from .settlement import SettlementAsset
from .token_sink import TokenSink

__all__ = [
    "BasketPriceSource",
    "BasketRegistry",
    "PriceFeed",
    "SettlementAsset",
    "TokenSink",
]
