"""Price oracle and push-feed backends."""
from .price_oracle import PriceOracle
from .pyth import HermesClient, PushPriceFeed

__all__ = ["HermesClient", "PriceOracle", "PushPriceFeed"]
