"""Basket price source protocol — shared by the vault and any trading venue."""
from typing import Protocol


class BasketPriceSource(Protocol):
    """Abstract interface for pricing baskets and the settlement asset."""

    def get_basket_price(self, basket_id: int) -> int: ...

    def settlement_value(self, amount: int) -> int: ...

    def settlement_amount_from_value(self, usd_value: int) -> int: ...
