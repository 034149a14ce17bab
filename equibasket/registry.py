"""In-memory basket registry — stores compositions and the active flag."""
from __future__ import annotations

import logging
from dataclasses import replace

from .errors import (
    ArrayLengthMismatch,
    BasketDoesNotExist,
    InvalidWeightsSum,
    NotBasketCreator,
    ZeroWeight,
)
from .fixed_point import BPS_DENOMINATOR
from .models import Basket

logger = logging.getLogger(__name__)


def validate_composition(assets: list[str] | tuple[str, ...], weights: list[int] | tuple[int, ...]) -> None:
    """Raise unless weights are all positive and sum to exactly 10000 bps."""
    if len(assets) != len(weights):
        raise ArrayLengthMismatch(
            f"{len(assets)} assets but {len(weights)} weights"
        )
    for asset, weight in zip(assets, weights):
        if weight <= 0:
            raise ZeroWeight(f"Weight for {asset} must be positive")
    total = sum(weights)
    if total != BPS_DENOMINATOR:
        raise InvalidWeightsSum(f"Weights sum to {total}, expected {BPS_DENOMINATOR}")


class InMemoryBasketRegistry:
    """Basket registry held in process memory. Basket ids start at 1."""

    def __init__(self, admin: str) -> None:
        self.admin = admin
        self._baskets: dict[int, Basket] = {}

    @property
    def basket_count(self) -> int:
        return len(self._baskets)

    def create_basket(
        self,
        creator: str,
        assets: list[str],
        weights: list[int],
        name: str,
        symbol: str,
    ) -> int:
        """Validate and store a new basket, returning its id."""
        validate_composition(assets, weights)

        basket_id = self.basket_count + 1
        self._baskets[basket_id] = Basket(
            basket_id=basket_id,
            assets=tuple(assets),
            weights=tuple(int(w) for w in weights),
            name=name,
            symbol=symbol,
            creator=creator,
        )
        logger.info(
            "Basket %d (%s) created by %s: %s",
            basket_id,
            symbol,
            creator,
            ", ".join(f"{a}={w}" for a, w in zip(assets, weights)),
        )
        return basket_id

    def set_basket_active(self, caller: str, basket_id: int, active: bool) -> None:
        """Toggle minting for a basket. Only the creator or the admin may do this."""
        basket = self.get_basket(basket_id)
        if caller not in (basket.creator, self.admin):
            raise NotBasketCreator(f"{caller} cannot change basket {basket_id}")
        self._baskets[basket_id] = replace(basket, active=active)
        logger.info("Basket %d active state set to %s", basket_id, active)

    def get_basket(self, basket_id: int) -> Basket:
        try:
            return self._baskets[basket_id]
        except KeyError:
            raise BasketDoesNotExist(basket_id) from None

    def exists(self, basket_id: int) -> bool:
        return basket_id in self._baskets

    def is_active(self, basket_id: int) -> bool:
        return self.get_basket(basket_id).active

    def get_composition(self, basket_id: int) -> tuple[tuple[str, ...], tuple[int, ...]]:
        basket = self.get_basket(basket_id)
        return basket.assets, basket.weights

    def all_baskets(self) -> list[Basket]:
        return [self._baskets[i] for i in sorted(self._baskets)]
