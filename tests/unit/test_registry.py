"""Unit tests for the basket registry and composition validation."""
from __future__ import annotations

import pytest

from equibasket.errors import (
    ArrayLengthMismatch,
    BasketDoesNotExist,
    InvalidWeightsSum,
    NotBasketCreator,
    NotFoundError,
    ValidationError,
    ZeroWeight,
)
from equibasket.registry import InMemoryBasketRegistry
from tests.conftest import ADMIN, CREATOR, TECH_ASSETS, TECH_WEIGHTS, USER


class TestCreateBasket:
    def test_creates_with_sequential_ids(self, registry: InMemoryBasketRegistry) -> None:
        first = registry.create_basket(CREATOR, TECH_ASSETS, TECH_WEIGHTS, "Tech", "eTECH")
        second = registry.create_basket(CREATOR, ["GOLD"], [10000], "Gold", "eGOLD")
        assert (first, second) == (1, 2)
        assert registry.basket_count == 2

    def test_stores_composition(self, registry: InMemoryBasketRegistry) -> None:
        basket_id = registry.create_basket(CREATOR, TECH_ASSETS, TECH_WEIGHTS, "Tech", "eTECH")
        assert registry.get_composition(basket_id) == (
            ("AAPL", "NVDA", "MSFT"),
            (5000, 3000, 2000),
        )
        basket = registry.get_basket(basket_id)
        assert basket.creator == CREATOR
        assert basket.active is True

    def test_rejects_weights_not_summing_to_10000(self, registry: InMemoryBasketRegistry) -> None:
        with pytest.raises(InvalidWeightsSum):
            registry.create_basket(CREATOR, ["AAPL", "NVDA"], [5000, 4000], "Bad", "eBAD")

    def test_rejects_zero_weight(self, registry: InMemoryBasketRegistry) -> None:
        with pytest.raises(ZeroWeight):
            registry.create_basket(CREATOR, ["AAPL", "NVDA"], [10000, 0], "Bad", "eBAD")

    def test_rejects_length_mismatch(self, registry: InMemoryBasketRegistry) -> None:
        with pytest.raises(ArrayLengthMismatch):
            registry.create_basket(CREATOR, ["AAPL", "NVDA"], [10000], "Bad", "eBAD")

    def test_rejects_empty_basket(self, registry: InMemoryBasketRegistry) -> None:
        with pytest.raises(InvalidWeightsSum):
            registry.create_basket(CREATOR, [], [], "Empty", "eNONE")

    def test_validation_errors_share_category(self, registry: InMemoryBasketRegistry) -> None:
        with pytest.raises(ValidationError):
            registry.create_basket(CREATOR, ["AAPL"], [9999], "Bad", "eBAD")
        assert registry.basket_count == 0


class TestActiveFlag:
    def test_creator_can_deactivate_and_reactivate(self, registry: InMemoryBasketRegistry) -> None:
        basket_id = registry.create_basket(CREATOR, TECH_ASSETS, TECH_WEIGHTS, "Tech", "eTECH")
        registry.set_basket_active(CREATOR, basket_id, False)
        assert registry.is_active(basket_id) is False
        registry.set_basket_active(CREATOR, basket_id, True)
        assert registry.is_active(basket_id) is True

    def test_admin_can_deactivate(self, registry: InMemoryBasketRegistry) -> None:
        basket_id = registry.create_basket(CREATOR, TECH_ASSETS, TECH_WEIGHTS, "Tech", "eTECH")
        registry.set_basket_active(ADMIN, basket_id, False)
        assert registry.is_active(basket_id) is False

    def test_other_caller_rejected(self, registry: InMemoryBasketRegistry) -> None:
        basket_id = registry.create_basket(CREATOR, TECH_ASSETS, TECH_WEIGHTS, "Tech", "eTECH")
        with pytest.raises(NotBasketCreator):
            registry.set_basket_active(USER, basket_id, False)
        assert registry.is_active(basket_id) is True

    def test_composition_unchanged_by_deactivation(self, registry: InMemoryBasketRegistry) -> None:
        basket_id = registry.create_basket(CREATOR, TECH_ASSETS, TECH_WEIGHTS, "Tech", "eTECH")
        before = registry.get_composition(basket_id)
        registry.set_basket_active(CREATOR, basket_id, False)
        assert registry.get_composition(basket_id) == before


class TestLookup:
    def test_exists(self, registry: InMemoryBasketRegistry) -> None:
        assert registry.exists(1) is False
        registry.create_basket(CREATOR, TECH_ASSETS, TECH_WEIGHTS, "Tech", "eTECH")
        assert registry.exists(1) is True

    def test_missing_basket_raises(self, registry: InMemoryBasketRegistry) -> None:
        with pytest.raises(BasketDoesNotExist):
            registry.get_composition(7)
        with pytest.raises(NotFoundError):
            registry.is_active(7)
