"""Basket registry protocol — composition metadata store."""
from typing import Protocol


class BasketRegistry(Protocol):
    """Abstract interface for looking up basket composition."""

    def exists(self, basket_id: int) -> bool: ...

    def is_active(self, basket_id: int) -> bool: ...

    def get_composition(self, basket_id: int) -> tuple[tuple[str, ...], tuple[int, ...]]: ...
