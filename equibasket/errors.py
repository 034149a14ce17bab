"""Error taxonomy — every error aborts the call that raised it with no state change."""
from __future__ import annotations


class EquiBasketError(Exception):
    """Base class for all domain errors."""


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


class ValidationError(EquiBasketError):
    """Malformed input."""


class NotFoundError(EquiBasketError):
    """Referenced entity does not exist or has no value."""


class StateError(EquiBasketError):
    """Operation not allowed in the current state."""


class AuthorizationError(EquiBasketError):
    """Caller lacks the required capability."""


class TransferError(EquiBasketError):
    """Settlement-asset or token movement failed."""


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class InvalidAmount(ValidationError):
    pass


class ArrayLengthMismatch(ValidationError):
    pass


class InvalidWeightsSum(ValidationError):
    pass


class ZeroWeight(ValidationError):
    pass


class ZeroPrice(ValidationError):
    pass


class InsufficientFee(ValidationError):
    pass


class InsufficientPayment(ValidationError):
    pass


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class BasketDoesNotExist(NotFoundError):
    def __init__(self, basket_id: int) -> None:
        super().__init__(f"Basket {basket_id} does not exist")
        self.basket_id = basket_id


class BasketTokenNotRegistered(NotFoundError):
    def __init__(self, basket_id: int) -> None:
        super().__init__(f"No token registered for basket {basket_id}")
        self.basket_id = basket_id


class AssetPriceNotAvailable(NotFoundError):
    def __init__(self, asset: str) -> None:
        super().__init__(f"Price not available for {asset}")
        self.asset = asset


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


class BasketNotActive(StateError):
    pass


class InsufficientCollateral(StateError):
    pass


class InsufficientDebt(StateError):
    pass


class PositionNotLiquidatable(StateError):
    pass


class NoDebtToLiquidate(StateError):
    pass


class PriceNotSet(StateError):
    pass


class StalePrice(StateError):
    def __init__(self, asset: str, age: int) -> None:
        super().__init__(f"Price for {asset} is {age}s old")
        self.asset = asset
        self.age = age


class AssetAlreadyRegistered(StateError):
    pass


class ReentrantCall(StateError):
    pass


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


class NotAdmin(AuthorizationError):
    pass


class NotBasketCreator(AuthorizationError):
    pass


class NotAuthorizedLiquidator(AuthorizationError):
    pass


class NotVault(AuthorizationError):
    pass


# ---------------------------------------------------------------------------
# Transfer
# ---------------------------------------------------------------------------


class TransferFailed(TransferError):
    pass


class InsufficientBalance(TransferError):
    pass
