"""Collateralized synthetic basket tokens: price oracle and collateral vault."""
from .errors import EquiBasketError
from .models import CollateralRatio, PositionHealth, PositionSnapshot
from .oracles import PriceOracle
from .registry import InMemoryBasketRegistry
from .settlement import SettlementLedger
from .token import BasketToken
from .vault import CollateralVault, LiquidationPolicy

__all__ = [
    "BasketToken",
    "CollateralRatio",
    "CollateralVault",
    "EquiBasketError",
    "InMemoryBasketRegistry",
    "LiquidationPolicy",
    "PositionHealth",
    "PositionSnapshot",
    "PriceOracle",
    "SettlementLedger",
]
