"""Data models — all frozen (immutable)."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal

from .fixed_point import PERCENT, WAD


@dataclass(frozen=True)
class Basket:
    """Weighted collection of reference assets. Weights are in basis points."""

    basket_id: int
    assets: tuple[str, ...]
    weights: tuple[int, ...]
    name: str
    symbol: str
    creator: str
    active: bool = True


@dataclass(frozen=True)
class CollateralRatio:
    """Collateral value over debt value, WAD-scaled (5 × 10**18 is 500%).

    ``value`` is ``None`` for a position without debt, which reads as an
    infinite ratio rather than a very large number.
    """

    value: int | None

    @classmethod
    def infinite(cls) -> CollateralRatio:
        return cls(None)

    @classmethod
    def finite(cls, value: int) -> CollateralRatio:
        return cls(value)

    @property
    def is_infinite(self) -> bool:
        return self.value is None

    @property
    def percent(self) -> Decimal | None:
        if self.value is None:
            return None
        return Decimal(self.value) * PERCENT / WAD

    def below(self, threshold_percent: int) -> bool:
        """True when the ratio is strictly under ``threshold_percent`` (e.g. 150)."""
        if self.value is None:
            return False
        return self.value < threshold_percent * WAD // PERCENT

    def __str__(self) -> str:
        if self.value is None:
            return "∞"
        return f"{self.percent:.2f}%"


class PositionHealth(enum.Enum):
    EMPTY = "empty"
    FUNDED = "funded"
    HEALTHY = "healthy"
    AT_RISK = "at_risk"
    LIQUIDATABLE = "liquidatable"


@dataclass(frozen=True)
class PositionSnapshot:
    """Read view of one (account, basket) ledger entry."""

    account: str
    basket_id: int
    collateral: int
    debt: int
    collateral_ratio: CollateralRatio
    liquidatable: bool
    health: PositionHealth


@dataclass(frozen=True)
class PriceValidation:
    valid: bool
    missing_asset: str | None = None


@dataclass(frozen=True)
class LiquidationResult:
    """Outcome of a full or partial liquidation."""

    account: str
    basket_id: int
    liquidator: str
    debt_repaid: int
    collateral_seized: int
    payment_required: int
    refund: int


@dataclass(frozen=True)
class FeedUpdate:
    """Single signed price update pushed to the feed network."""

    feed_id: str
    price: int
    expo: int
    conf: int
    publish_time: int


@dataclass(frozen=True)
class FeedPrice:
    """Latest price stored by the feed for one feed id."""

    price: int
    expo: int
    conf: int
    publish_time: int
