"""Fixed-point helpers — 18 fractional digits, weights in basis points."""
from __future__ import annotations

from decimal import Decimal, localcontext

WAD = 10**18
BPS_DENOMINATOR = 10_000
PERCENT = 100


def to_wad(value: str | int | Decimal) -> int:
    """Convert a decimal literal such as ``"0.5"`` to an 18-digit fixed-point int."""
    with localcontext() as ctx:
        ctx.prec = 78
        scaled = Decimal(str(value)) * WAD
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{value!r} has more than 18 fractional digits")
    return int(scaled)


def from_wad(value: int) -> Decimal:
    """Convert a fixed-point int back to a Decimal for display."""
    return Decimal(value) / WAD


def wad_mul(a: int, b: int) -> int:
    return a * b // WAD


def wad_div(a: int, b: int) -> int:
    return a * WAD // b


def rescale_exponent(raw: int, expo: int) -> int:
    """Rescale ``raw × 10**expo`` to the 18-digit fixed-point representation."""
    shift = expo + 18
    if shift >= 0:
        return raw * 10**shift
    return raw // 10**(-shift)
