"""
Volume pricing.

Le prix unitaire dépend uniquement du prix de base et des paliers
(min_qty, percent_off) du produit. Aucun arrondi ici : l'arrondi est
une affaire de présentation (exports).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Protocol

from petalhub.services.errors import InvalidArgument

HUNDRED = Decimal("100")


class Tier(Protocol):
    min_qty: int
    percent_off: Decimal


def _as_decimal(value, field: str) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (Decimal, int, str)):
        raise InvalidArgument(f"{field} must be a decimal, got {value!r}")
    try:
        return Decimal(value)
    except ArithmeticError as exc:
        raise InvalidArgument(f"{field} is not a valid decimal: {value!r}") from exc


def validate_tier(min_qty, percent_off) -> tuple[int, Decimal]:
    if isinstance(min_qty, bool) or not isinstance(min_qty, int) or min_qty < 1:
        raise InvalidArgument(f"min_qty must be an integer >= 1, got {min_qty!r}")
    pct = _as_decimal(percent_off, "percent_off")
    if not pct.is_finite() or pct < 0 or pct > HUNDRED:
        raise InvalidArgument(f"percent_off must be within [0, 100], got {percent_off!r}")
    return min_qty, pct


def select_tier(quantity: int, tiers: Iterable[Tier]) -> Tier | None:
    """
    Palier applicable : le plus grand min_qty <= quantity.
    À min_qty égal, le plus fort percent_off l'emporte.
    """
    eligible = [t for t in tiers if t.min_qty <= quantity]
    if not eligible:
        return None
    return max(eligible, key=lambda t: (t.min_qty, Decimal(t.percent_off)))


def price_line(base_price, quantity: int, tiers: Iterable[Tier] = ()) -> Decimal:
    """
    Prix unitaire pour `quantity` unités.

    - aucun palier atteint -> prix de base
    - sinon -> base_price * (1 - percent_off / 100)
    """
    price = _as_decimal(base_price, "base_price")
    if not price.is_finite() or price < 0:
        raise InvalidArgument(f"base_price must be a non-negative decimal, got {base_price!r}")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidArgument(f"quantity must be an integer >= 1, got {quantity!r}")

    tiers = list(tiers)
    for t in tiers:
        validate_tier(t.min_qty, t.percent_off)

    tier = select_tier(quantity, tiers)
    if tier is None:
        return price

    discount = Decimal(tier.percent_off) / HUNDRED
    return price * (Decimal(1) - discount)
