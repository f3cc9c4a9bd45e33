"""
Tiered price resolution

A tier is a quantity band with its own unit price. Tiers can be PriceTier rows
(min_quantity / max_quantity / price_per_unit) or plain dicts as stored on
generated variants (min_qty / max_qty / price).
"""
from collections.abc import Mapping
from typing import Any, Iterable, Optional, Tuple

_TIER_FIELDS = {
    "min": ("min_quantity", "min_qty"),
    "max": ("max_quantity", "max_qty"),
    "price": ("price_per_unit", "price"),
}


def _tier_field(tier: Any, field: str):
    attribute, key = _TIER_FIELDS[field]
    if isinstance(tier, Mapping):
        return tier.get(key, tier.get(attribute))
    return getattr(tier, attribute, None)


def tier_matches(tier: Any, quantity: int) -> bool:
    """q >= min and (max unset or q <= max); a max of 0 means no upper bound"""
    min_quantity = _tier_field(tier, "min") or 0
    max_quantity = _tier_field(tier, "max")
    if quantity < min_quantity:
        return False
    return not max_quantity or quantity <= max_quantity


def find_applicable_tier(quantity: int, tiers: Optional[Iterable[Any]]) -> Optional[Any]:
    """First tier in declaration order that covers the quantity"""
    for tier in tiers or []:
        if tier_matches(tier, quantity):
            return tier
    return None


def resolve_unit_price(quantity: int, tiers: Optional[Iterable[Any]], base_price: float) -> float:
    """
    Unit price for a quantity.

    Falls back to the base price when the tier list is empty or no band
    covers the quantity. Pure: call it at every pricing boundary instead of
    reusing a previously computed price.
    """
    tier = find_applicable_tier(quantity, tiers)
    if tier is None:
        return float(base_price)
    return float(_tier_field(tier, "price"))


def price_quantity(quantity: int, tiers: Optional[Iterable[Any]], base_price: float) -> Tuple[float, float, Optional[Any]]:
    """Returns (unit_price, total_price, tier_used)"""
    tier = find_applicable_tier(quantity, tiers)
    unit_price = float(base_price) if tier is None else float(_tier_field(tier, "price"))
    return unit_price, round(unit_price * quantity, 2), tier


def tiers_overlap(tiers: Iterable[Any]) -> bool:
    """True when two bands, sorted by minimum quantity, share a quantity"""
    ordered = sorted(tiers, key=lambda tier: _tier_field(tier, "min") or 0)
    for current, following in zip(ordered, ordered[1:]):
        current_max = _tier_field(current, "max")
        if not current_max or current_max >= (_tier_field(following, "min") or 0):
            return True
    return False
