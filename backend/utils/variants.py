"""
Variant expansion

Expands a product's named options (Color x Size ...) into the full list of
purchasable variant records. The iteration order is the declared option order,
outer to inner, and the declared value order within each option, so the same
options always yield the same SKUs.
"""
from itertools import product as cartesian_product
from typing import Any, Dict, List, Optional

DEFAULT_VARIANT_STOCK = 1000
DEFAULT_VARIANT_MOQ = 1
DEFAULT_LEAD_TIME = "7-15 days"

# Option types that map onto dedicated cart/order selector columns
SELECTOR_TYPES = ("color", "size", "material", "style")


def _value_label(value: Dict[str, Any]) -> Optional[str]:
    return value.get("name") or value.get("value")


def expand_variants(
    options: Optional[List[Dict[str, Any]]],
    base_price: float,
    default_stock: int = DEFAULT_VARIANT_STOCK,
    default_moq: int = DEFAULT_VARIANT_MOQ
) -> List[Dict[str, Any]]:
    """
    Build one variant per combination of option values.

    Options without values are skipped rather than emptying the whole product.
    When no option has values the product has no variants and sells as a
    single SKU.
    """
    populated = [option for option in options or [] if option.get("values")]
    if not populated:
        return []

    value_lists = [
        [(option.get("name"), value) for value in option["values"]]
        for option in populated
    ]

    variants = []
    for index, combination in enumerate(cartesian_product(*value_lists)):
        modifier_total = sum((value.get("price_modifier") or 0) for _, value in combination)
        price = round(float(base_price) + modifier_total, 2)
        variants.append({
            "id": f"combo_{index}",
            "sku": f"SKU_{index}",
            "attributes": [
                {"name": option_name, "value": _value_label(value)}
                for option_name, value in combination
            ],
            "price": price,
            "stock": default_stock,
            "moq": default_moq,
            "available": True,
            "lead_time": DEFAULT_LEAD_TIME,
            "price_tiers": [{"min_qty": 1, "max_qty": None, "price": price}],
        })

    return variants


def default_variant_id(variants: Optional[List[Dict[str, Any]]]) -> Optional[str]:
    if not variants:
        return None
    return variants[0]["id"]


def find_variant(variants: Optional[List[Dict[str, Any]]], variant_id: str) -> Optional[Dict[str, Any]]:
    """Look a variant up by its SKU or its combination id"""
    for variant in variants or []:
        if variant_id in (variant.get("sku"), variant.get("id")):
            return variant
    return None


def variant_name(variant: Dict[str, Any]) -> str:
    return " / ".join(str(attribute["value"]) for attribute in variant.get("attributes", []))


def variant_selectors(options: Optional[List[Dict[str, Any]]], variant: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """Map a variant's attributes onto color/size/material/style using the option types"""
    option_types = {option.get("name"): option.get("type") for option in options or []}
    selectors = {selector: None for selector in SELECTOR_TYPES}
    for attribute in variant.get("attributes", []):
        option_type = option_types.get(attribute["name"])
        if option_type in selectors:
            selectors[option_type] = attribute["value"]
    return selectors


def has_manual_stock(variants: Optional[List[Dict[str, Any]]], default_stock: int = DEFAULT_VARIANT_STOCK) -> bool:
    """True when any variant carries stock that differs from the generated default"""
    return any(variant.get("stock") != default_stock for variant in variants or [])
