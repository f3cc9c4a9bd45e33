from types import SimpleNamespace

from utils.pricing import (
    find_applicable_tier,
    price_quantity,
    resolve_unit_price,
    tier_matches,
    tiers_overlap,
)


def _tier(min_quantity, max_quantity, price_per_unit):
    return SimpleNamespace(min_quantity=min_quantity, max_quantity=max_quantity, price_per_unit=price_per_unit)


TIERS = [
    {"min_qty": 1, "max_qty": 99, "price": 100},
    {"min_qty": 100, "price": 80},
]


class TestResolveUnitPrice:
    def test_large_quantity_uses_open_ended_tier(self):
        assert resolve_unit_price(150, TIERS, 100) == 80

    def test_small_quantity_uses_first_band(self):
        assert resolve_unit_price(50, TIERS, 100) == 100

    def test_zero_quantity_falls_back_to_base_price(self):
        assert resolve_unit_price(0, TIERS, 120) == 120

    def test_empty_tier_list_uses_base_price(self):
        assert resolve_unit_price(10, [], 42.5) == 42.5
        assert resolve_unit_price(10, None, 42.5) == 42.5

    def test_max_of_zero_is_unbounded(self):
        tiers = [{"min_qty": 10, "max_qty": 0, "price": 7}]
        assert resolve_unit_price(1_000_000, tiers, 9) == 7

    def test_gap_between_bands_falls_back_to_base_price(self):
        tiers = [{"min_qty": 1, "max_qty": 10, "price": 5}, {"min_qty": 20, "price": 4}]
        assert resolve_unit_price(15, tiers, 6) == 6

    def test_first_matching_tier_wins_when_bands_overlap(self):
        tiers = [{"min_qty": 1, "max_qty": 500, "price": 10}, {"min_qty": 100, "price": 8}]
        assert resolve_unit_price(200, tiers, 12) == 10

    def test_orm_style_tiers(self):
        tiers = [_tier(1, 99, 100), _tier(100, None, 80)]
        assert resolve_unit_price(100, tiers, 100) == 80

    def test_is_repeatable(self):
        assert resolve_unit_price(150, TIERS, 100) == resolve_unit_price(150, TIERS, 100)


class TestTierHelpers:
    def test_tier_matches_bounds_inclusive(self):
        tier = _tier(10, 20, 1)
        assert tier_matches(tier, 10)
        assert tier_matches(tier, 20)
        assert not tier_matches(tier, 9)
        assert not tier_matches(tier, 21)

    def test_find_applicable_tier_returns_none_without_match(self):
        assert find_applicable_tier(0, TIERS) is None

    def test_price_quantity_returns_total_and_tier(self):
        unit_price, total, tier = price_quantity(150, TIERS, 100)
        assert unit_price == 80
        assert total == 12000
        assert tier is TIERS[1]


class TestTiersOverlap:
    def test_disjoint_bands(self):
        assert not tiers_overlap([_tier(1, 99, 10), _tier(100, None, 8)])

    def test_overlapping_bands(self):
        assert tiers_overlap([_tier(1, 100, 10), _tier(100, None, 8)])

    def test_unbounded_band_followed_by_another(self):
        assert tiers_overlap([_tier(100, None, 8), _tier(1, 0, 10)])

    def test_order_of_declaration_does_not_matter(self):
        assert not tiers_overlap([_tier(100, None, 8), _tier(1, 99, 10)])
