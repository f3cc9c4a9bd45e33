from utils.variants import (
    default_variant_id,
    expand_variants,
    find_variant,
    has_manual_stock,
    variant_name,
    variant_selectors,
)


def _options():
    return [
        {
            "name": "Color",
            "type": "color",
            "values": [
                {"name": "Red", "price_modifier": 0},
                {"name": "Blue", "price_modifier": 20},
            ],
        },
        {
            "name": "Size",
            "type": "size",
            "values": [
                {"name": "S", "price_modifier": 0},
                {"name": "M", "price_modifier": 10},
            ],
        },
    ]


class TestExpandVariants:
    def test_cartesian_product_in_declared_order(self):
        variants = expand_variants(_options(), 500)

        assert [variant["sku"] for variant in variants] == ["SKU_0", "SKU_1", "SKU_2", "SKU_3"]
        assert [variant["price"] for variant in variants] == [500, 510, 520, 530]
        assert [
            tuple(attribute["value"] for attribute in variant["attributes"])
            for variant in variants
        ] == [("Red", "S"), ("Red", "M"), ("Blue", "S"), ("Blue", "M")]

    def test_generated_defaults(self):
        variant = expand_variants(_options(), 500)[3]

        assert variant["id"] == "combo_3"
        assert variant["stock"] == 1000
        assert variant["moq"] == 1
        assert variant["available"] is True
        assert variant["lead_time"] == "7-15 days"
        assert variant["price_tiers"] == [{"min_qty": 1, "max_qty": None, "price": 530}]

    def test_declared_value_order_is_kept(self):
        options = [{"name": "Size", "values": [{"name": "XL"}, {"name": "A"}]}]
        variants = expand_variants(options, 10)
        assert [variant["attributes"][0]["value"] for variant in variants] == ["XL", "A"]

    def test_option_without_values_is_skipped(self):
        options = _options() + [{"name": "Material", "values": []}]
        assert len(expand_variants(options, 500)) == 4

    def test_no_values_means_no_variants(self):
        assert expand_variants([{"name": "Color", "values": []}], 500) == []
        assert expand_variants([], 500) == []
        assert expand_variants(None, 500) == []

    def test_stock_override(self):
        variants = expand_variants(_options(), 500, default_stock=25)
        assert {variant["stock"] for variant in variants} == {25}

    def test_count_is_product_of_value_counts(self):
        options = _options() + [{"name": "Finish", "values": [{"name": "Matte"}, {"name": "Gloss"}, {"name": "Satin"}]}]
        variants = expand_variants(options, 1)
        assert len(variants) == 12
        assert len({variant["sku"] for variant in variants}) == 12

    def test_regeneration_is_stable(self):
        assert expand_variants(_options(), 500) == expand_variants(_options(), 500)


class TestVariantLookups:
    def test_find_by_sku_or_id(self):
        variants = expand_variants(_options(), 500)
        assert find_variant(variants, "SKU_2")["price"] == 520
        assert find_variant(variants, "combo_2")["sku"] == "SKU_2"
        assert find_variant(variants, "SKU_9") is None

    def test_default_variant_is_first(self):
        assert default_variant_id(expand_variants(_options(), 500)) == "combo_0"
        assert default_variant_id([]) is None

    def test_variant_name_and_selectors(self):
        variant = expand_variants(_options(), 500)[1]
        assert variant_name(variant) == "Red / M"
        assert variant_selectors(_options(), variant) == {
            "color": "Red",
            "size": "M",
            "material": None,
            "style": None,
        }

    def test_manual_stock_detection(self):
        variants = expand_variants(_options(), 500)
        assert not has_manual_stock(variants)
        variants[0]["stock"] = 3
        assert has_manual_stock(variants)
