COLOR_SIZE_OPTIONS = [
    {
        "name": "Color",
        "type": "color",
        "values": [{"name": "Red", "price_modifier": 0}, {"name": "Blue", "price_modifier": 20}],
    },
    {
        "name": "Size",
        "type": "size",
        "values": [{"name": "S", "price_modifier": 0}, {"name": "M", "price_modifier": 10}],
    },
]

TIERS = [
    {"min_quantity": 1, "max_quantity": 99, "price_per_unit": 100},
    {"min_quantity": 100, "price_per_unit": 80},
]


class TestCreateProduct:
    def test_supplier_creates_product_with_variants(self, client, supplier, create_product):
        product = create_product(supplier, price=500, options=COLOR_SIZE_OPTIONS)

        assert product["supplier_id"] == supplier.profile["id"]
        assert product["supplier_name"] == "Acme Supplies"
        assert [variant["sku"] for variant in product["variants"]] == ["SKU_0", "SKU_1", "SKU_2", "SKU_3"]
        assert [variant["price"] for variant in product["variants"]] == [500, 510, 520, 530]
        assert product["default_variant"] == "combo_0"

    def test_product_without_options_has_no_variants(self, client, supplier, create_product):
        product = create_product(supplier)
        assert product["variants"] == []
        assert product["default_variant"] is None

    def test_default_variant_stock_override(self, client, supplier, create_product):
        product = create_product(supplier, options=COLOR_SIZE_OPTIONS, default_variant_stock=5)
        assert {variant["stock"] for variant in product["variants"]} == {5}

    def test_tiers_are_stored_in_ascending_order(self, client, supplier, create_product):
        product = create_product(supplier, price_tiers=list(reversed(TIERS)))
        assert [tier["min_quantity"] for tier in product["price_tiers"]] == [1, 100]

    def test_overlapping_tiers_are_rejected(self, client, supplier):
        response = client.post(
            "/products/",
            json={
                "title": "Nuts",
                "price": 10,
                "price_tiers": [
                    {"min_quantity": 1, "max_quantity": 100, "price_per_unit": 10},
                    {"min_quantity": 50, "price_per_unit": 8},
                ],
            },
            headers=supplier.headers,
        )
        assert response.status_code == 422

    def test_buyer_cannot_create_product(self, client, buyer):
        response = client.post("/products/", json={"title": "Nuts", "price": 10}, headers=buyer.headers)
        assert response.status_code == 403

    def test_missing_token_is_rejected(self, client):
        response = client.post("/products/", json={"title": "Nuts", "price": 10})
        assert response.status_code in (401, 403)


class TestReadProducts:
    def test_get_and_list(self, client, supplier, create_product):
        product = create_product(supplier)

        response = client.get(f"/products/{product['id']}")
        assert response.status_code == 200
        assert response.json()["title"] == "Steel Bolts"

        listing = client.get("/products/", params={"category": "hardware"}).json()
        assert listing["total"] == 1
        assert listing["products"][0]["id"] == product["id"]

    def test_unknown_product_is_404(self, client):
        response = client.get("/products/00000000-0000-0000-0000-000000000000")
        assert response.status_code == 404

    def test_my_products(self, client, supplier, other_supplier, create_product):
        create_product(supplier)
        create_product(other_supplier, title="Washers")

        response = client.get("/products/my-products", headers=supplier.headers)
        assert response.status_code == 200
        assert [product["title"] for product in response.json()["products"]] == ["Steel Bolts"]


class TestPriceCalculation:
    def test_price_follows_tiers(self, client, supplier, create_product):
        product = create_product(supplier, price_tiers=TIERS)

        large = client.get(f"/products/{product['id']}/price", params={"quantity": 150}).json()
        assert large["price_per_unit"] == 80
        assert large["total_price"] == 12000
        assert large["tier_used"]["min_quantity"] == 100

        small = client.get(f"/products/{product['id']}/price", params={"quantity": 50}).json()
        assert small["price_per_unit"] == 100

        none = client.get(f"/products/{product['id']}/price", params={"quantity": 0}).json()
        assert none["price_per_unit"] == 100
        assert none["tier_used"] is None

    def test_variant_adds_its_price_difference(self, client, supplier, create_product):
        product = create_product(supplier, price=500, options=COLOR_SIZE_OPTIONS)

        response = client.get(
            f"/products/{product['id']}/price",
            params={"quantity": 2, "variant_id": "SKU_3"},
        )
        assert response.status_code == 200
        assert response.json()["price_per_unit"] == 530
        assert response.json()["total_price"] == 1060

    def test_unknown_variant_is_400(self, client, supplier, create_product):
        product = create_product(supplier, options=COLOR_SIZE_OPTIONS)
        response = client.get(f"/products/{product['id']}/price", params={"quantity": 2, "variant_id": "SKU_99"})
        assert response.status_code == 400


class TestUpdateProduct:
    def test_price_change_regenerates_variants_with_warning(self, client, supplier, create_product):
        product = create_product(supplier, price=500, options=COLOR_SIZE_OPTIONS)
        client.patch(
            f"/products/{product['id']}/variants/SKU_0",
            json={"stock": 3},
            headers=supplier.headers,
        )

        response = client.put(f"/products/{product['id']}", json={"price": 600}, headers=supplier.headers)

        assert response.status_code == 200
        data = response.json()
        assert data["variants_regenerated"] is True
        assert data["warning"]
        assert [variant["price"] for variant in data["variants"]] == [600, 610, 620, 630]
        assert data["variants"][0]["stock"] == 1000

    def test_plain_field_change_keeps_variants(self, client, supplier, create_product):
        product = create_product(supplier, options=COLOR_SIZE_OPTIONS)
        response = client.put(f"/products/{product['id']}", json={"title": "Bolts XL"}, headers=supplier.headers)

        data = response.json()
        assert data["title"] == "Bolts XL"
        assert data["variants_regenerated"] is False
        assert data["warning"] is None

    def test_only_owner_can_update(self, client, supplier, other_supplier, create_product):
        product = create_product(supplier)
        response = client.put(f"/products/{product['id']}", json={"title": "Mine"}, headers=other_supplier.headers)
        assert response.status_code == 403

    def test_variant_stock_update(self, client, supplier, create_product):
        product = create_product(supplier, options=COLOR_SIZE_OPTIONS)

        response = client.patch(
            f"/products/{product['id']}/variants/SKU_1",
            json={"stock": 7, "available": False},
            headers=supplier.headers,
        )
        assert response.status_code == 200
        assert response.json()["stock"] == 7

        stored = client.get(f"/products/{product['id']}").json()
        assert stored["variants"][1]["stock"] == 7
        assert stored["variants"][1]["available"] is False

    def test_delete_delists_product(self, client, supplier, create_product):
        product = create_product(supplier)

        response = client.delete(f"/products/{product['id']}", headers=supplier.headers)
        assert response.status_code == 200
        assert client.get(f"/products/{product['id']}").json()["status"] == "inactive"
        assert client.get("/products/").json()["total"] == 0


class TestPriceTierRoutes:
    def test_replace_tiers(self, client, supplier, create_product):
        product = create_product(supplier, price_tiers=TIERS)

        response = client.put(
            f"/products/{product['id']}/price-tiers",
            json={"price_tiers": [{"min_quantity": 10, "price_per_unit": 70}]},
            headers=supplier.headers,
        )
        assert response.status_code == 200
        tiers = response.json()["price_tiers"]
        assert [(tier["min_quantity"], tier["price_per_unit"]) for tier in tiers] == [(10, 70)]

    def test_add_tier_rejects_overlap(self, client, supplier, create_product):
        product = create_product(supplier, price_tiers=TIERS)

        response = client.post(
            f"/products/{product['id']}/price-tiers",
            json={"min_quantity": 50, "max_quantity": 60, "price_per_unit": 90},
            headers=supplier.headers,
        )
        assert response.status_code == 400

    def test_add_and_delete_tier(self, client, supplier, create_product):
        product = create_product(supplier, price_tiers=[{"min_quantity": 1, "max_quantity": 9, "price_per_unit": 100}])

        added = client.post(
            f"/products/{product['id']}/price-tiers",
            json={"min_quantity": 10, "price_per_unit": 90},
            headers=supplier.headers,
        )
        assert added.status_code == 201

        deleted = client.delete(f"/products/price-tiers/{added.json()['id']}", headers=supplier.headers)
        assert deleted.status_code == 200
        assert len(client.get(f"/products/{product['id']}").json()["price_tiers"]) == 1

    def test_buyer_cannot_manage_tiers(self, client, buyer, supplier, create_product):
        product = create_product(supplier)
        response = client.put(
            f"/products/{product['id']}/price-tiers",
            json={"price_tiers": []},
            headers=buyer.headers,
        )
        assert response.status_code == 403
