import uuid

import pytest

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


@pytest.fixture()
def add_item(client):
    def _add(party, product_id, quantity, **extra):
        return client.post(
            "/cart/items",
            json={"product_id": product_id, "quantity": quantity, **extra},
            headers=party.headers,
        )

    return _add


class TestGetCart:
    def test_empty_cart_is_created_on_first_read(self, client, buyer):
        response = client.get("/cart/", headers=buyer.headers)

        assert response.status_code == 200
        cart = response.json()
        assert cart["user_id"] == buyer.profile["id"]
        assert cart["items"] == []
        assert cart["total_items"] == 0
        assert cart["total_amount"] == 0

        again = client.get("/cart/", headers=buyer.headers).json()
        assert again["id"] == cart["id"]

    def test_supplier_has_no_cart(self, client, supplier):
        response = client.get("/cart/", headers=supplier.headers)
        assert response.status_code == 403


class TestAddItem:
    def test_line_is_priced_from_tiers(self, client, buyer, supplier, create_product, add_item):
        product = create_product(supplier, price_tiers=TIERS)

        response = add_item(buyer, product["id"], 150)

        assert response.status_code == 201, response.text
        cart = response.json()
        line = cart["items"][0]
        assert line["item_type"] == "regular"
        assert line["unit_price"] == 80
        assert line["total_price"] == 12000
        assert line["is_bulk_order"] is True
        assert line["supplier_name"] == "Acme Supplies"
        assert line["product_image"] == "https://img.example.com/bolts.png"
        assert [tier["price"] for tier in line["bulk_discount"]] == [100, 80]
        assert cart["total_amount"] == 12000

    def test_same_product_merges_and_reprices(self, client, buyer, supplier, create_product, add_item):
        product = create_product(supplier, price_tiers=TIERS)

        add_item(buyer, product["id"], 50)
        cart = add_item(buyer, product["id"], 60).json()

        assert len(cart["items"]) == 1
        line = cart["items"][0]
        assert line["quantity"] == 110
        assert line["unit_price"] == 80
        assert line["total_price"] == 8800
        assert cart["total_items"] == 110

    def test_variant_price_and_selectors(self, client, buyer, supplier, create_product, add_item):
        product = create_product(supplier, price=500, options=COLOR_SIZE_OPTIONS)

        cart = add_item(buyer, product["id"], 2, variant_id="SKU_3").json()

        line = cart["items"][0]
        assert line["variant_id"] == "SKU_3"
        assert line["variant_name"] == "Blue / M"
        assert line["color"] == "Blue"
        assert line["size"] == "M"
        assert line["unit_price"] == 530
        assert line["total_price"] == 1060

    def test_different_variants_stay_separate(self, client, buyer, supplier, create_product, add_item):
        product = create_product(supplier, price=500, options=COLOR_SIZE_OPTIONS)

        add_item(buyer, product["id"], 1, variant_id="SKU_0")
        add_item(buyer, product["id"], 1, variant_id="SKU_3")
        cart = add_item(buyer, product["id"], 2, variant_id="SKU_0").json()

        quantities = {line["variant_id"]: line["quantity"] for line in cart["items"]}
        assert quantities == {"SKU_0": 3, "SKU_3": 1}

    def test_unknown_variant_is_rejected(self, client, buyer, supplier, create_product, add_item):
        product = create_product(supplier, options=COLOR_SIZE_OPTIONS)

        response = add_item(buyer, product["id"], 1, variant_id="SKU_42")
        assert response.status_code == 400

    def test_below_moq_is_rejected(self, client, buyer, supplier, create_product, add_item):
        product = create_product(supplier, moq=10)

        response = add_item(buyer, product["id"], 5)
        assert response.status_code == 400
        assert response.json()["detail"] == "Minimum order quantity is 10"

    def test_more_than_available_is_rejected(self, client, buyer, supplier, create_product, add_item):
        product = create_product(supplier, available=20)

        add_item(buyer, product["id"], 15)
        response = add_item(buyer, product["id"], 10)

        assert response.status_code == 400
        cart = client.get("/cart/", headers=buyer.headers).json()
        assert cart["items"][0]["quantity"] == 15

    def test_delisted_product_is_rejected(self, client, buyer, supplier, create_product, add_item):
        product = create_product(supplier)
        client.delete(f"/products/{product['id']}", headers=supplier.headers)

        response = add_item(buyer, product["id"], 1)
        assert response.status_code == 400

    def test_unknown_product_is_404(self, client, buyer, add_item):
        response = add_item(buyer, str(uuid.uuid4()), 1)
        assert response.status_code == 404


class TestUpdateItem:
    def test_quantity_change_reprices(self, client, buyer, supplier, create_product, add_item):
        product = create_product(supplier, price_tiers=TIERS)
        line = add_item(buyer, product["id"], 10).json()["items"][0]

        response = client.patch(f"/cart/items/{line['id']}", json={"quantity": 150}, headers=buyer.headers)

        assert response.status_code == 200
        assert response.json()["quantity"] == 150
        assert response.json()["unit_price"] == 80

    @pytest.mark.parametrize("quantity", [0, -5])
    def test_non_positive_quantity_is_rejected(self, client, buyer, supplier, create_product, add_item, quantity):
        product = create_product(supplier)
        line = add_item(buyer, product["id"], 10).json()["items"][0]

        response = client.patch(f"/cart/items/{line['id']}", json={"quantity": quantity}, headers=buyer.headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Quantity must be greater than zero"
        stored = client.get("/cart/", headers=buyer.headers).json()["items"][0]
        assert stored["quantity"] == 10
        assert stored["total_price"] == 1000

    def test_quantity_above_maximum_is_rejected(self, client, buyer, supplier, create_product, add_item):
        product = create_product(supplier, max_order_quantity=50)
        line = add_item(buyer, product["id"], 10).json()["items"][0]

        response = client.patch(f"/cart/items/{line['id']}", json={"quantity": 51}, headers=buyer.headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Maximum order quantity is 50"

    def test_unknown_line_is_404(self, client, buyer):
        response = client.patch(f"/cart/items/{uuid.uuid4()}", json={"quantity": 2}, headers=buyer.headers)
        assert response.status_code == 404


class TestRemoveItems:
    def test_remove_line(self, client, buyer, supplier, create_product, add_item):
        product = create_product(supplier)
        line = add_item(buyer, product["id"], 1).json()["items"][0]

        response = client.delete(f"/cart/items/{line['id']}", headers=buyer.headers)

        assert response.status_code == 200
        assert client.get("/cart/", headers=buyer.headers).json()["items"] == []
        assert client.delete(f"/cart/items/{line['id']}", headers=buyer.headers).status_code == 404

    def test_cannot_remove_another_buyers_line(self, client, buyer, other_buyer, supplier, create_product, add_item):
        product = create_product(supplier)
        line = add_item(buyer, product["id"], 1).json()["items"][0]

        response = client.delete(f"/cart/items/{line['id']}", headers=other_buyer.headers)

        assert response.status_code == 404
        assert len(client.get("/cart/", headers=buyer.headers).json()["items"]) == 1

    def test_clear_cart(self, client, buyer, supplier, other_supplier, create_product, add_item):
        add_item(buyer, create_product(supplier)["id"], 1)
        add_item(buyer, create_product(other_supplier, title="Washers")["id"], 3)

        response = client.delete("/cart/", headers=buyer.headers)

        assert response.status_code == 200
        cart = client.get("/cart/", headers=buyer.headers).json()
        assert cart["items"] == []
        assert cart["total_amount"] == 0
