from routers.requests.helpers import calculate_priority


class TestCalculatePriority:
    def test_small_request_is_low(self):
        assert calculate_priority(500, 10, "low") == "low"

    def test_bands_add_up(self):
        assert calculate_priority(45000, 500, "medium") == "medium"
        assert calculate_priority(60000, 500, "high") == "high"
        assert calculate_priority(200000, 2000, "urgent") == "urgent"


class TestCreateRequest:
    def test_buyer_posts_request(self, client, buyer, create_request):
        sourcing_request = create_request(buyer)

        assert sourcing_request["request_number"].startswith("RQ")
        assert sourcing_request["buyer_id"] == buyer.profile["id"]
        assert sourcing_request["buyer_name"] == "Bea Buyer"
        assert sourcing_request["status"] == "open"
        assert sourcing_request["display_status"] == "open"
        assert sourcing_request["bid_count"] == 0
        assert sourcing_request["priority"] == "medium"

    def test_max_budget_defaults_to_target_times_quantity(self, client, buyer, create_request):
        sourcing_request = create_request(buyer, quantity=200, target_price=12.5)
        assert sourcing_request["max_budget"] == 2500

    def test_explicit_max_budget_is_kept(self, client, buyer, create_request):
        sourcing_request = create_request(buyer, max_budget=150000, urgency="urgent", quantity=2000)
        assert sourcing_request["max_budget"] == 150000
        assert sourcing_request["priority"] == "urgent"

    def test_request_numbers_are_unique(self, client, buyer, create_request):
        first = create_request(buyer)
        second = create_request(buyer)
        assert first["request_number"] != second["request_number"]

    def test_supplier_cannot_post_request(self, client, supplier):
        response = client.post(
            "/requests/",
            json={"product_name": "Bolts", "quantity": 10, "target_price": 1},
            headers=supplier.headers,
        )
        assert response.status_code == 403

    def test_quantity_must_be_positive(self, client, buyer):
        response = client.post(
            "/requests/",
            json={"product_name": "Bolts", "quantity": 0, "target_price": 1},
            headers=buyer.headers,
        )
        assert response.status_code == 422


class TestReadRequests:
    def test_every_read_counts_as_view(self, client, buyer, supplier, create_request):
        sourcing_request = create_request(buyer)

        first = client.get(f"/requests/{sourcing_request['id']}", headers=supplier.headers)
        second = client.get(f"/requests/{sourcing_request['id']}", headers=supplier.headers)

        assert first.status_code == 200
        assert first.json()["view_count"] == 1
        assert second.json()["view_count"] == 2

    def test_unknown_request_is_404(self, client, supplier):
        response = client.get("/requests/00000000-0000-0000-0000-000000000000", headers=supplier.headers)
        assert response.status_code == 404

    def test_listing_defaults_to_open(self, client, buyer, supplier, create_request):
        kept = create_request(buyer)
        closed = create_request(buyer, product_name="Nuts")
        client.post(f"/requests/{closed['id']}/close", headers=buyer.headers)

        listing = client.get("/requests/", headers=supplier.headers).json()
        assert [item["id"] for item in listing["requests"]] == [kept["id"]]

        everything = client.get("/requests/", params={"status": "all"}, headers=supplier.headers).json()
        assert everything["total"] == 2

    def test_mine_filters_by_owner(self, client, buyer, other_buyer, create_request):
        create_request(buyer)
        create_request(other_buyer)

        listing = client.get("/requests/", params={"mine": True}, headers=buyer.headers).json()
        assert listing["total"] == 1
        assert listing["requests"][0]["buyer_id"] == buyer.profile["id"]


class TestCloseRequest:
    def test_owner_closes_request_once(self, client, buyer, create_request):
        sourcing_request = create_request(buyer)

        response = client.post(f"/requests/{sourcing_request['id']}/close", headers=buyer.headers)
        assert response.status_code == 200
        assert response.json()["status"] == "closed"

        again = client.post(f"/requests/{sourcing_request['id']}/close", headers=buyer.headers)
        assert again.status_code == 409

    def test_other_buyer_cannot_close(self, client, buyer, other_buyer, create_request):
        sourcing_request = create_request(buyer)
        response = client.post(f"/requests/{sourcing_request['id']}/close", headers=other_buyer.headers)
        assert response.status_code == 403
