import uuid
from datetime import timedelta

import pytest
from sqlalchemy import update

from models import SourcingRequest
from routers.bids.helpers import validate_action
from utils.clock import utcnow
from utils.errors import ValidationError


@pytest.fixture()
def open_request(buyer, create_request):
    return create_request(buyer)


@pytest.fixture()
def supplier_product(supplier, create_product):
    return create_product(supplier)


@pytest.fixture()
def other_product(other_supplier, create_product):
    return create_product(other_supplier, title="Hex Bolts")


def _get_request(client, party, request_id):
    return client.get(f"/requests/{request_id}", headers=party.headers).json()


class TestValidateAction:
    def test_known_actions(self):
        assert validate_action("accept") == "accept"
        assert validate_action("reject") == "reject"

    def test_unknown_action(self):
        with pytest.raises(ValidationError):
            validate_action("maybe")


class TestPlaceBid:
    def test_supplier_places_bid(self, client, buyer, supplier, open_request, supplier_product, place_bid):
        response = place_bid(supplier, open_request["id"], supplier_product["id"])

        assert response.status_code == 201, response.text
        bid = response.json()
        assert bid["status"] == "pending"
        assert bid["supplier_name"] == "Acme Supplies"
        assert bid["product_name"] == "Steel Bolts"
        assert bid["original_price"] == 100
        assert bid["bid_price"] == 85

        sourcing_request = _get_request(client, buyer, open_request["id"])
        assert sourcing_request["bid_count"] == 1
        assert sourcing_request["display_status"] == "bidding"

    def test_second_bid_by_same_supplier_conflicts(self, client, buyer, supplier, open_request, supplier_product, place_bid):
        assert place_bid(supplier, open_request["id"], supplier_product["id"]).status_code == 201

        response = place_bid(supplier, open_request["id"], supplier_product["id"], bid_price=80)
        assert response.status_code == 409
        assert _get_request(client, buyer, open_request["id"])["bid_count"] == 1

    def test_closed_request_rejects_bids(self, client, buyer, supplier, open_request, supplier_product, place_bid):
        client.post(f"/requests/{open_request['id']}/close", headers=buyer.headers)

        response = place_bid(supplier, open_request["id"], supplier_product["id"])
        assert response.status_code == 409

    def test_expired_request_rejects_bids(self, client, buyer, supplier, open_request, supplier_product, place_bid, run_db):
        run_db(
            update(SourcingRequest)
            .where(SourcingRequest.id == uuid.UUID(open_request["id"]))
            .values(expires_at=utcnow() - timedelta(days=1))
        )

        response = place_bid(supplier, open_request["id"], supplier_product["id"])
        assert response.status_code == 409
        assert response.json()["detail"] == "Request has expired"
        assert _get_request(client, buyer, open_request["id"])["display_status"] == "expired"

    def test_bid_with_another_suppliers_product_is_forbidden(
        self, client, other_supplier, open_request, supplier_product, place_bid
    ):
        response = place_bid(other_supplier, open_request["id"], supplier_product["id"])
        assert response.status_code == 403

    def test_buyer_cannot_bid(self, client, buyer, open_request, supplier_product, place_bid):
        response = place_bid(buyer, open_request["id"], supplier_product["id"])
        assert response.status_code == 403

    def test_unknown_request_is_404(self, client, supplier, supplier_product, place_bid):
        response = place_bid(supplier, str(uuid.uuid4()), supplier_product["id"])
        assert response.status_code == 404

    def test_delivery_time_is_bounded(self, client, supplier, open_request, supplier_product, place_bid):
        response = place_bid(supplier, open_request["id"], supplier_product["id"], delivery_time=400)
        assert response.status_code == 422


class TestListBids:
    def test_filters(
        self, client, buyer, supplier, other_supplier, open_request, supplier_product, other_product, place_bid
    ):
        mine = place_bid(supplier, open_request["id"], supplier_product["id"]).json()
        place_bid(other_supplier, open_request["id"], other_product["id"])

        by_request = client.get("/bids/", params={"request_id": open_request["id"]}, headers=buyer.headers).json()
        assert by_request["total"] == 2

        own = client.get("/bids/", params={"supplier_id": "me"}, headers=supplier.headers).json()
        assert [bid["id"] for bid in own["bids"]] == [mine["id"]]

        by_id = client.get("/bids/", params={"supplier_id": supplier.profile["id"]}, headers=buyer.headers).json()
        assert by_id["total"] == 1

    def test_invalid_supplier_id(self, client, buyer):
        response = client.get("/bids/", params={"supplier_id": "nope"}, headers=buyer.headers)
        assert response.status_code == 400

    def test_get_single_bid(self, client, supplier, open_request, supplier_product, place_bid):
        bid = place_bid(supplier, open_request["id"], supplier_product["id"]).json()

        response = client.get(f"/bids/{bid['id']}", headers=supplier.headers)
        assert response.status_code == 200
        assert response.json()["id"] == bid["id"]

        assert client.get(f"/bids/{uuid.uuid4()}", headers=supplier.headers).status_code == 404


class TestRejectBid:
    def test_owner_rejects_bid(self, client, buyer, supplier, open_request, supplier_product, place_bid):
        bid = place_bid(supplier, open_request["id"], supplier_product["id"]).json()

        response = client.patch(f"/bids/{bid['id']}", json={"action": "reject"}, headers=buyer.headers)

        assert response.status_code == 200
        assert response.json()["status"] == "rejected"
        assert response.json()["rejected_at"] is not None
        assert _get_request(client, buyer, open_request["id"])["status"] == "open"

    def test_rejecting_twice_conflicts(self, client, buyer, supplier, open_request, supplier_product, place_bid):
        bid = place_bid(supplier, open_request["id"], supplier_product["id"]).json()
        client.patch(f"/bids/{bid['id']}", json={"action": "reject"}, headers=buyer.headers)

        response = client.patch(f"/bids/{bid['id']}", json={"action": "reject"}, headers=buyer.headers)
        assert response.status_code == 409

    def test_other_buyer_cannot_reject(self, client, other_buyer, supplier, open_request, supplier_product, place_bid):
        bid = place_bid(supplier, open_request["id"], supplier_product["id"]).json()

        response = client.patch(f"/bids/{bid['id']}", json={"action": "reject"}, headers=other_buyer.headers)
        assert response.status_code == 403

    def test_invalid_action(self, client, buyer, supplier, open_request, supplier_product, place_bid):
        bid = place_bid(supplier, open_request["id"], supplier_product["id"]).json()

        response = client.patch(f"/bids/{bid['id']}", json={"action": "maybe"}, headers=buyer.headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid action. Must be 'accept' or 'reject'"


class TestWithdrawBid:
    def test_withdraw_decrements_bid_count(
        self, client, buyer, supplier, other_supplier, open_request, supplier_product, other_product, place_bid
    ):
        bid = place_bid(supplier, open_request["id"], supplier_product["id"]).json()
        place_bid(other_supplier, open_request["id"], other_product["id"])
        assert _get_request(client, buyer, open_request["id"])["bid_count"] == 2

        response = client.delete(f"/bids/{bid['id']}", headers=supplier.headers)

        assert response.status_code == 200
        assert response.json()["status"] == "withdrawn"
        assert response.json()["withdrawn_at"] is not None
        assert _get_request(client, buyer, open_request["id"])["bid_count"] == 1

    def test_withdrawn_bid_cannot_be_withdrawn_again(self, client, supplier, open_request, supplier_product, place_bid):
        bid = place_bid(supplier, open_request["id"], supplier_product["id"]).json()
        client.delete(f"/bids/{bid['id']}", headers=supplier.headers)

        response = client.delete(f"/bids/{bid['id']}", headers=supplier.headers)
        assert response.status_code == 409

    def test_accepted_bid_cannot_be_withdrawn(self, client, buyer, supplier, open_request, supplier_product, place_bid):
        bid = place_bid(supplier, open_request["id"], supplier_product["id"]).json()
        accepted = client.patch(f"/bids/{bid['id']}", json={"action": "accept"}, headers=buyer.headers)
        assert accepted.status_code == 200, accepted.text

        response = client.delete(f"/bids/{bid['id']}", headers=supplier.headers)
        assert response.status_code == 409
        assert response.json()["detail"] == "Cannot withdraw a bid that is accepted"

    def test_only_bid_owner_can_withdraw(
        self, client, supplier, other_supplier, open_request, supplier_product, place_bid
    ):
        bid = place_bid(supplier, open_request["id"], supplier_product["id"]).json()

        response = client.delete(f"/bids/{bid['id']}", headers=other_supplier.headers)
        assert response.status_code == 403

    def test_withdrawn_supplier_cannot_bid_again(self, client, supplier, open_request, supplier_product, place_bid):
        bid = place_bid(supplier, open_request["id"], supplier_product["id"]).json()
        client.delete(f"/bids/{bid['id']}", headers=supplier.headers)

        response = place_bid(supplier, open_request["id"], supplier_product["id"])
        assert response.status_code == 409
