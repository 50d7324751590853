"""API tests through the FastAPI app"""
import pytest
from fastapi.testclient import TestClient

from kindplate.core.dependencies import get_db, get_redis, get_redlock
from kindplate.main import app

USER = {"X-User-Id": "1"}


@pytest.fixture
def client(db_session):
    """Client bound to the test session, without Redis"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: None
    app.dependency_overrides[get_redlock] = lambda: None
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def owner(business):
    return {"X-Business-Id": str(business.id)}


class TestInfrastructure:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_order_config(self, client):
        response = client.get("/api/v1/orders/config")

        assert response.json() == {
            "success": True,
            "message": None,
            "data": {"service_fee": 50.0, "promocode_enabled": False, "currency": "RUB"},
        }

    def test_missing_identity(self, client):
        response = client.get("/api/v1/customer/cart")

        assert response.status_code == 401
        assert response.json()["success"] is False
        assert response.json()["error"] == "UNAUTHORIZED"

    def test_validation_error_envelope(self, client):
        response = client.post("/api/v1/customer/cart", json={"offer_id": 1, "quantity": 101}, headers=USER)

        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"


class TestCartApi:

    def test_add_and_read_cart(self, client, offer, second_offer):
        client.post("/api/v1/customer/cart", json={"offer_id": offer.id, "quantity": 2}, headers=USER)
        response = client.post(
            "/api/v1/customer/cart", json={"offer_id": second_offer.id, "quantity": 1}, headers=USER
        )

        assert response.status_code == 200
        body = response.json()
        assert [item["offer_id"] for item in body["data"]] == [offer.id, second_offer.id]
        assert body["summary"]["total_price"] == 250.0
        assert body["summary"]["items_count"] == 3
        assert body["summary"]["can_checkout"] is True

    def test_vendor_conflict_then_replace(self, client, offer, foreign_offer, other_business):
        client.post("/api/v1/customer/cart", json={"offer_id": offer.id}, headers=USER)

        conflict = client.post("/api/v1/customer/cart", json={"offer_id": foreign_offer.id}, headers=USER)

        assert conflict.status_code == 409
        assert conflict.json()["error"] == "VENDOR_CONFLICT"
        assert conflict.json()["details"]["new_business_id"] == other_business.id

        replaced = client.post(
            "/api/v1/customer/cart",
            json={"offer_id": foreign_offer.id, "replace_cart": True},
            headers=USER,
        )
        assert replaced.status_code == 200
        assert [item["offer_id"] for item in replaced.json()["data"]] == [foreign_offer.id]

    def test_update_to_zero_and_clear(self, client, offer):
        client.post("/api/v1/customer/cart", json={"offer_id": offer.id, "quantity": 2}, headers=USER)

        response = client.put("/api/v1/customer/cart", json={"offer_id": offer.id, "quantity": 0}, headers=USER)

        assert response.json()["data"] == []
        assert response.json()["summary"]["can_checkout"] is False
        assert client.delete("/api/v1/customer/cart", headers=USER).json()["success"] is True

    def test_remove_missing_item(self, client):
        response = client.delete("/api/v1/customer/cart/77", headers=USER)

        assert response.status_code == 404
        assert response.json()["error"] == "ITEM_NOT_IN_CART"

    def test_unknown_offer(self, client):
        response = client.post("/api/v1/customer/cart", json={"offer_id": 999}, headers=USER)

        assert response.status_code == 404
        assert response.json()["error"] == "OFFER_NOT_FOUND"

    def test_draft_of_empty_cart(self, client):
        response = client.get("/api/v1/customer/cart/draft", headers=USER)

        assert response.json()["can_checkout"] is False
        assert response.json()["data"] is None


class TestCheckoutFlow:

    def test_cart_to_pickup(self, client, offer, owner):
        client.post("/api/v1/customer/cart", json={"offer_id": offer.id, "quantity": 2}, headers=USER)
        draft = client.get("/api/v1/customer/cart/draft", headers=USER).json()["data"]
        assert draft["total"] == 250.0

        created = client.post("/api/v1/orders/draft", json=draft, headers=USER)
        assert created.status_code == 200
        order = created.json()["data"]
        assert order["status"] == "new"
        assert client.get("/api/v1/customer/cart", headers=USER).json()["data"] == []

        not_confirmed = client.post("/api/v1/payments/create", json={"order_id": order["id"]}, headers=USER)
        assert not_confirmed.json()["error"] == "ORDER_NOT_CONFIRMED"

        confirmed = client.post(f"/api/v1/orders/{order['id']}/confirm", headers=USER)
        assert confirmed.json()["data"]["status"] == "confirmed"

        payment_headers = dict(USER, **{"Idempotency-Key": "abc"})
        payment = client.post(
            "/api/v1/payments/create", json={"order_id": order["id"]}, headers=payment_headers
        ).json()["data"]
        assert payment["amount"] == 250.0
        assert payment["payment_url"].endswith(f"/{payment['payment_id']}")
        replay = client.post(
            "/api/v1/payments/create", json={"order_id": order["id"]}, headers=payment_headers
        ).json()["data"]
        assert replay["payment_id"] == payment["payment_id"]

        hook = client.post("/api/v1/payments/webhook", json={
            "payment_id": payment["payment_id"], "status": "succeeded", "amount": 250.0, "currency": "RUB",
        })
        assert hook.json()["data"]["status"] == "succeeded"
        status = client.get(f"/api/v1/payments/order/{order['id']}/status", headers=USER)
        assert status.json()["data"]["status"] == "succeeded"

        ready = client.post(f"/api/v1/business/orders/{order['id']}/ready", headers=owner)
        assert ready.json()["data"]["status"] == "ready_for_pickup"
        assert "pickup_code" not in ready.json()["data"]

        listed = client.get("/api/v1/business/orders", headers=owner).json()["data"]
        assert [o["id"] for o in listed] == [order["id"]]
        assert "pickup_code" not in listed[0]

        qr = client.get(f"/api/v1/orders/{order['id']}/pickup-qr", headers=USER).json()["data"]
        scan = client.post("/api/v1/orders/scan", json={"code": qr["qr_payload"]}, headers=owner)
        assert scan.json()["data"]["status"] == "picked_up"

        again = client.post("/api/v1/orders/scan", json={"code": order["pickup_code"]}, headers=owner)
        assert again.status_code == 409
        assert again.json()["error"] == "ALREADY_PICKED_UP"

    def test_cancel_order(self, client, offer):
        client.post("/api/v1/customer/cart", json={"offer_id": offer.id}, headers=USER)
        draft = client.get("/api/v1/customer/cart/draft", headers=USER).json()["data"]
        order = client.post("/api/v1/orders/draft", json=draft, headers=USER).json()["data"]

        cancelled = client.post(f"/api/v1/orders/{order['id']}/cancel", headers=USER)

        assert cancelled.json()["data"]["status"] == "cancelled"
        assert [o["id"] for o in client.get("/api/v1/orders", headers=USER).json()["data"]] == [order["id"]]

    def test_foreign_order_hidden(self, client):
        response = client.get("/api/v1/orders/12345", headers=USER)

        assert response.status_code == 404
        assert response.json()["error"] == "ORDER_NOT_FOUND"


class TestOfferApi:

    def test_offer_card(self, client, offer):
        response = client.get(f"/api/v1/customer/offers/{offer.id}")

        assert response.status_code == 200
        assert response.json()["data"]["discount_percent"] == 50
        assert response.json()["data"]["business"]["name"] == "Bakery"

    def test_business_manages_offers(self, client, owner, offer):
        created = client.post("/api/v1/business/offers/create", json={
            "title": "Pastry mix",
            "original_price": 300,
            "discounted_price": 120,
            "quantity_available": 4,
            "pickup_time_start": "19:00",
            "pickup_time_end": "21:00",
        }, headers=owner)
        assert created.status_code == 200
        new_id = created.json()["data"]["id"]

        toggled = client.post("/api/v1/business/offers/toggle", json={"id": new_id, "is_active": False}, headers=owner)
        assert toggled.json()["data"]["is_active"] is False

        mine = client.get("/api/v1/business/offers/mine", headers=owner).json()
        assert mine["success"] is True
        assert {o["id"] for o in mine["offers"]} == {offer.id, new_id}

        deleted = client.post("/api/v1/business/offers/delete", json={"id": new_id}, headers=owner)
        assert deleted.json()["success"] is True

    def test_other_business_cannot_toggle(self, client, offer, other_business):
        response = client.post(
            "/api/v1/business/offers/toggle",
            json={"id": offer.id, "is_active": False},
            headers={"X-Business-Id": str(other_business.id)},
        )

        assert response.status_code == 403
        assert response.json()["error"] == "NO_AUTHORITY"
