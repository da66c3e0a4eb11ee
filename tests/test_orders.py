import pytest
from bson import ObjectId

from routes.orders import compute_prices
from schemas import OrderItem

SHIPPING = {"address": "1 Main St", "city": "Boston", "postal_code": "02101", "country": "USA"}


@pytest.fixture
def place_order(client, auth):
    def _place(user, items, payment_method="Stripe"):
        return client.post(
            "/api/orders",
            json={"order_items": items, "shipping_address": SHIPPING, "payment_method": payment_method},
            headers=auth(user),
        )
    return _place


def item(price, quantity=1):
    return OrderItem(name="x", quantity=quantity, image="/x.jpg", price=price, product_id="p")


def test_compute_prices_total_is_sum_of_parts():
    prices = compute_prices([item(19.99, 2), item(5.5)])
    assert prices["items_price"] == 45.48
    assert prices["shipping_price"] == 10.0
    assert prices["tax_price"] == 6.82
    assert prices["total_price"] == round(45.48 + 10.0 + 6.82, 2)


def test_compute_prices_free_shipping_over_threshold():
    assert compute_prices([item(150)])["shipping_price"] == 0.0


def test_create_order_uses_catalogue_prices(place_order, make_product, customer):
    product_id = make_product(price=40.0)
    res = place_order(customer, [{"product_id": product_id, "quantity": 3}])
    assert res.status_code == 201
    order = res.json()
    assert order["user_id"] == str(customer["_id"])
    assert order["order_items"][0]["price"] == 40.0
    assert order["order_items"][0]["name"] == "Airpods Wireless Headphones"
    assert order["items_price"] == 120.0
    assert order["shipping_price"] == 0.0
    assert order["tax_price"] == 18.0
    assert order["total_price"] == 138.0
    assert order["is_paid"] is False
    assert order["is_delivered"] is False


def test_create_order_rejects_empty_and_unknown_items(place_order, customer):
    empty = place_order(customer, [])
    assert empty.status_code == 400
    assert empty.json()["message"] == "No order items"

    unknown = place_order(customer, [{"product_id": str(ObjectId()), "quantity": 1}])
    assert unknown.status_code == 404


def test_create_order_requires_login(client):
    res = client.post("/api/orders", json={})
    assert res.status_code == 401


def test_my_orders(client, place_order, make_product, make_user, customer, auth):
    product_id = make_product()
    place_order(customer, [{"product_id": product_id, "quantity": 1}])
    other = make_user(name="Bob", email="bob@mail.com")
    place_order(other, [{"product_id": product_id, "quantity": 2}])

    res = client.get("/api/orders/mine", headers=auth(customer))
    assert res.status_code == 200
    assert len(res.json()) == 1


def test_get_order_owner_or_admin(client, place_order, make_product, make_user, customer, admin_user, auth):
    order_id = place_order(customer, [{"product_id": make_product(), "quantity": 1}]).json()["id"]

    own = client.get(f"/api/orders/{order_id}", headers=auth(customer))
    assert own.status_code == 200
    assert own.json()["user"]["email"] == "jane@mail.com"

    stranger = make_user(name="Eve", email="eve@mail.com")
    assert client.get(f"/api/orders/{order_id}", headers=auth(stranger)).status_code == 403
    assert client.get(f"/api/orders/{order_id}", headers=auth(admin_user)).status_code == 200
    assert client.get("/api/orders/not-an-id", headers=auth(customer)).status_code == 404


def test_list_orders_admin_only(client, place_order, make_product, customer, admin_user, auth):
    place_order(customer, [{"product_id": make_product(), "quantity": 1}])
    assert client.get("/api/orders", headers=auth(customer)).status_code == 403
    res = client.get("/api/orders", headers=auth(admin_user))
    assert res.status_code == 200
    assert res.json()[0]["user"]["name"] == "Jane Doe"


def test_pay_order(client, place_order, make_product, customer, auth):
    order_id = place_order(customer, [{"product_id": make_product(), "quantity": 1}]).json()["id"]
    payment = {"id": "pay_123", "status": "COMPLETED", "update_time": "2024-01-01T00:00:00Z", "email_address": "jane@mail.com"}
    res = client.put(f"/api/orders/{order_id}/pay", json=payment, headers=auth(customer))
    assert res.status_code == 200
    body = res.json()
    assert body["is_paid"] is True
    assert body["paid_at"] is not None
    assert body["payment_result"]["id"] == "pay_123"

    again = client.put(f"/api/orders/{order_id}/pay", json=payment, headers=auth(customer))
    assert again.status_code == 400


def test_deliver_order_admin_only(client, place_order, make_product, customer, admin_user, auth):
    order_id = place_order(customer, [{"product_id": make_product(), "quantity": 1}]).json()["id"]
    assert client.put(f"/api/orders/{order_id}/deliver", headers=auth(customer)).status_code == 403

    res = client.put(f"/api/orders/{order_id}/deliver", headers=auth(admin_user))
    assert res.status_code == 200
    assert res.json()["is_delivered"] is True
    assert res.json()["delivered_at"] is not None


def test_payment_intent_mock_without_stripe(client, place_order, make_product, customer, auth):
    order = place_order(customer, [{"product_id": make_product(price=40.0), "quantity": 1}]).json()
    res = client.post(f"/api/orders/{order['id']}/payment-intent", headers=auth(customer))
    assert res.status_code == 200
    assert res.json() == {"client_secret": "mock_client_secret", "amount": round(order["total_price"] * 100)}
