import pytest
from pydantic import ValidationError

from schemas import Order, OrderItem, ProfileUpdate, RegisterRequest, ShippingAddress, User


def test_user_email_is_trimmed_and_lowercased():
    user = User(name="  Ada  ", email=" ADA@x.com ", password="longenough1")
    assert user.email == "ada@x.com"
    assert user.name == "Ada"
    assert user.role == "user"


@pytest.mark.parametrize("email", ["not-an-email", "ada@", "ada@x", "ada@x.comma"])
def test_user_rejects_bad_email(email):
    with pytest.raises(ValidationError):
        User(name="Ada", email=email, password="longenough1")


def test_user_field_limits():
    with pytest.raises(ValidationError):
        User(name="x" * 51, email="ada@x.com", password="longenough1")
    with pytest.raises(ValidationError):
        User(name="Ada", email="ada@x.com", password="short")
    with pytest.raises(ValidationError):
        User(name="Ada", email="ada@x.com", password="longenough1", role="owner")


def test_password_whitespace_is_preserved():
    assert User(name="Ada", email="ada@x.com", password=" spaced pass ").password == " spaced pass "


def test_register_request_cannot_claim_admin():
    with pytest.raises(ValidationError):
        RegisterRequest(name="Ada", email="ada@x.com", password="longenough1", role="admin")


def test_profile_update_is_partial():
    update = ProfileUpdate(name="Ada")
    assert update.model_dump(exclude_none=True) == {"name": "Ada"}
    with pytest.raises(ValidationError):
        ProfileUpdate(email="nope")


def test_order_defaults():
    order = Order(
        user_id="u1",
        order_items=[OrderItem(name="Cam", quantity=1, image="/c.jpg", price=10, product_id="p1")],
        shipping_address=ShippingAddress(address="1 Main St", city="Boston", postal_code="02101", country="USA"),
        payment_method="Stripe",
    )
    assert order.items_price == 0.0
    assert order.total_price == 0.0
    assert order.is_paid is False and order.paid_at is None
    assert order.is_delivered is False and order.delivered_at is None
    assert order.payment_result is None


def test_shipping_address_fields_required():
    with pytest.raises(ValidationError):
        ShippingAddress(address="1 Main St", city="Boston", postal_code="", country="USA")
