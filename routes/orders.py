import logging
from typing import List

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException
from pymongo.database import Database

from config import Settings, get_settings
from database import (
    check_object_id,
    create_document,
    get_db,
    get_document,
    get_documents,
    to_public,
    update_document,
    utcnow,
)
from schemas import Order, OrderCreate, OrderItem, PaymentResult
from security import AuthUser, admin, find_user_by_id, protect

logger = logging.getLogger(__name__)

router = APIRouter()

TAX_RATE = 0.15
FREE_SHIPPING_THRESHOLD = 100.0
SHIPPING_FEE = 10.0


def compute_prices(items: List[OrderItem]) -> dict:
    """Price an order from its line items; total is always the sum of its parts."""
    items_price = round(sum(it.price * it.quantity for it in items), 2)
    shipping_price = 0.0 if items_price > FREE_SHIPPING_THRESHOLD else SHIPPING_FEE
    tax_price = round(items_price * TAX_RATE, 2)
    total_price = round(items_price + shipping_price + tax_price, 2)
    return {
        "items_price": items_price,
        "shipping_price": shipping_price,
        "tax_price": tax_price,
        "total_price": total_price,
    }


def with_user(db: Database, order: dict) -> dict:
    user = find_user_by_id(db, order.get("user_id", ""))
    order = to_public(order)
    order["user"] = {"id": order["user_id"], "name": user["name"], "email": user["email"]} if user else None
    return order


def get_order_or_404(db: Database, order_id: str) -> dict:
    order = get_document(db, "order", order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def get_own_order(db: Database, order_id: str, user: AuthUser) -> dict:
    order = get_order_or_404(db, order_id)
    if order["user_id"] != user.id and user.role != "admin":
        raise HTTPException(status_code=403, detail="Not authorized to access this order")
    return order


def verify_stripe_payment(result: PaymentResult, order: dict, settings: Settings) -> None:
    """Check a reported payment against Stripe when a secret key is configured."""
    if not settings.stripe_secret_key:
        return
    if not result.id:
        raise HTTPException(status_code=400, detail="Missing payment id")
    import stripe
    stripe.api_key = settings.stripe_secret_key
    try:
        intent = stripe.PaymentIntent.retrieve(result.id)
    except stripe.StripeError as e:
        logger.warning("Stripe lookup failed for %s: %s", result.id, e)
        raise HTTPException(status_code=400, detail="Payment could not be verified")
    if intent.status != "succeeded":
        raise HTTPException(status_code=400, detail="Payment not completed")
    if intent.amount_received != round(order["total_price"] * 100):
        raise HTTPException(status_code=400, detail="Incorrect amount paid")


@router.post("", status_code=201, dependencies=[Depends(protect)])
def create_order(body: OrderCreate, user: AuthUser = Depends(protect), db: Database = Depends(get_db)):
    if not body.order_items:
        raise HTTPException(status_code=400, detail="No order items")

    # Prices come from the catalogue, never from the client
    items = []
    for it in body.order_items:
        product = get_document(db, "product", it.product_id) if ObjectId.is_valid(it.product_id) else None
        if not product:
            raise HTTPException(status_code=404, detail=f"Product not found: {it.product_id}")
        items.append(OrderItem(
            name=product["name"],
            quantity=it.quantity,
            image=product["image"],
            price=product["price"],
            product_id=it.product_id,
        ))

    order = Order(
        user_id=user.id,
        order_items=items,
        shipping_address=body.shipping_address,
        payment_method=body.payment_method,
        **compute_prices(items),
    )
    order_id = create_document(db, "order", order)
    return to_public(get_document(db, "order", order_id))


@router.get("/mine")
def my_orders(user: AuthUser = Depends(protect), db: Database = Depends(get_db)):
    return [to_public(o) for o in get_documents(db, "order", {"user_id": user.id})]


@router.get("", dependencies=[Depends(protect), Depends(admin)])
def list_orders(db: Database = Depends(get_db)):
    return [with_user(db, o) for o in get_documents(db, "order")]


@router.get("/{order_id}", dependencies=[Depends(protect), Depends(check_object_id("order_id"))])
def get_order(order_id: str, user: AuthUser = Depends(protect), db: Database = Depends(get_db)):
    return with_user(db, get_own_order(db, order_id, user))


@router.put("/{order_id}/pay", dependencies=[Depends(protect), Depends(check_object_id("order_id"))])
def pay_order(
    order_id: str,
    body: PaymentResult,
    user: AuthUser = Depends(protect),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    order = get_own_order(db, order_id, user)
    if order.get("is_paid"):
        raise HTTPException(status_code=400, detail="Order already paid")
    verify_stripe_payment(body, order, settings)
    changes = {"is_paid": True, "paid_at": utcnow(), "payment_result": body.model_dump()}
    return to_public(update_document(db, "order", order_id, changes))


@router.put(
    "/{order_id}/deliver",
    dependencies=[Depends(protect), Depends(admin), Depends(check_object_id("order_id"))],
)
def deliver_order(order_id: str, db: Database = Depends(get_db)):
    get_order_or_404(db, order_id)
    changes = {"is_delivered": True, "delivered_at": utcnow()}
    return to_public(update_document(db, "order", order_id, changes))


# Payments (Stripe or mock)
@router.post(
    "/{order_id}/payment-intent",
    dependencies=[Depends(protect), Depends(check_object_id("order_id"))],
)
def create_payment_intent(
    order_id: str,
    user: AuthUser = Depends(protect),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    order = get_own_order(db, order_id, user)
    amount = round(order["total_price"] * 100)
    if settings.stripe_secret_key:
        import stripe
        stripe.api_key = settings.stripe_secret_key
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount,
                currency="usd",
                payment_method_types=["card"],
                metadata={"order_id": order_id},
            )
        except stripe.StripeError as e:
            raise HTTPException(status_code=502, detail=f"Stripe error: {str(e)[:100]}")
        return {"client_secret": intent.client_secret, "amount": amount}
    # Mock if Stripe not configured
    return {"client_secret": "mock_client_secret", "amount": amount}
