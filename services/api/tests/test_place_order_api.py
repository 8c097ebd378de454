from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

AUTH = {"X-User-Id": "u-1"}


@pytest.fixture()
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    db_path = tmp_path / "storefront_place.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_path}")
    monkeypatch.setenv("STOREFRONT_DB_AUTO_CREATE", "true")
    monkeypatch.setenv("STOREFRONT_IDENTITY_PROVIDER", "header")
    monkeypatch.delenv("STOREFRONT_DELIVERY_FEE", raising=False)

    from services.api.app.main import app

    with TestClient(app) as c:
        _seed()
        yield c


def _seed() -> None:
    from services.api.app.db.database import db_session
    from services.api.app.db.models import Cart, CartItem, Product, User

    db = db_session()
    try:
        db.add(User(id="u-1", email="biko@example.com", display_name="Biko Fan"))
        db.add(User(id="u-2", email=None, display_name="No Email"))
        db.add(Product(id="p1", name="Classic Biko", price=Decimal("150")))
        db.add(Product(id="p2", name="Kutsinta", price=Decimal("80")))
        db.add(Product(id="p3", name="Mystery Tray", price=None))
        db.flush()
        db.add(Cart(id="cart-1", user_id="u-1"))
        db.flush()
        db.add(CartItem(id="ci-1", cart_id="cart-1", product_id="p1", quantity=2))
        db.add(CartItem(id="ci-2", cart_id="cart-1", product_id="p2", quantity=1))
        db.commit()
    finally:
        db.close()


def _orders() -> list:
    from services.api.app.db.database import db_session
    from services.api.app.db.models import Order

    db = db_session()
    try:
        orders = db.query(Order).order_by(Order.created_at.asc()).all()
        for order in orders:
            list(order.items)
        return orders
    finally:
        db.close()


def _order_item_count() -> int:
    from services.api.app.db.database import db_session
    from services.api.app.db.models import OrderItem

    db = db_session()
    try:
        return db.query(OrderItem).count()
    finally:
        db.close()


def _cart_item_count(cart_id: str = "cart-1") -> int:
    from services.api.app.db.database import db_session
    from services.api.app.db.models import CartItem

    db = db_session()
    try:
        return db.query(CartItem).filter(CartItem.cart_id == cart_id).count()
    finally:
        db.close()


def _payload(**overrides: object) -> dict:
    payload: dict = {
        "cartItems": [{"product_id": "p1", "quantity": 2}],
        "deliveryMode": "Pick-up",
        "paymentMethod": "COD",
        "customerName": "Maria Clara",
        "customerPhone": "0917 123 4567",
    }
    payload.update(overrides)
    return payload


def _place(client: TestClient, payload: dict, headers: dict | None = None):
    return client.post("/v1/orders/place", json=payload, headers=AUTH if headers is None else headers)


def test_pickup_cod_order_is_pending(client: TestClient) -> None:
    response = _place(client, _payload())
    assert response.status_code == 200

    data = response.json()
    assert data["success"] is True
    assert data["orderNumber"].startswith("ORD-")

    [order] = _orders()
    assert order.id == data["orderId"]
    assert order.order_number == data["orderNumber"]
    assert order.subtotal == Decimal("300")
    assert order.delivery_fee == Decimal("0")
    assert order.status == "Pending"
    assert order.payment_status == "Pending"
    assert order.payment_method == "COD"
    assert order.delivery_mode == "Pick-up"
    assert order.customer_name == "Maria Clara"
    assert order.customer_phone == "0917 123 4567"
    assert order.user_id == "u-1"


def test_delivery_gcash_order_is_preparing(client: TestClient) -> None:
    response = _place(client, _payload(deliveryMode="Delivery", paymentMethod="GCash"))
    assert response.status_code == 200

    [order] = _orders()
    assert order.subtotal == Decimal("300")
    assert order.delivery_fee == Decimal("50")
    assert order.total == Decimal("350")
    assert order.status == "Preparing"
    assert order.payment_status == "Verified"


def test_maya_is_treated_like_gcash(client: TestClient) -> None:
    response = _place(client, _payload(paymentMethod="Maya"))
    assert response.status_code == 200

    [order] = _orders()
    assert order.status == "Preparing"
    assert order.payment_status == "Verified"


def test_unknown_product_fails_with_no_valid_order_items(client: TestClient) -> None:
    response = _place(client, _payload(cartItems=[{"product_id": "missing", "quantity": 1}]))
    assert response.status_code == 400
    assert response.json() == {"error": "No valid order items"}
    assert _orders() == []
    assert _cart_item_count() == 2


def test_empty_cart_fails_before_catalog_lookup(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    from services.api.app.services.stores import CatalogStore

    calls: list[object] = []
    monkeypatch.setattr(CatalogStore, "get_products", lambda self, ids: calls.append(ids) or [])

    response = _place(client, _payload(cartItems=[]))
    assert response.status_code == 400
    assert response.json() == {"error": "Cart is empty"}
    assert calls == []


def test_fractional_quantity_is_floored(client: TestClient) -> None:
    response = _place(client, _payload(cartItems=[{"product_id": "p1", "quantity": 1.7}]))
    assert response.status_code == 200

    [order] = _orders()
    [item] = order.items
    assert item.quantity == 1
    assert order.subtotal == Decimal("150")


def test_client_prices_and_names_are_ignored(client: TestClient) -> None:
    response = _place(
        client,
        _payload(cartItems=[{"product_id": "p1", "quantity": 2, "price": 1, "name": "Free Biko"}]),
    )
    assert response.status_code == 200

    [order] = _orders()
    [item] = order.items
    assert item.price == Decimal("150")
    assert item.name == "Classic Biko"
    assert order.subtotal == Decimal("300")


def test_bad_lines_are_dropped_and_the_rest_is_ordered(client: TestClient) -> None:
    cart = [
        {"product_id": "p1", "quantity": -1},
        {"product_id": "p1", "quantity": 0},
        {"product_id": "p2", "quantity": "abc"},
        {"product_id": "p2", "quantity": 0.4},
        {"product_id": "missing", "quantity": 5},
        {"quantity": 3},
        "not-a-line",
        {"product_id": "p2", "quantity": "3"},
    ]
    response = _place(client, _payload(cartItems=cart))
    assert response.status_code == 200

    [order] = _orders()
    assert [(i.product_id, i.quantity) for i in order.items] == [("p2", 3)]
    assert order.subtotal == Decimal("240")


def test_subtotal_matches_persisted_items(client: TestClient) -> None:
    cart = [
        {"product_id": "p1", "quantity": 1},
        {"product_id": "p2", "quantity": 4},
        {"product_id": "p1", "quantity": 2},
    ]
    response = _place(client, _payload(cartItems=cart))
    assert response.status_code == 200

    [order] = _orders()
    assert len(order.items) == 3
    assert order.subtotal == sum(i.price * i.quantity for i in order.items)
    assert order.subtotal == Decimal("770")


def test_product_without_price_is_free(client: TestClient) -> None:
    response = _place(client, _payload(cartItems=[{"product_id": "p3", "quantity": 2}]))
    assert response.status_code == 200

    [order] = _orders()
    assert order.items[0].price == Decimal("0")
    assert order.subtotal == Decimal("0")


def test_missing_product_ids_fail_with_no_valid_products(client: TestClient) -> None:
    response = _place(client, _payload(cartItems=[{"quantity": 1}, {"product_id": ""}]))
    assert response.status_code == 400
    assert response.json() == {"error": "No valid products in cart"}


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"cartItems": "p1"}, "Cart is empty"),
        ({"cartItems": [], "deliveryMode": "Drone"}, "Cart is empty"),
        ({"deliveryMode": "Drone", "paymentMethod": "Bitcoin"}, "Invalid delivery mode"),
        ({"deliveryMode": "delivery"}, "Invalid delivery mode"),
        ({"deliveryMode": None}, "Invalid delivery mode"),
        ({"paymentMethod": "Bitcoin"}, "Invalid payment method"),
        ({"paymentMethod": "cod"}, "Invalid payment method"),
    ],
)
def test_validation_messages(client: TestClient, overrides: dict, message: str) -> None:
    response = _place(client, _payload(**overrides))
    assert response.status_code == 400
    assert response.json() == {"error": message}
    assert _orders() == []


@pytest.mark.parametrize("raw", ["not json", "", "[1, 2]", '"cart"'])
def test_malformed_body_is_rejected(client: TestClient, raw: str) -> None:
    response = client.post(
        "/v1/orders/place",
        content=raw,
        headers={**AUTH, "Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request body"}


@pytest.mark.parametrize("headers", [{}, {"X-User-Id": ""}, {"X-User-Id": "ghost"}])
def test_unauthenticated_caller_is_rejected_without_side_effects(
    client: TestClient, headers: dict
) -> None:
    response = _place(client, _payload(), headers=headers)
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}
    assert _orders() == []
    assert _cart_item_count() == 2


def test_authorization_is_checked_before_the_body(client: TestClient) -> None:
    response = client.post(
        "/v1/orders/place",
        content="not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 401


def test_successful_order_clears_the_cart(client: TestClient) -> None:
    assert _cart_item_count() == 2

    response = _place(client, _payload())
    assert response.status_code == 200
    assert _cart_item_count() == 0


def test_caller_without_cart_can_order(client: TestClient) -> None:
    response = _place(client, _payload(customerName=""), headers={"X-User-Id": "u-2"})
    assert response.status_code == 200

    [order] = _orders()
    assert order.user_id == "u-2"
    assert order.customer_name == "Customer"
    assert _cart_item_count() == 2


def test_blank_customer_name_falls_back_to_email(client: TestClient) -> None:
    response = _place(client, _payload(customerName="   ", customerPhone=None))
    assert response.status_code == 200

    [order] = _orders()
    assert order.customer_name == "biko@example.com"
    assert order.customer_phone == ""


def test_delivery_keeps_address_and_coordinates(client: TestClient) -> None:
    response = _place(
        client,
        _payload(
            deliveryMode="Delivery",
            deliveryAddress="  12 Rizal St, Manila  ",
            deliveryLat=14.5995124,
            deliveryLng=120.9842195,
        ),
    )
    assert response.status_code == 200

    [order] = _orders()
    assert order.delivery_address == "12 Rizal St, Manila"
    assert order.delivery_lat == pytest.approx(14.5995124)
    assert order.delivery_lng == pytest.approx(120.9842195)


def test_delivery_pin_without_address_gets_synthesized_address(client: TestClient) -> None:
    response = _place(
        client,
        _payload(deliveryMode="Delivery", deliveryLat=14.5995124, deliveryLng=120.9842195),
    )
    assert response.status_code == 200

    [order] = _orders()
    assert order.delivery_address == "Pinned (14.59951, 120.98422)"


def test_delivery_without_location_has_no_address(client: TestClient) -> None:
    response = _place(client, _payload(deliveryMode="Delivery", deliveryLat=14.5))
    assert response.status_code == 200

    [order] = _orders()
    assert order.delivery_address is None
    assert order.delivery_lat == pytest.approx(14.5)
    assert order.delivery_lng is None


def test_pickup_drops_delivery_location(client: TestClient) -> None:
    response = _place(
        client,
        _payload(deliveryAddress="12 Rizal St", deliveryLat=14.5, deliveryLng=120.9),
    )
    assert response.status_code == 200

    [order] = _orders()
    assert order.delivery_address is None
    assert order.delivery_lat is None
    assert order.delivery_lng is None
    assert order.delivery_fee == Decimal("0")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2026-12-24", date(2026, 12, 24)),
        ("2026-12-24T20:00:00-08:00", date(2026, 12, 25)),
        ("2026-12-24T09:30:00Z", date(2026, 12, 24)),
        ("next tuesday", None),
        ("2026-02-30", None),
        (None, None),
    ],
)
def test_scheduled_date_is_lenient(client: TestClient, raw: str | None, expected: date | None) -> None:
    response = _place(client, _payload(scheduledDate=raw))
    assert response.status_code == 200

    [order] = _orders()
    assert order.scheduled_date == expected


def test_delivery_fee_is_configurable(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STOREFRONT_DELIVERY_FEE", "75.50")

    response = _place(client, _payload(deliveryMode="Delivery"))
    assert response.status_code == 200

    [order] = _orders()
    assert order.delivery_fee == Decimal("75.50")


def test_invalid_delivery_fee_config_is_500(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STOREFRONT_DELIVERY_FEE", "fifty")

    response = _place(client, _payload())
    assert response.status_code == 500
    assert "STOREFRONT_DELIVERY_FEE" in response.json()["error"]
    assert _orders() == []


def test_order_numbers_are_unique(client: TestClient) -> None:
    first = _place(client, _payload()).json()
    second = _place(client, _payload()).json()

    assert first["orderId"] != second["orderId"]
    assert first["orderNumber"] != second["orderNumber"]
    assert len(_orders()) == 2
    assert _order_item_count() == 2


def test_misconfigured_delivery_fee_still_rejects_anonymous_caller(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("STOREFRONT_DELIVERY_FEE", "fifty")

    response = _place(client, _payload(), headers={})
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_oversized_quantities_are_dropped(client: TestClient) -> None:
    only_huge = _place(client, _payload(cartItems=[{"product_id": "p1", "quantity": 1e20}]))
    assert only_huge.status_code == 400
    assert only_huge.json() == {"error": "No valid order items"}

    response = _place(
        client,
        _payload(
            cartItems=[
                {"product_id": "p1", "quantity": 1e20},
                {"product_id": "p2", "quantity": 999},
            ]
        ),
    )
    assert response.status_code == 200

    [order] = _orders()
    assert [(i.product_id, i.quantity) for i in order.items] == [("p2", 999)]
    assert order.subtotal == Decimal("79920")
