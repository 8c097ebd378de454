"""Order placement: revalidate a submitted cart against the catalog and persist it.

Prices always come from the catalog rows read here, never from the request.
The order row and its items are written in one database transaction; if the
items cannot be written the transaction is rolled back, which removes the
order row with it. The caller's cart is only cleared after that commit.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from packages.shared.schemas.order_v1 import MAX_LINE_QUANTITY, DeliveryMode, PaymentMethod
from pydantic import ValidationError
from services.api.app.models.order import CartItemInput, PlaceOrderRequest
from services.api.app.services.identity import CurrentUser
from services.api.app.services.placement_base import (
    CatalogEntry,
    InvalidOrderRequestError,
    OrderConfirmation,
    OrderLine,
    OrderStoreError,
    UnauthorizedError,
)
from services.api.app.services.pricing import (
    coerce_price,
    delivery_fee_for,
    settlement_for,
    subtotal_of,
)
from services.api.app.services.stores import CartStore, CatalogStore, NewOrder, OrderStore
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

# Marks a request body that was not valid JSON.
INVALID_BODY = object()


def place_order(
    db: Session,
    body: Any,
    user: CurrentUser | None,
    *,
    flat_delivery_fee: Decimal,
) -> OrderConfirmation:
    if user is None:
        raise UnauthorizedError()

    try:
        return _place_order(db, body, user, flat_delivery_fee)
    except InvalidOrderRequestError as e:
        logger.info("Rejected order for user %s: %s", user.id, e)
        raise


def _place_order(
    db: Session,
    body: Any,
    user: CurrentUser,
    flat_delivery_fee: Decimal,
) -> OrderConfirmation:
    payload = parse_place_order_body(body)

    if not payload.cart_items:
        raise InvalidOrderRequestError("Cart is empty")

    delivery_mode = _enum_or_none(DeliveryMode, payload.delivery_mode)
    if delivery_mode is None:
        raise InvalidOrderRequestError("Invalid delivery mode")

    payment_method = _enum_or_none(PaymentMethod, payload.payment_method)
    if payment_method is None:
        raise InvalidOrderRequestError("Invalid payment method")

    product_ids = distinct_product_ids(payload.cart_items)
    if not product_ids:
        raise InvalidOrderRequestError("No valid products in cart")

    try:
        products = CatalogStore(db).get_products(product_ids)
    except SQLAlchemyError as e:
        logger.exception("Catalog lookup failed for user %s", user.id)
        _rollback(db)
        raise OrderStoreError(_store_message(e, "Failed to load products")) from e

    catalog = {
        product.id: CatalogEntry(name=product.name, price=coerce_price(product.price))
        for product in products
    }

    lines = sanitize_cart_items(payload.cart_items, catalog)
    if not lines:
        raise InvalidOrderRequestError("No valid order items")

    subtotal = subtotal_of(lines)
    delivery_fee = delivery_fee_for(delivery_mode, flat_delivery_fee)
    settlement = settlement_for(payment_method)
    is_delivery = delivery_mode == DeliveryMode.DELIVERY

    fields = NewOrder(
        user_id=user.id,
        customer_name=(payload.customer_name or "").strip() or user.email or "Customer",
        customer_phone=(payload.customer_phone or "").strip(),
        delivery_mode=delivery_mode.value,
        delivery_address=resolve_delivery_address(
            delivery_mode,
            payload.delivery_address,
            payload.delivery_lat,
            payload.delivery_lng,
        ),
        delivery_lat=payload.delivery_lat if is_delivery else None,
        delivery_lng=payload.delivery_lng if is_delivery else None,
        payment_method=payment_method.value,
        payment_status=settlement.payment_status,
        status=settlement.status,
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        scheduled_date=parse_scheduled_date(payload.scheduled_date),
    )

    orders = OrderStore(db)
    try:
        order = orders.insert_order(fields)
    except SQLAlchemyError as e:
        logger.exception("Order insert failed for user %s", user.id)
        _rollback(db)
        raise OrderStoreError(_store_message(e, "Failed to create order")) from e

    try:
        orders.insert_order_items(order.id, lines)
        db.commit()
    except Exception as e:
        logger.exception("Saving items for order %s failed; discarding the order", order.id)
        _rollback(db)
        raise OrderStoreError("Failed to save order items") from e

    _clear_cart(db, user.id)

    logger.info(
        "Placed order %s for user %s: %d item(s), subtotal=%s delivery_fee=%s payment=%s",
        order.order_number,
        user.id,
        len(lines),
        subtotal,
        delivery_fee,
        payment_method.value,
    )
    return OrderConfirmation(order_id=order.id, order_number=order.order_number)


def parse_place_order_body(body: Any) -> PlaceOrderRequest:
    if body is INVALID_BODY or not isinstance(body, dict):
        raise InvalidOrderRequestError("Invalid request body")

    try:
        return PlaceOrderRequest.model_validate(body)
    except ValidationError as e:
        raise InvalidOrderRequestError("Invalid request body") from e


def distinct_product_ids(items: Sequence[CartItemInput]) -> list[str]:
    seen: dict[str, None] = {}
    for item in items:
        if item.product_id:
            seen.setdefault(item.product_id, None)
    return list(seen)


def sanitize_cart_items(
    items: Sequence[CartItemInput],
    catalog: Mapping[str, CatalogEntry],
) -> list[OrderLine]:
    """Keep only lines that resolve to a catalog product with a usable quantity.

    Bad lines are dropped, not rejected. Quantities are floored so fractional
    input never rounds up, and lines above MAX_LINE_QUANTITY are dropped too.
    """

    lines: list[OrderLine] = []
    for item in items:
        entry = catalog.get(item.product_id) if item.product_id else None
        quantity = item.quantity
        if entry is None or quantity is None or not math.isfinite(quantity) or quantity <= 0:
            continue

        whole = math.floor(quantity)
        if whole < 1 or whole > MAX_LINE_QUANTITY:
            continue

        lines.append(
            OrderLine(
                product_id=item.product_id,
                quantity=whole,
                name=entry.name,
                price=entry.price,
            )
        )
    return lines


def resolve_delivery_address(
    mode: DeliveryMode,
    address: str | None,
    lat: float | None,
    lng: float | None,
) -> str | None:
    if mode != DeliveryMode.DELIVERY:
        return None

    text = (address or "").strip()
    if text:
        return text

    if lat is not None and lng is not None:
        return f"Pinned ({lat:.5f}, {lng:.5f})"
    return None


def parse_scheduled_date(raw: str | None) -> date | None:
    """Calendar date of an ISO date/datetime string; unparseable input is ignored."""
    text = (raw or "").strip()
    if not text:
        return None

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def _enum_or_none(enum_cls: type[DeliveryMode] | type[PaymentMethod], value: str | None):
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        return None


def _clear_cart(db: Session, user_id: str) -> None:
    carts = CartStore(db)
    try:
        cart_id = carts.find_cart_id_for_user(user_id)
        if cart_id is None:
            return
        removed = carts.delete_cart_items(cart_id)
        db.commit()
    except SQLAlchemyError:
        # The order is already committed; a stale cart is left for the client to clear.
        logger.exception("Failed to clear cart for user %s", user_id)
        _rollback(db)
        return

    logger.debug("Cleared %d cart item(s) for user %s", removed, user_id)


def _rollback(db: Session) -> None:
    try:
        db.rollback()
    except SQLAlchemyError:
        logger.exception("Rollback failed")


def _store_message(e: SQLAlchemyError, fallback: str) -> str:
    orig = getattr(e, "orig", None)
    message = str(orig if orig is not None else e).strip()
    return message or fallback
