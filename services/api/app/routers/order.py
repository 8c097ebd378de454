from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from packages.shared.schemas.order_v1 import ErrorV1, OrderConfirmationV1
from services.api.app.db.deps import get_db
from services.api.app.db.models import Order
from services.api.app.models.order import OrderItemOut, OrderOut
from services.api.app.routers.deps import current_user, read_json_body, require_user
from services.api.app.services.identity import CurrentUser
from services.api.app.services.order_placement import place_order as place_order_service
from services.api.app.services.placement_base import (
    InvalidOrderRequestError,
    OrderStoreError,
    UnauthorizedError,
)
from services.api.app.services.pricing import configured_delivery_fee
from services.api.app.services.stores import OrderStore
from sqlalchemy.orm import Session

router = APIRouter()


def _raise_placement_http_error(e: Exception) -> None:
    if isinstance(e, UnauthorizedError):
        raise HTTPException(status_code=401, detail=str(e)) from e

    if isinstance(e, InvalidOrderRequestError):
        raise HTTPException(status_code=400, detail=str(e)) from e

    if isinstance(e, OrderStoreError):
        raise HTTPException(status_code=500, detail=str(e)) from e

    raise HTTPException(status_code=500, detail="Internal Server Error") from e


@router.post(
    "/v1/orders/place",
    response_model=OrderConfirmationV1,
    responses={401: {"model": ErrorV1}, 400: {"model": ErrorV1}, 500: {"model": ErrorV1}},
)
def place_order(
    body: Any = Depends(read_json_body),
    user: CurrentUser | None = Depends(current_user),
    db: Session = Depends(get_db),
) -> OrderConfirmationV1:
    # Authorization comes before any configuration or body checks.
    if user is None:
        _raise_placement_http_error(UnauthorizedError())

    try:
        flat_fee = configured_delivery_fee()
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e

    try:
        confirmation = place_order_service(db, body, user, flat_delivery_fee=flat_fee)
    except Exception as e:
        _raise_placement_http_error(e)

    return OrderConfirmationV1(
        order_id=confirmation.order_id,
        order_number=confirmation.order_number,
    )


@router.get("/v1/orders", response_model=list[OrderOut])
def list_orders(
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
) -> list[OrderOut]:
    return [_order_out(order) for order in OrderStore(db).list_for_user(user.id)]


@router.get("/v1/orders/{order_id}", response_model=OrderOut)
def get_order(
    order_id: str,
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
) -> OrderOut:
    order = OrderStore(db).get_for_user(order_id, user.id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return _order_out(order)


def _order_out(order: Order) -> OrderOut:
    return OrderOut(
        id=order.id,
        order_number=order.order_number,
        status=order.status,
        payment_method=order.payment_method,
        payment_status=order.payment_status,
        delivery_mode=order.delivery_mode,
        delivery_address=order.delivery_address,
        delivery_lat=order.delivery_lat,
        delivery_lng=order.delivery_lng,
        customer_name=order.customer_name,
        customer_phone=order.customer_phone,
        subtotal=float(order.subtotal),
        delivery_fee=float(order.delivery_fee),
        total=float(order.total),
        scheduled_date=order.scheduled_date.isoformat() if order.scheduled_date else None,
        created_at=order.created_at.isoformat(),
        items=[
            OrderItemOut(
                id=item.id,
                product_id=item.product_id,
                name=item.name,
                quantity=item.quantity,
                price=float(item.price),
                line_total=float(item.price * item.quantity),
            )
            for item in order.items
        ],
    )
