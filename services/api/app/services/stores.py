"""Store adapters the order placement service talks to.

Each store wraps the request session. None of them commit: the caller owns
the transaction boundary.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from services.api.app.db.models import Cart, CartItem, Order, OrderItem, Product
from services.api.app.services.placement_base import OrderLine
from sqlalchemy import delete, select
from sqlalchemy.orm import Session


@dataclass(frozen=True, slots=True)
class NewOrder:
    user_id: str
    customer_name: str
    customer_phone: str
    delivery_mode: str
    delivery_address: str | None
    delivery_lat: float | None
    delivery_lng: float | None
    payment_method: str
    payment_status: str
    status: str
    subtotal: Decimal
    delivery_fee: Decimal
    scheduled_date: date | None


def new_order_number(now: datetime | None = None) -> str:
    stamp = (now or datetime.utcnow()).strftime("%Y%m%d")
    return f"ORD-{stamp}-{uuid4().hex[:8].upper()}"


class CatalogStore:
    def __init__(self, db: Session) -> None:
        self._db = db

    def get_products(self, ids: Sequence[str]) -> list[Product]:
        if not ids:
            return []
        return list(self._db.scalars(select(Product).where(Product.id.in_(list(ids)))))

    def list_products(self) -> list[Product]:
        return list(self._db.scalars(select(Product).order_by(Product.name.asc())))


class OrderStore:
    def __init__(self, db: Session) -> None:
        self._db = db

    def insert_order(self, fields: NewOrder) -> Order:
        order = Order(
            id=uuid4().hex,
            order_number=new_order_number(),
            user_id=fields.user_id,
            customer_name=fields.customer_name,
            customer_phone=fields.customer_phone,
            delivery_mode=fields.delivery_mode,
            delivery_address=fields.delivery_address,
            delivery_lat=fields.delivery_lat,
            delivery_lng=fields.delivery_lng,
            payment_method=fields.payment_method,
            payment_status=fields.payment_status,
            status=fields.status,
            subtotal=fields.subtotal,
            delivery_fee=fields.delivery_fee,
            scheduled_date=fields.scheduled_date,
        )
        self._db.add(order)
        self._db.flush()
        return order

    def insert_order_items(self, order_id: str, lines: Sequence[OrderLine]) -> list[OrderItem]:
        rows = [
            OrderItem(
                id=uuid4().hex,
                order_id=order_id,
                position=position,
                product_id=line.product_id,
                name=line.name,
                quantity=line.quantity,
                price=line.price,
            )
            for position, line in enumerate(lines)
        ]
        self._db.add_all(rows)
        self._db.flush()
        return rows

    def list_for_user(self, user_id: str) -> list[Order]:
        return list(
            self._db.scalars(
                select(Order)
                .where(Order.user_id == user_id)
                .order_by(Order.created_at.desc(), Order.order_number.desc())
            )
        )

    def get_for_user(self, order_id: str, user_id: str) -> Order | None:
        order = self._db.get(Order, order_id)
        if order is None or order.user_id != user_id:
            return None
        return order


class CartStore:
    def __init__(self, db: Session) -> None:
        self._db = db

    def find_cart_id_for_user(self, user_id: str) -> str | None:
        return self._db.scalar(select(Cart.id).where(Cart.user_id == user_id))

    def get_or_create_cart_id(self, user_id: str) -> str:
        cart_id = self.find_cart_id_for_user(user_id)
        if cart_id is not None:
            return cart_id

        cart_id = uuid4().hex
        self._db.add(Cart(id=cart_id, user_id=user_id))
        self._db.flush()
        return cart_id

    def list_items(self, cart_id: str) -> list[tuple[CartItem, Product]]:
        rows = self._db.execute(
            select(CartItem, Product)
            .join(Product, Product.id == CartItem.product_id)
            .where(CartItem.cart_id == cart_id)
            .order_by(CartItem.created_at.asc(), CartItem.id.asc())
        )
        return [(item, product) for item, product in rows]

    def set_quantity(self, cart_id: str, product_id: str, quantity: int) -> None:
        item = self._db.scalar(
            select(CartItem).where(CartItem.cart_id == cart_id, CartItem.product_id == product_id)
        )

        if quantity <= 0:
            if item is not None:
                self._db.delete(item)
            return

        if item is None:
            self._db.add(
                CartItem(id=uuid4().hex, cart_id=cart_id, product_id=product_id, quantity=quantity)
            )
        else:
            item.quantity = quantity

    def delete_cart_items(self, cart_id: str) -> int:
        result = self._db.execute(delete(CartItem).where(CartItem.cart_id == cart_id))
        return result.rowcount or 0
