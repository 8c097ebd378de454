from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from services.api.app.db.deps import get_db
from services.api.app.db.models import Product
from services.api.app.models.cart import CartItemUpdate, CartLineOut, CartOut
from services.api.app.routers.deps import require_user
from services.api.app.services.identity import CurrentUser
from services.api.app.services.pricing import coerce_price
from services.api.app.services.stores import CartStore
from sqlalchemy.orm import Session

router = APIRouter()


@router.get("/v1/cart", response_model=CartOut)
def get_cart(user: CurrentUser = Depends(require_user), db: Session = Depends(get_db)) -> CartOut:
    carts = CartStore(db)
    cart_id = carts.find_cart_id_for_user(user.id)
    if cart_id is None:
        return CartOut()
    return _cart_out(carts, cart_id)


@router.put("/v1/cart/items", response_model=CartOut)
def set_cart_item(
    payload: CartItemUpdate,
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
) -> CartOut:
    if db.get(Product, payload.product_id) is None:
        raise HTTPException(status_code=404, detail="Product not found")

    carts = CartStore(db)
    cart_id = carts.get_or_create_cart_id(user.id)
    carts.set_quantity(cart_id, payload.product_id, payload.quantity)
    db.commit()

    return _cart_out(carts, cart_id)


def _cart_out(carts: CartStore, cart_id: str) -> CartOut:
    lines: list[CartLineOut] = []
    subtotal = Decimal("0")
    for item, product in carts.list_items(cart_id):
        price = coerce_price(product.price)
        line_total = price * item.quantity
        subtotal += line_total
        lines.append(
            CartLineOut(
                product_id=product.id,
                name=product.name,
                quantity=item.quantity,
                price=float(price),
                line_total=float(line_total),
            )
        )

    return CartOut(cart_id=cart_id, items=lines, subtotal=float(subtotal))
