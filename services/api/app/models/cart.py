from __future__ import annotations

from packages.shared.schemas.order_v1 import MAX_LINE_QUANTITY
from pydantic import BaseModel, Field


class CartItemUpdate(BaseModel):
    product_id: str = Field(..., min_length=1)
    # Zero removes the line.
    quantity: int = Field(..., ge=0, le=MAX_LINE_QUANTITY)


class CartLineOut(BaseModel):
    product_id: str
    name: str
    quantity: int
    price: float
    line_total: float


class CartOut(BaseModel):
    cart_id: str | None = None
    items: list[CartLineOut] = Field(default_factory=list)
    subtotal: float = 0.0
