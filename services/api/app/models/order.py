from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _finite_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _optional_text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


class CartItemInput(BaseModel):
    """One submitted cart line.

    Every field is coerced leniently: a malformed line never rejects the
    request, it just fails to resolve later. Client-echoed ``price`` and
    ``name`` are accepted for compatibility and never used for pricing.
    """

    model_config = ConfigDict(extra="ignore")

    product_id: str | None = None
    quantity: float | None = None
    price: Any = None
    name: Any = None

    @field_validator("product_id", mode="before")
    @classmethod
    def _coerce_product_id(cls, value: Any) -> str | None:
        if isinstance(value, bool) or value is None:
            return None
        if isinstance(value, (int, str)):
            return str(value) if value else None
        return None

    @field_validator("quantity", mode="before")
    @classmethod
    def _coerce_quantity(cls, value: Any) -> float | None:
        return _finite_number(value)


class PlaceOrderRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    cart_items: list[CartItemInput] = Field(default_factory=list, alias="cartItems")
    delivery_mode: str | None = Field(None, alias="deliveryMode")
    delivery_address: str | None = Field(None, alias="deliveryAddress")
    delivery_lat: float | None = Field(None, alias="deliveryLat")
    delivery_lng: float | None = Field(None, alias="deliveryLng")
    payment_method: str | None = Field(None, alias="paymentMethod")
    scheduled_date: str | None = Field(None, alias="scheduledDate")
    customer_name: str | None = Field(None, alias="customerName")
    customer_phone: str | None = Field(None, alias="customerPhone")

    @field_validator("cart_items", mode="before")
    @classmethod
    def _coerce_cart_items(cls, value: Any) -> list[Any]:
        if not isinstance(value, list):
            return []
        return [item if isinstance(item, dict) else {} for item in value]

    @field_validator(
        "delivery_mode",
        "delivery_address",
        "payment_method",
        "scheduled_date",
        "customer_name",
        "customer_phone",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value: Any) -> str | None:
        return _optional_text(value)

    @field_validator("delivery_lat", "delivery_lng", mode="before")
    @classmethod
    def _coerce_coordinate(cls, value: Any) -> float | None:
        return _finite_number(value)


class OrderItemOut(BaseModel):
    id: str
    product_id: str
    name: str
    quantity: int
    price: float
    line_total: float


class OrderOut(BaseModel):
    id: str
    order_number: str
    status: str
    payment_method: str
    payment_status: str
    delivery_mode: str
    delivery_address: str | None = None
    delivery_lat: float | None = None
    delivery_lng: float | None = None
    customer_name: str
    customer_phone: str
    subtotal: float
    delivery_fee: float
    total: float
    scheduled_date: str | None = None
    created_at: str
    items: list[OrderItemOut] = Field(default_factory=list)
