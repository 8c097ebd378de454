from __future__ import annotations

import os
from collections.abc import Iterable
from decimal import Decimal, InvalidOperation
from typing import Any

from packages.shared.schemas.order_v1 import (
    WALLET_PAYMENT_METHODS,
    DeliveryMode,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from services.api.app.services.placement_base import OrderLine, Settlement

DEFAULT_DELIVERY_FEE = Decimal("50")


def coerce_price(value: Any) -> Decimal:
    """Catalog price as a non-negative decimal; anything unusable prices at zero."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not price.is_finite() or price < 0:
        return Decimal("0")
    return price


def configured_delivery_fee() -> Decimal:
    raw = os.getenv("STOREFRONT_DELIVERY_FEE", "").strip()
    if not raw:
        return DEFAULT_DELIVERY_FEE

    try:
        fee = Decimal(raw)
    except InvalidOperation as e:
        raise ValueError(f"Invalid STOREFRONT_DELIVERY_FEE={raw!r}") from e
    if not fee.is_finite() or fee < 0:
        raise ValueError(f"Invalid STOREFRONT_DELIVERY_FEE={raw!r}")
    return fee


def delivery_fee_for(mode: DeliveryMode, flat_fee: Decimal) -> Decimal:
    return flat_fee if mode == DeliveryMode.DELIVERY else Decimal("0")


def subtotal_of(lines: Iterable[OrderLine]) -> Decimal:
    return sum((line.line_total for line in lines), Decimal("0"))


def settlement_for(method: PaymentMethod) -> Settlement:
    # Wallet payments are treated as already confirmed; COD waits for admin review.
    if method in WALLET_PAYMENT_METHODS:
        return Settlement(
            payment_status=PaymentStatus.VERIFIED.value,
            status=OrderStatus.PREPARING.value,
        )
    return Settlement(
        payment_status=PaymentStatus.PENDING.value,
        status=OrderStatus.PENDING.value,
    )
