"""Shared order schema (v1).

These enums are the wire values the storefront client sends and renders.
They must stay stable once shipped since they are persisted verbatim.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DeliveryMode(str, Enum):
    DELIVERY = "Delivery"
    PICK_UP = "Pick-up"


class PaymentMethod(str, Enum):
    COD = "COD"
    GCASH = "GCash"
    MAYA = "Maya"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    AWAITING_VERIFICATION = "Awaiting Verification"
    VERIFIED = "Verified"
    REJECTED = "Rejected"


class OrderStatus(str, Enum):
    PENDING = "Pending"
    PREPARING = "Preparing"
    READY = "Ready"
    OUT_FOR_DELIVERY = "Out for Delivery"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


WALLET_PAYMENT_METHODS = frozenset({PaymentMethod.GCASH, PaymentMethod.MAYA})

# Largest quantity a single cart or order line may carry.
MAX_LINE_QUANTITY = 999


class OrderConfirmationV1(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    order_id: str = Field(..., alias="orderId")
    order_number: str = Field(..., alias="orderNumber")


class ErrorV1(BaseModel):
    error: str
