from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


class OrderPlacementError(Exception):
    """Base class for order placement failures."""

    @property
    def message(self) -> str:
        return str(self)


class UnauthorizedError(OrderPlacementError):
    def __init__(self) -> None:
        super().__init__("Unauthorized")


class InvalidOrderRequestError(OrderPlacementError):
    """The caller can fix the request and resubmit."""


class OrderStoreError(OrderPlacementError):
    """A backing store failed. Safe to retry the whole placement."""


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    name: str
    price: Decimal


@dataclass(frozen=True, slots=True)
class OrderLine:
    product_id: str
    quantity: int
    name: str
    price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True, slots=True)
class Settlement:
    payment_status: str
    status: str


@dataclass(frozen=True, slots=True)
class OrderConfirmation:
    order_id: str
    order_number: str
