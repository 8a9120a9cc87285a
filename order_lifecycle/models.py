"""
models.py — Data Models for the Order Lifecycle

This module defines the data structures exchanged with the content backend,
the storefront and the refund webhook. It uses Pydantic models to ensure type
safety and automatic validation of incoming data.

Field names follow the wire format (camelCase) used by the backend.

Models:
    - StatusHistoryItem: One entry of an order's status change log.
    - CartItem: A product line frozen into an order.
    - Order: Read-only projection of an order as served by the backend.
    - RefundRequest / RefundResponse: Refund webhook payload and success body.
    - CancellationRequest: Body of a customer cancellation request.
"""

import random
import string
import time
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .status_registry import OrderStatus


class StatusHistoryItem(BaseModel):
    """
    A single status change event.

    Attributes:
        status (str): The status entered. Kept as a plain string so that
            unknown or legacy values in the log do not break parsing.
        date (datetime): ISO-8601 timestamp of the change.
        description (str, optional): Free-text note attached by the backend.
    """
    status: str
    date: datetime
    description: Optional[str] = None


def readable_history_item(raw: Any) -> Optional[StatusHistoryItem]:
    """Parses one history entry, returning None when it cannot be read."""
    if isinstance(raw, StatusHistoryItem):
        return raw
    try:
        return StatusHistoryItem.model_validate(raw)
    except ValidationError:
        return None


class CartItem(BaseModel):
    """
    Represents a single product line in a cart or order.

    Attributes:
        id (int | str): Product identifier.
        name (str): Product name at purchase time.
        price (Decimal): Unit price in major currency units.
        quantity (int): Number of units. Must be at least one.
        images (List[str]): Image URLs.
        href (str): Product page link.
        stock (int): Stock level seen when the item was added.
    """
    id: Union[int, str]
    name: str
    price: Decimal
    quantity: int = Field(..., ge=1)
    images: List[str] = Field(default_factory=list)
    href: str = ""
    stock: int = 0


class Order(BaseModel):
    """
    Read-only projection of an order. The backend owns the record; the
    service never writes it back except through explicit status updates.
    """
    model_config = ConfigDict(extra="ignore")

    orderId: str
    id: Optional[Union[int, str]] = None
    documentId: Optional[str] = None
    items: List[CartItem] = Field(default_factory=list)
    subtotal: Decimal = Decimal("0")
    shipping: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    orderStatus: str = OrderStatus.PENDING.value
    statusHistory: Optional[List[StatusHistoryItem]] = None
    paymentIntentId: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @field_validator("statusHistory", mode="before")
    @classmethod
    def drop_unreadable_history(cls, value):
        """Keeps the readable entries of the history; an entry without a valid status or date is skipped."""
        if value is None:
            return None
        if not isinstance(value, list):
            return []
        return [item for item in value if readable_history_item(item) is not None]

    @property
    def backend_id(self) -> Optional[str]:
        """Identifier the backend expects for updates (documentId, falling back to id)."""
        backend_id = self.documentId or self.id
        return None if backend_id is None else str(backend_id)


class RefundRequest(BaseModel):
    """
    Refund webhook payload.

    Attributes:
        paymentIntentId (str): Payment intent to refund.
        amount (int | float): Order total in major currency units (converted to minor units for the provider).
        orderId (str): Externally visible order identifier.
    """
    paymentIntentId: str
    amount: Union[int, float]
    orderId: str


class RefundResponse(BaseModel):
    success: bool = True
    refundId: str
    status: Optional[str] = None


class CancellationRequest(BaseModel):
    """
    Body of a customer cancellation request.

    Attributes:
        reason (str): Why the customer wants to cancel. Surrounding whitespace
            is stripped and a blank reason is rejected.
    """
    reason: str

    @field_validator("reason")
    @classmethod
    def reason_must_have_content(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("reason must not be blank")
        return value


class HandlerResult(NamedTuple):
    """HTTP status and JSON body produced by a boundary handler."""
    status_code: int
    body: Dict[str, Any]


ORDER_ID_ALPHABET = string.ascii_uppercase + string.digits


def generate_order_id(now: Optional[float] = None) -> str:
    """
    Generates a human-shareable order id: ORD-<unix seconds>-<4 random chars>.

    Example:
        ORD-1730476800-A5F3
    """
    timestamp = int(time.time() if now is None else now)
    suffix = "".join(random.choice(ORDER_ID_ALPHABET) for _ in range(4))
    return f"ORD-{timestamp}-{suffix}"
