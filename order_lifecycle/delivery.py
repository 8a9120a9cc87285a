"""
delivery.py — Delivery date estimates

Derives the delivery window shown next to the timeline from the dates in the
order's status history:
    • delivered   → the actual delivery date
    • shipped     → shipping date + 3 to 4 days
    • otherwise   → no estimate

Weekends and holidays are not skipped. Dates are formatted with Spanish month
abbreviations independently of the process locale.
"""

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional, Union

from .models import Order
from .timeline import index_history

DELIVERY_DAYS_MIN = 3
DELIVERY_DAYS_MAX = 4

MONTH_ABBREVIATIONS = ("ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sept", "oct", "nov", "dic")

DateLike = Union[date, datetime]


class EstimateStatus(str, Enum):
    ESTIMATED = "estimated"
    DELIVERED = "delivered"


class DeliveryRange(NamedTuple):
    min_date: date
    max_date: date


class DeliveryEstimate(NamedTuple):
    status: EstimateStatus
    formatted_text: str
    range: DeliveryRange

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "formattedText": self.formatted_text,
            "minDate": self.range.min_date.isoformat(),
            "maxDate": self.range.max_date.isoformat(),
        }


def _as_date(value: DateLike) -> date:
    return value.date() if isinstance(value, datetime) else value


def _month(value: date) -> str:
    return MONTH_ABBREVIATIONS[value.month - 1]


def calculate_delivery_range(shipped_at: DateLike) -> DeliveryRange:
    shipped = _as_date(shipped_at)
    return DeliveryRange(
        min_date=shipped + timedelta(days=DELIVERY_DAYS_MIN),
        max_date=shipped + timedelta(days=DELIVERY_DAYS_MAX),
    )


def format_delivered_date(delivered_at: DateLike) -> str:
    """'24 nov 2025'"""
    delivered = _as_date(delivered_at)
    return f"{delivered.day} {_month(delivered)} {delivered.year}"


def format_delivery_range(delivery_range: DeliveryRange) -> str:
    """
    Formats a window compactly:
        same day            24 nov 2025
        same month          24-25 nov 2025
        same year           30 nov - 1 dic 2025
        across years        31 dic 2025 - 1 ene 2026
    """
    low, high = delivery_range
    if low == high:
        return format_delivered_date(low)
    if (low.year, low.month) == (high.year, high.month):
        return f"{low.day}-{high.day} {_month(low)} {low.year}"
    if low.year == high.year:
        return f"{low.day} {_month(low)} - {high.day} {_month(high)} {low.year}"
    return f"{format_delivered_date(low)} - {format_delivered_date(high)}"


def delivery_estimate(
    shipped_at: Optional[DateLike] = None,
    delivered_at: Optional[DateLike] = None,
) -> Optional[DeliveryEstimate]:
    """
    Returns the delivery estimate of an order, or None before it ships.

    A delivery date wins over the shipping date: once delivered, the exact
    date is shown instead of a window.
    """
    if delivered_at is not None:
        delivered = _as_date(delivered_at)
        return DeliveryEstimate(
            status=EstimateStatus.DELIVERED,
            formatted_text=format_delivered_date(delivered),
            range=DeliveryRange(delivered, delivered),
        )
    if shipped_at is not None:
        delivery_range = calculate_delivery_range(shipped_at)
        return DeliveryEstimate(
            status=EstimateStatus.ESTIMATED,
            formatted_text=format_delivery_range(delivery_range),
            range=delivery_range,
        )
    return None


def order_delivery_estimate(order: Order) -> Optional[DeliveryEstimate]:
    history = index_history(order.statusHistory)
    return delivery_estimate(history.get("shipped"), history.get("delivered"))
