"""
status_registry.py — Order status model and display metadata

An order moves along the progression chain
    pending → paid → processing → shipped → delivered
with side branches to cancellation_requested, cancelled and refunded.

Progression statuses carry a rank (0..4). The exception statuses have no rank
and are never compared against the chain. `display_info()` is total: it
accepts any value, including strings the backend may introduce later, and
degrades to a neutral entry instead of failing.
"""

from enum import Enum
from typing import Dict, FrozenSet, NamedTuple, Optional, Tuple, Union


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    CANCELLATION_REQUESTED = "cancellation_requested"


StatusLike = Union[OrderStatus, str, None]

PROGRESSION: Tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.PAID,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)

TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset({OrderStatus.CANCELLED, OrderStatus.REFUNDED})


class StatusInfo(NamedTuple):
    label: str
    rank: Optional[int]
    is_terminal_error: bool
    color: str
    icon: str
    description: str


STATUS_REGISTRY: Dict[OrderStatus, StatusInfo] = {
    OrderStatus.PENDING: StatusInfo(
        "Pago Pendiente", 0, False, "gray", "clock",
        "Estamos esperando la confirmación del pago",
    ),
    OrderStatus.PAID: StatusInfo(
        "Pago Confirmado", 1, False, "blue", "credit-card",
        "El pago se ha recibido correctamente",
    ),
    OrderStatus.PROCESSING: StatusInfo(
        "En Preparación", 2, False, "yellow", "box",
        "Estamos preparando tu pedido",
    ),
    OrderStatus.SHIPPED: StatusInfo(
        "Enviado", 3, False, "orange", "truck",
        "Tu pedido está en camino",
    ),
    OrderStatus.DELIVERED: StatusInfo(
        "Entregado", 4, False, "green", "check-circle",
        "Tu pedido ha sido entregado",
    ),
    OrderStatus.CANCELLED: StatusInfo(
        "Cancelado", None, True, "red", "x-circle",
        "Este pedido ha sido cancelado",
    ),
    OrderStatus.REFUNDED: StatusInfo(
        "Reembolsado", None, True, "purple", "arrow-counterclockwise",
        "Este pedido ha sido reembolsado",
    ),
    OrderStatus.CANCELLATION_REQUESTED: StatusInfo(
        "Cancelación Solicitada", None, False, "amber", "hourglass",
        "Hemos recibido tu solicitud de cancelación",
    ),
}

ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({
        OrderStatus.PAID, OrderStatus.CANCELLED, OrderStatus.CANCELLATION_REQUESTED,
    }),
    OrderStatus.PAID: frozenset({
        OrderStatus.PROCESSING, OrderStatus.CANCELLED, OrderStatus.CANCELLATION_REQUESTED,
    }),
    OrderStatus.PROCESSING: frozenset({
        OrderStatus.SHIPPED, OrderStatus.CANCELLED, OrderStatus.CANCELLATION_REQUESTED,
    }),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.REFUNDED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.REFUNDED}),
    # A rejected request sends the order back into preparation
    OrderStatus.CANCELLATION_REQUESTED: frozenset({OrderStatus.CANCELLED, OrderStatus.PROCESSING}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}

# Customers may only ask for a cancellation before the parcel leaves the warehouse
CANCELLABLE_STATUSES: FrozenSet[OrderStatus] = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items()
    if OrderStatus.CANCELLATION_REQUESTED in targets
)


def parse_status(value: StatusLike) -> Optional[OrderStatus]:
    """Returns the matching OrderStatus, or None for unknown values."""
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        return None


def display_info(status: StatusLike) -> StatusInfo:
    """
    Returns the display metadata for a status.

    Unknown values render with their raw value as label, no rank and the
    neutral colour, so callers treat them as "no progression info".
    """
    parsed = parse_status(status)
    if parsed is None:
        label = str(status) if status else "Desconocido"
        return StatusInfo(label, None, False, "gray", "question-circle", "Estado desconocido")
    return STATUS_REGISTRY[parsed]


def rank_of(status: StatusLike) -> Optional[int]:
    return display_info(status).rank


def is_terminal(status: StatusLike) -> bool:
    return display_info(status).is_terminal_error


def is_valid_transition(current: StatusLike, target: StatusLike) -> bool:
    current_status = parse_status(current)
    target_status = parse_status(target)
    if current_status is None or target_status is None:
        return False
    return target_status in ALLOWED_TRANSITIONS[current_status]


def is_cancellable(status: StatusLike) -> bool:
    """True when a customer may request cancellation from this status."""
    return is_valid_transition(status, OrderStatus.CANCELLATION_REQUESTED)
