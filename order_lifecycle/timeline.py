"""
timeline.py — Order Timeline Reconstruction

Builds the five-slot progress timeline shown on the order detail page from
the order's current status and its (possibly partial) status history.

Resolution rule for every progression slot, in this order:
    1. The status appears in the history  → COMPLETED, with the history date
       (first occurrence wins when the log contains duplicates).
    2. It ranks before the current status → COMPLETED, no timestamp.
    3. It is the current status           → CURRENT.
    4. Otherwise                          → PENDING.

History always wins over rank inference because it carries the authoritative
timestamp. Cancelled and refunded orders additionally get a terminal banner,
reported next to the five slots and never mixed into them.

Everything here is pure: no I/O, no shared state.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Union

from .models import Order, StatusHistoryItem, readable_history_item
from .status_registry import (
    PROGRESSION,
    OrderStatus,
    StatusLike,
    display_info,
    parse_status,
)


class EntryState(str, Enum):
    COMPLETED = "completed"
    CURRENT = "current"
    PENDING = "pending"


class BannerKind(str, Enum):
    ORDER_CANCELLED = "order_cancelled"
    REFUND_ISSUED = "refund_issued"


BANNER_KINDS = {
    OrderStatus.CANCELLED: BannerKind.ORDER_CANCELLED,
    OrderStatus.REFUNDED: BannerKind.REFUND_ISSUED,
}

# Step labels of the five slots; status badges use the registry labels
TIMELINE_LABELS = {
    OrderStatus.PENDING: "Pedido realizado",
    OrderStatus.PAID: "Pago confirmado",
    OrderStatus.PROCESSING: "En preparación",
    OrderStatus.SHIPPED: "Enviado",
    OrderStatus.DELIVERED: "Entregado",
}


class TimelineEntry(NamedTuple):
    """
    One progression slot.

    Attributes:
        status: The progression status of this slot.
        label: Step label of the slot (TIMELINE_LABELS).
        state: COMPLETED, CURRENT or PENDING.
        timestamp: Date from the history log, None when unknown.
        is_current: True when this slot is the order's current status.
        show_current_indicator: True only when the slot is current and not
            already represented in the history (avoids a double signal).
    """
    status: OrderStatus
    label: str
    state: EntryState
    timestamp: Optional[datetime]
    is_current: bool
    show_current_indicator: bool


class TerminalBanner(NamedTuple):
    kind: BannerKind
    status: OrderStatus
    message: str
    timestamp: Optional[datetime]


class Timeline(NamedTuple):
    entries: List[TimelineEntry]
    banner: Optional[TerminalBanner]

    def count_state(self, state: EntryState) -> int:
        return sum(1 for entry in self.entries if entry.state == state)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entries": [
                {
                    "status": entry.status.value,
                    "label": entry.label,
                    "state": entry.state.value,
                    "timestamp": entry.timestamp.isoformat() if entry.timestamp else None,
                    "isCurrent": entry.is_current,
                    "showCurrentIndicator": entry.show_current_indicator,
                }
                for entry in self.entries
            ],
            "banner": None if self.banner is None else {
                "kind": self.banner.kind.value,
                "status": self.banner.status.value,
                "message": self.banner.message,
                "timestamp": self.banner.timestamp.isoformat() if self.banner.timestamp else None,
            },
        }


HistoryInput = Optional[Iterable[Union[StatusHistoryItem, Mapping[str, Any]]]]


def index_history(status_history: HistoryInput) -> Dict[str, datetime]:
    """
    Maps each status found in the history to the date of its first occurrence.

    Raw mappings (as decoded from backend JSON) are validated into
    StatusHistoryItem on the way in; entries that fail validation are skipped.
    Unknown statuses are kept; they simply never match a progression slot.
    """
    index: Dict[str, datetime] = {}
    for raw in status_history or ():
        item = readable_history_item(raw)
        if item is None:
            continue
        key = item.status.value if isinstance(item.status, Enum) else item.status
        index.setdefault(key, item.date)
    return index


def resolve_entry(
    status: OrderStatus,
    current: Optional[OrderStatus],
    history: Mapping[str, datetime],
) -> TimelineEntry:
    """Applies the history-wins, rank-fallback rule to one progression slot."""
    rank = display_info(status).rank
    current_rank = display_info(current).rank if current is not None else None
    is_current = status == current
    in_history = status.value in history

    if in_history:
        state = EntryState.COMPLETED
        timestamp = history[status.value]
    elif current_rank is not None and rank < current_rank:
        state = EntryState.COMPLETED
        timestamp = None
    elif is_current:
        state = EntryState.CURRENT
        timestamp = None
    else:
        state = EntryState.PENDING
        timestamp = None

    return TimelineEntry(
        status=status,
        label=TIMELINE_LABELS[status],
        state=state,
        timestamp=timestamp,
        is_current=is_current,
        show_current_indicator=is_current and not in_history,
    )


def terminal_banner(current: Optional[OrderStatus], history: Mapping[str, datetime]) -> Optional[TerminalBanner]:
    kind = BANNER_KINDS.get(current)
    if kind is None:
        return None
    return TerminalBanner(
        kind=kind,
        status=current,
        message=display_info(current).description,
        timestamp=history.get(current.value),
    )


def build_timeline(current_status: StatusLike, status_history: HistoryInput = None) -> Timeline:
    """
    Reconstructs the presentable timeline of an order.

    Args:
        current_status: The order's current status. Unknown values are
            tolerated: no slot ranks before or after them.
        status_history: Optional, possibly partial log of status changes.
            It is never assumed to be complete or to contain the current status.

    Returns:
        Timeline: exactly five entries (pending..delivered) plus the terminal
        banner for cancelled and refunded orders.
    """
    current = parse_status(current_status)
    history = index_history(status_history)
    entries = [resolve_entry(status, current, history) for status in PROGRESSION]
    return Timeline(entries=entries, banner=terminal_banner(current, history))


def order_timeline(order: Order) -> Timeline:
    return build_timeline(order.orderStatus, order.statusHistory)
