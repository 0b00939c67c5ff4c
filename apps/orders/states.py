"""Order statuses and the table of legal transitions between them."""
from django.db import models

from apps.common.exceptions import InvalidTransition


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    FOR_VERIFICATION = "for_verification", "For verification"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    CANCELLED = "cancelled", "Cancelled"
    PREPARING = "preparing", "Preparing"
    READY_FOR_PICKUP = "ready_for_pickup", "Ready for pickup"
    WAITING_FOR_RIDER = "waiting_for_rider", "Waiting for rider"
    PICKED_UP = "picked_up", "Picked up"
    IN_TRANSIT = "in_transit", "In transit"
    DELIVERED = "delivered", "Delivered"
    COMPLETED = "completed", "Completed"


class OrderType(models.TextChoices):
    DINE_IN = "dine_in", "Dine-in"
    PICKUP = "pickup", "Pickup"
    DELIVERY = "delivery", "Delivery"


S = OrderStatus

TERMINAL = frozenset({S.REJECTED, S.CANCELLED, S.COMPLETED})

_PICKUP_FLOW = (
    S.PENDING,
    S.FOR_VERIFICATION,
    S.APPROVED,
    S.PREPARING,
    S.READY_FOR_PICKUP,
    S.COMPLETED,
)

_DELIVERY_FLOW = (
    S.PENDING,
    S.FOR_VERIFICATION,
    S.APPROVED,
    S.PREPARING,
    S.WAITING_FOR_RIDER,
    S.PICKED_UP,
    S.IN_TRANSIT,
    S.DELIVERED,
    S.COMPLETED,
)

# Statuses reached only after the approval deducted stock.
STOCK_DEDUCTED = frozenset(
    {
        S.APPROVED,
        S.PREPARING,
        S.READY_FOR_PICKUP,
        S.WAITING_FOR_RIDER,
        S.PICKED_UP,
        S.IN_TRANSIT,
        S.DELIVERED,
    }
)

# Statuses from which a driver can still be (re)assigned.
ASSIGNABLE = frozenset({S.PENDING, S.FOR_VERIFICATION, S.APPROVED, S.PREPARING, S.WAITING_FOR_RIDER})


def _build(flow) -> dict:
    table = {}
    for current, following in zip(flow, flow[1:]):
        table[current] = {following}
    for status in flow:
        if status in TERMINAL:
            table[status] = set()
        else:
            table[status] = table.get(status, set()) | {S.REJECTED, S.CANCELLED}
    table[S.REJECTED] = set()
    table[S.CANCELLED] = set()
    return {k: frozenset(v) for k, v in table.items()}


TRANSITIONS = {
    OrderType.DINE_IN: _build(_PICKUP_FLOW),
    OrderType.PICKUP: _build(_PICKUP_FLOW),
    OrderType.DELIVERY: _build(_DELIVERY_FLOW),
}


def allowed_targets(order_type: str, current: str) -> frozenset:
    flow = TRANSITIONS.get(order_type)
    if flow is None:
        raise ValueError(f"Unknown order type: {order_type}")
    return flow.get(current, frozenset())


def can_transition(order_type: str, current: str, target: str) -> bool:
    return target in allowed_targets(order_type, current)


def assert_transition(order_type: str, current: str, target: str) -> None:
    if target not in S.values:
        raise InvalidTransition(current, target, f"Unknown status: {target}")
    if not can_transition(order_type, current, target):
        raise InvalidTransition(current, target)


def is_terminal(status: str) -> bool:
    return status in TERMINAL


def restores_stock(current: str, target: str) -> bool:
    return target in (S.REJECTED, S.CANCELLED) and current in STOCK_DEDUCTED


def releases_earning(order_type: str, target: str) -> bool:
    if target == S.COMPLETED:
        return True
    return target == S.DELIVERED and order_type == OrderType.DELIVERY
