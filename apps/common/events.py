from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Optional

from django.db import transaction
from django.dispatch import Signal

log = logging.getLogger(__name__)

ORDER_CREATED = "order.created"
ORDER_STATUS_CHANGED = "order.status_changed"
ORDER_DRIVER_ASSIGNED = "order.driver_assigned"
ORDER_RETURNED = "order.returned"
ORDER_REFUNDED = "order.refunded"
ORDERS_WIPED = "orders.wiped"
STOCK_ADJUSTED = "stock.adjusted"
STOCK_LOW = "stock.low"
EARNING_AVAILABLE = "earning.available"
PAYOUT_REQUESTED = "payout.requested"
PAYOUT_COMPLETED = "payout.completed"
PAYOUT_REJECTED = "payout.rejected"

# Receivers get ``event=LifecycleEvent``; dispatched with send_robust after commit.
lifecycle_event = Signal()


@dataclass(frozen=True)
class LifecycleEvent:
    event_type: str
    order_id: Optional[str] = None
    payout_id: Optional[str] = None
    driver_id: Optional[str] = None
    stock_id: Optional[str] = None
    previous_status: Optional[str] = None
    new_status: Optional[str] = None
    amount: Optional[Decimal] = None
    actor_id: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if self.amount is not None:
            data["amount"] = str(self.amount)
        return {k: v for k, v in data.items() if v not in (None, {})}


def _str_or_none(value) -> Optional[str]:
    return str(value) if value is not None else None


def make_event(event_type: str, **kwargs) -> LifecycleEvent:
    for key in ("order_id", "payout_id", "driver_id", "stock_id", "actor_id"):
        if key in kwargs:
            kwargs[key] = _str_or_none(kwargs[key])
    return LifecycleEvent(event_type=event_type, **kwargs)


def dispatch(event: LifecycleEvent) -> None:
    results = lifecycle_event.send_robust(sender=LifecycleEvent, event=event)
    for receiver, result in results:
        if isinstance(result, Exception):
            log.error(
                "[events] receiver %s failed for %s",
                getattr(receiver, "__qualname__", receiver),
                event.event_type,
                exc_info=(type(result), result, result.__traceback__),
            )


def emit(event_type: str, **kwargs) -> LifecycleEvent:
    """Queue a lifecycle event to be dispatched once the current transaction commits."""
    event = make_event(event_type, **kwargs)

    def _dispatch():
        dispatch(event)

    transaction.on_commit(_dispatch)
    return event
