"""Turns lifecycle events into queued SMS and email for customers, drivers and admins."""
import logging
from dataclasses import replace

from django.contrib.auth import get_user_model
from django.dispatch import receiver

from apps.common import events
from apps.common.events import LifecycleEvent
from apps.drivers.models import Driver
from apps.orders.models import Order
from apps.orders.states import OrderStatus

from .api import Enqueue, enqueue_many
from .models import Notification

User = get_user_model()
log = logging.getLogger(__name__)

CUSTOMER_MESSAGES = {
    OrderStatus.FOR_VERIFICATION: "we received your payment and are verifying it.",
    OrderStatus.APPROVED: "your order is confirmed!",
    OrderStatus.REJECTED: "sorry, your order could not be accepted. Contact us for details.",
    OrderStatus.CANCELLED: "your order was cancelled.",
    OrderStatus.PREPARING: "your order is being prepared.",
    OrderStatus.READY_FOR_PICKUP: "your order is ready for pickup.",
    OrderStatus.PICKED_UP: "your rider has picked up your order.",
    OrderStatus.IN_TRANSIT: "your order is on the way.",
    OrderStatus.DELIVERED: "your order has been delivered. Enjoy!",
    OrderStatus.COMPLETED: "your order is complete. Thank you!",
}


def _fmt(amount) -> str:
    return f"{amount:,.2f}" if amount is not None else ""


def admin_emails() -> list[str]:
    return list(
        User.objects.filter(role__in=User.ADMIN_ROLES, is_active=True)
        .exclude(email="")
        .values_list("email", flat=True)
    )


def _order(event: LifecycleEvent) -> Order | None:
    if not event.order_id:
        return None
    return Order.objects.filter(pk=event.order_id).select_related("driver").first()


def _driver(event: LifecycleEvent) -> Driver | None:
    if not event.driver_id:
        return None
    return Driver.objects.filter(pk=event.driver_id).first()


def _key(event: LifecycleEvent, channel: str, to: str, ref: str) -> str:
    return f"{event.event_type}:{ref}:{event.new_status or ''}:{channel}:{to}"[:200]


def _order_created(event):
    order = _order(event)
    if order is None:
        return []
    payload = {"order_number": order.order_number, "order_type": order.get_order_type_display(), "amount": _fmt(order.total_amount)}
    items = [
        Enqueue("email", email, "admin_new_order", payload, _key(event, "email", email, order.order_number))
        for email in admin_emails()
    ]
    if order.customer_phone:
        msg = {"order_number": order.order_number, "message": "we received your order and will review it shortly."}
        items.append(Enqueue("sms", order.customer_phone, "order_status", msg, _key(event, "sms", order.customer_phone, order.order_number)))
    return items


def _status_changed(event):
    order = _order(event)
    if order is None:
        return []
    items = []
    message = CUSTOMER_MESSAGES.get(event.new_status)
    if message:
        payload = {
            "order_number": order.order_number,
            "message": message,
            "status_label": order.get_status_display(),
            "name": order.customer_name,
        }
        if order.customer_phone:
            items.append(Enqueue("sms", order.customer_phone, "order_status", payload, _key(event, "sms", order.customer_phone, order.order_number)))
        if order.customer_email:
            items.append(Enqueue("email", order.customer_email, "order_status", payload, _key(event, "email", order.customer_email, order.order_number)))
    if event.new_status == OrderStatus.WAITING_FOR_RIDER and order.driver and order.driver.phone:
        phone = order.driver.phone
        items.append(Enqueue("sms", phone, "driver_order_ready", {"order_number": order.order_number}, _key(event, "sms", phone, order.order_number)))
    return items


def _driver_assigned(event):
    order = _order(event)
    if order is None or order.driver is None or not order.driver.phone:
        return []
    phone = order.driver.phone
    payload = {"order_number": order.order_number, "delivery_fee": _fmt(order.delivery_fee), "address": order.delivery_address}
    return [Enqueue("sms", phone, "driver_assigned", payload, _key(event, "sms", phone, order.order_number))]


def _returned(event):
    d = event.details or {}
    payload = {
        "order_number": d.get("order_number"),
        "driver": d.get("driver"),
        "reason": dict(Order.RETURN_REASON_CHOICES).get(d.get("reason"), d.get("reason")),
        "notes": d.get("notes"),
        "photo_url": d.get("photo_url"),
    }
    return [
        Enqueue("email", email, "admin_order_returned", payload, _key(event, "email", email, event.order_id))
        for email in admin_emails()
    ]


def _refunded(event):
    order = _order(event)
    if order is None or not order.customer_phone:
        return []
    payload = {"order_number": order.order_number, "amount": _fmt(event.amount)}
    return [Enqueue("sms", order.customer_phone, "order_refunded", payload, _key(event, "sms", order.customer_phone, order.order_number))]


def _payout_requested(event):
    d = event.details or {}
    payload = {"driver": d.get("driver"), "amount": _fmt(event.amount), "payment_method": d.get("payment_method")}
    return [
        Enqueue("email", email, "admin_payout_requested", payload, _key(event, "email", email, event.payout_id))
        for email in admin_emails()
    ]


def _payout_resolved(event):
    driver = _driver(event)
    if driver is None:
        return []
    d = event.details or {}
    code = "payout_completed" if event.event_type == events.PAYOUT_COMPLETED else "payout_rejected"
    payload = {
        "driver": driver.name,
        "amount": _fmt(event.amount),
        "payment_method": d.get("payment_method"),
        "reason": d.get("rejection_reason"),
    }
    items = []
    if driver.phone:
        items.append(Enqueue("sms", driver.phone, code, payload, _key(event, "sms", driver.phone, event.payout_id)))
    if driver.email:
        items.append(Enqueue("email", driver.email, code, payload, _key(event, "email", driver.email, event.payout_id)))
    return items


def _stock_low(event):
    d = event.details or {}
    payload = {"product": d.get("product"), "current_stock": d.get("current_stock"), "threshold": d.get("threshold")}
    ref = d.get("adjustment_id") or f"{event.stock_id}:{d.get('current_stock')}"
    return [
        Enqueue("email", email, "low_stock_alert", payload, _key(event, "email", email, ref))
        for email in admin_emails()
    ]


HANDLERS = {
    events.ORDER_CREATED: _order_created,
    events.ORDER_STATUS_CHANGED: _status_changed,
    events.ORDER_DRIVER_ASSIGNED: _driver_assigned,
    events.ORDER_RETURNED: _returned,
    events.ORDER_REFUNDED: _refunded,
    events.PAYOUT_REQUESTED: _payout_requested,
    events.PAYOUT_COMPLETED: _payout_resolved,
    events.PAYOUT_REJECTED: _payout_resolved,
    events.STOCK_LOW: _stock_low,
}


@receiver(events.lifecycle_event)
def queue_notifications(sender, event: LifecycleEvent, **kwargs):
    handler = HANDLERS.get(event.event_type)
    if handler is None:
        return
    reference = event.order_id or event.payout_id or event.stock_id or ""
    items = [replace(it, event_type=event.event_type, reference=reference) for it in handler(event)]
    keys = [it.idempotency_key for it in items if it.idempotency_key]
    known = set(Notification.objects.filter(idempotency_key__in=keys).values_list("idempotency_key", flat=True))
    new = [n for n in enqueue_many(items) if n.idempotency_key not in known]
    if new:
        log.info("[notifications] %s queued %s message(s)", event.event_type, len(new))
