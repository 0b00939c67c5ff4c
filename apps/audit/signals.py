import logging

from django.contrib.auth import get_user_model
from django.dispatch import receiver

from apps.common import events
from apps.common.events import LifecycleEvent

from .models import AdminLog

User = get_user_model()
log = logging.getLogger(__name__)


def _entity(event: LifecycleEvent) -> tuple[str, str, str]:
    details = event.details or {}
    if event.event_type.startswith("payout."):
        return "payout", event.payout_id or "", details.get("driver") or ""
    if event.event_type.startswith("stock."):
        return "stock", event.stock_id or "", details.get("product") or ""
    if event.event_type == events.ORDERS_WIPED:
        return "order", "", "all orders"
    return "order", event.order_id or "", details.get("order_number") or ""


@receiver(events.lifecycle_event)
def write_admin_log(sender, event: LifecycleEvent, **kwargs):
    entity_type, entity_id, entity_name = _entity(event)
    old_values = {"status": event.previous_status} if event.previous_status else None
    new_values = {}
    if event.new_status:
        new_values["status"] = event.new_status
    if event.amount is not None:
        new_values["amount"] = str(event.amount)
    user = None
    if event.actor_id:
        user = User.objects.filter(pk=event.actor_id).first()
    AdminLog.objects.create(
        user=user,
        user_email=getattr(user, "email", "") or "",
        action=event.event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        entity_name=entity_name[:200],
        old_values=old_values,
        new_values=new_values or None,
        details=event.as_dict(),
    )
    log.debug("[audit] %s %s:%s", event.event_type, entity_type, entity_id)
