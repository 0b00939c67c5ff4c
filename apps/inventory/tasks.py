import logging

from celery import shared_task
from django.contrib.auth import get_user_model

from apps.notifications.api import Enqueue, enqueue_many

from .services import low_stock

User = get_user_model()
log = logging.getLogger(__name__)


@shared_task
def low_stock_digest():
    """Email admins the list of enabled stock rows at or under their threshold."""
    rows = list(low_stock())
    if not rows:
        log.info("[inventory] Low stock digest: nothing to report")
        return {"items": 0, "queued": 0}
    lines = [f"{s.product.name}: {s.current_stock} left (threshold {s.low_stock_threshold})" for s in rows]
    recipients = (
        User.objects.filter(role__in=User.ADMIN_ROLES, is_active=True)
        .exclude(email="")
        .values_list("email", flat=True)
    )
    items = [
        Enqueue(
            type="email",
            to=email,
            template_code="low_stock_digest",
            payload={"count": len(rows), "lines": "\n".join(lines)},
        )
        for email in recipients
    ]
    enqueue_many(items)
    log.info("[inventory] Low stock digest queued to %s admins (%s items)", len(items), len(rows))
    return {"items": len(rows), "queued": len(items)}
