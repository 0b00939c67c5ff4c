from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from django.conf import settings
from django.core.cache import cache
from django.db import IntegrityError, transaction
from django.utils import timezone

from .models import Notification
from .tasks import send_notification

log = logging.getLogger(__name__)


def _throttled(type: str, to: str) -> bool:
    """Per-destination cap per hour, counted in the shared cache."""
    caps = getattr(settings, "NOTIFICATIONS_HOURLY_CAP", {"sms": 30, "email": 100})
    cap = int(caps.get(type, 0) or 0)
    if not cap:
        return False
    key = f"notif:hour:{type}:{to}:{timezone.now():%Y%m%d%H}"
    cache.add(key, 0, timeout=3600)
    try:
        count = cache.incr(key)
    except ValueError:
        cache.set(key, 1, timeout=3600)
        count = 1
    return count > cap


def enqueue(
    *,
    type: str,
    to: str,
    template_code: str,
    payload: dict,
    idempotency_key: Optional[str] = None,
    event_type: str = "",
    reference: str = "",
) -> Notification | None:
    """Queue one message for delivery after commit.

    Returns the existing row for a repeated ``idempotency_key`` and None when the
    destination is over its hourly cap.
    """
    if idempotency_key:
        existing = Notification.objects.filter(idempotency_key=idempotency_key).first()
        if existing:
            return existing
    if _throttled(type, to):
        log.warning("[notifications] Hourly cap reached for %s %s; dropping %s", type, to, template_code)
        return None
    n = Notification(
        type=type,
        to=to,
        template_code=template_code,
        payload_json=payload or {},
        event_type=event_type,
        reference=str(reference or "")[:64],
        status="queued",
        idempotency_key=idempotency_key or None,
    )
    try:
        with transaction.atomic():
            n.save()
    except IntegrityError:
        # lost a race on idempotency_key
        return Notification.objects.filter(idempotency_key=idempotency_key).first()

    def _dispatch():
        send_notification.delay(str(n.id))

    try:
        transaction.on_commit(_dispatch)
    except Exception:
        _dispatch()
    return n


@dataclass
class Enqueue:
    type: str
    to: str
    template_code: str
    payload: dict
    idempotency_key: Optional[str] = None
    event_type: str = ""
    reference: str = ""


def enqueue_many(items: Iterable[Optional[Enqueue]]) -> list[Notification]:
    out = []
    for it in items:
        if not it or not it.to:
            continue
        n = enqueue(
            type=it.type,
            to=it.to,
            template_code=it.template_code,
            payload=it.payload,
            idempotency_key=it.idempotency_key,
            event_type=it.event_type,
            reference=it.reference,
        )
        if n is not None:
            out.append(n)
    return out
