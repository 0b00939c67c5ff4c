import json
import logging
import os

import requests
from celery import shared_task
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import transaction
from django.template import Context
from django.template import Template as DjTemplate
from django.utils import timezone

from apps.common.phone import to_e164

from .models import Notification, NotificationAttempt, Template

log = logging.getLogger(__name__)


class TransientError(Exception):
    pass


DEFAULTS = {
    ("sms", "order_status"): {"body_txt": "{{ order_number }}: {{ message }}"},
    ("email", "order_status"): {
        "subject": "Order {{ order_number }}: {{ status_label }}",
        "body_txt": "Hi{% if name %} {{ name }}{% endif %}, {{ message }}",
        "body_html": "<p>Hi{% if name %} {{ name }}{% endif %},</p><p>{{ message }}</p>",
    },
    ("sms", "driver_assigned"): {
        "body_txt": "New delivery {{ order_number }} assigned to you. Fee: ₱{{ delivery_fee }}.{% if address %} Drop-off: {{ address }}{% endif %}",
    },
    ("sms", "driver_order_ready"): {"body_txt": "Order {{ order_number }} is ready for pickup."},
    ("sms", "order_refunded"): {"body_txt": "{{ order_number }}: a refund of ₱{{ amount }} has been processed."},
    ("email", "admin_new_order"): {
        "subject": "New order {{ order_number }} (₱{{ amount }})",
        "body_txt": "New {{ order_type }} order {{ order_number }} for ₱{{ amount }}.",
    },
    ("email", "admin_order_returned"): {
        "subject": "Order {{ order_number }} returned by {{ driver }}",
        "body_txt": "{{ driver }} returned order {{ order_number }}. Reason: {{ reason }}.{% if notes %} Notes: {{ notes }}{% endif %}{% if photo_url %} Photo: {{ photo_url }}{% endif %}",
    },
    ("email", "admin_payout_requested"): {
        "subject": "Payout request from {{ driver }} (₱{{ amount }})",
        "body_txt": "{{ driver }} requested a payout of ₱{{ amount }} via {{ payment_method }}.",
    },
    ("sms", "payout_completed"): {"body_txt": "Your payout of ₱{{ amount }} has been sent via {{ payment_method }}."},
    ("sms", "payout_rejected"): {"body_txt": "Your payout request of ₱{{ amount }} was rejected: {{ reason }}. Your earnings are available again."},
    ("email", "payout_completed"): {
        "subject": "Payout of ₱{{ amount }} sent",
        "body_txt": "Hi {{ driver }}, your payout of ₱{{ amount }} has been sent via {{ payment_method }}.",
    },
    ("email", "payout_rejected"): {
        "subject": "Payout request rejected",
        "body_txt": "Hi {{ driver }}, your payout request of ₱{{ amount }} was rejected: {{ reason }}. Your earnings are available again.",
    },
    ("email", "low_stock_alert"): {
        "subject": "Low stock: {{ product }}",
        "body_txt": "{{ product }} is down to {{ current_stock }} (threshold {{ threshold }}).",
    },
    ("email", "low_stock_digest"): {
        "subject": "{{ count }} product(s) low on stock",
        "body_txt": "{{ lines }}",
    },
}


def render_template(code: str, channel: str, payload: dict) -> dict:
    """Render a stored Template, falling back to the built-in default for empty parts."""
    stored = Template.objects.filter(code=code, channel=channel).first()
    default = DEFAULTS.get((channel, code), {})
    ctx = Context(payload or {})

    def _part(name):
        src = getattr(stored, name, "") if stored else ""
        out = DjTemplate(src).render(ctx) if src else ""
        if not out.strip():
            out = DjTemplate(default.get(name, "")).render(ctx)
        return out

    if channel == "sms":
        return {"text": _part("body_txt")}
    return {"subject": _part("subject"), "text": _part("body_txt"), "html": _part("body_html")}


def _twilio_send_sms(to_number: str, body: str) -> dict:
    sid = os.getenv("TWILIO_ACCOUNT_SID", "")
    tok = os.getenv("TWILIO_AUTH_TOKEN", "")
    from_num = os.getenv("TWILIO_SMS_FROM", "")
    if not (sid and tok and from_num):
        raise TransientError("Twilio not configured")
    url = f"https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
    resp = requests.post(url, data={"From": from_num, "To": to_number, "Body": body[:1500]}, auth=(sid, tok), timeout=20)
    if resp.status_code >= 500 or resp.status_code == 429:
        raise TransientError(f"Twilio {resp.status_code}")
    if resp.status_code >= 400:
        raise Exception(f"Twilio 4xx: {resp.text}")
    j = resp.json()
    return {"id": j.get("sid"), "raw": j}


def _sendgrid_send_email(to_email: str, subject: str, text: str, html: str) -> dict:
    api_key = os.getenv("SENDGRID_API_KEY", "")
    from_email = os.getenv("SENDGRID_FROM_EMAIL", "")
    from_name = os.getenv("SENDGRID_FROM_NAME", "") or "Orders"
    if not (api_key and from_email):
        raise TransientError("SendGrid not configured")
    content = [{"type": "text/plain", "value": text or ""}]
    if html:
        content.append({"type": "text/html", "value": html})
    body = {
        "personalizations": [{"to": [{"email": to_email}]}],
        "from": {"email": from_email, "name": from_name},
        "subject": subject or "",
        "content": content,
    }
    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
    resp = requests.post("https://api.sendgrid.com/v3/mail/send", headers=headers, data=json.dumps(body), timeout=20)
    if resp.status_code >= 500 or resp.status_code == 429:
        raise TransientError(f"SendGrid {resp.status_code}")
    if resp.status_code >= 400:
        raise Exception(f"SendGrid 4xx: {resp.text}")
    return {"id": resp.headers.get("X-Message-Id") or "", "raw_headers": dict(resp.headers)}


def _prepare(n: Notification) -> tuple[str, dict]:
    if n.type == "sms":
        return to_e164(n.to), render_template(n.template_code, "sms", n.payload_json)
    if n.type == "email":
        try:
            validate_email(n.to)
        except ValidationError:
            raise ValueError("invalid email")
        return n.to, render_template(n.template_code, "email", n.payload_json)
    raise ValueError("invalid type")


def _send(n: Notification, to: str, rendered: dict) -> tuple[str, dict]:
    if getattr(settings, "NOTIFICATIONS_DEV_MODE", True):
        log.info("DEV NOTIF [%s] to %s template=%s body=%r", n.type, to, n.template_code, rendered.get("text"))
        return "dev", {"id": "DEV", "dev": True}
    if n.type == "sms":
        return "twilio", _twilio_send_sms(to, rendered.get("text") or "")
    return "sendgrid", _sendgrid_send_email(to, rendered.get("subject"), rendered.get("text"), rendered.get("html"))


@shared_task(bind=True, max_retries=5, autoretry_for=(TransientError,), retry_backoff=True, retry_backoff_max=3600)
def send_notification(self, notification_id: str):
    with transaction.atomic():
        n = Notification.objects.select_for_update().filter(id=notification_id).first()
        if n is None:
            log.warning("Notification %s not found", notification_id)
            return
        if n.status not in ("queued", "processing"):
            return
        n.status = "processing"
        n.attempts = (n.attempts or 0) + 1
        n.save(update_fields=["status", "attempts", "updated_at"])

    attempt = NotificationAttempt(notification=n, started_at=timezone.now())
    try:
        to, rendered = _prepare(n)
        provider, resp = _send(n, to, rendered)
    except TransientError as te:
        attempt.result = "error"
        attempt.error_message = str(te)
        attempt.finished_at = timezone.now()
        attempt.save()
        raise
    except Exception as e:
        log.warning("[notifications] %s failed permanently: %s", n.id, e)
        n.mark_failed(error_message=str(e))
        attempt.result = "error"
        attempt.error_message = str(e)
        attempt.finished_at = timezone.now()
        attempt.save()
        return

    now = timezone.now()
    n.provider = provider
    n.provider_message_id = resp.get("id") or ""
    n.status = "sent"
    n.sent_at = now
    if provider == "dev":
        n.delivered_at = now
    n.save()
    attempt.result = "ok"
    attempt.provider_response_json = {k: v for k, v in resp.items() if k != "id"}
    attempt.finished_at = now
    attempt.save()
