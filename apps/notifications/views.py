import base64
import hashlib
import hmac
import logging
import os

from django.conf import settings
from django.http import HttpResponse, HttpResponseForbidden
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from .models import Notification

log = logging.getLogger(__name__)

FAILED_RECEIPTS = {"failed", "undelivered"}


def _signature_ok(request) -> bool:
    token = os.getenv("TWILIO_AUTH_TOKEN", "")
    if not token:
        return False
    # full callback URL followed by the sorted form params
    signed = request.build_absolute_uri() + "".join(k + v for k, v in sorted(request.POST.items()))
    digest = hmac.new(token.encode(), signed.encode(), hashlib.sha1).digest()
    return hmac.compare_digest(request.headers.get("X-Twilio-Signature", ""), base64.b64encode(digest).decode())


@csrf_exempt
@require_POST
def twilio_sms_status(request):
    """Delivery receipts for order and payout SMS sent through Twilio."""
    if not settings.DEBUG and not _signature_ok(request):
        return HttpResponseForbidden("invalid signature")
    sid = request.POST.get("MessageSid") or request.POST.get("SmsSid")
    receipt = (request.POST.get("MessageStatus") or "").lower()
    n = Notification.objects.filter(provider="twilio", provider_message_id=sid).first() if sid else None
    if n is None:
        return HttpResponse("ok")
    if receipt == "delivered":
        n.mark_delivered()
    elif receipt in FAILED_RECEIPTS:
        n.mark_failed(error_code=request.POST.get("ErrorCode"), error_message=request.POST.get("ErrorMessage") or "")
        log.warning("[notifications] %s for %s (%s %s)", receipt, n.reference or n.id, n.event_type, n.template_code)
    return HttpResponse("ok")
