from django.contrib.auth.decorators import login_required
from django.http import HttpResponseForbidden, JsonResponse
from django.views.decorators.http import require_POST

from apps.common.exceptions import LedgerError
from apps.common.http import error_response, is_admin, read_payload

from . import services
from .models import Order
from .states import OrderStatus

# Statuses a driver may set on an order assigned to them.
DRIVER_STATUSES = {OrderStatus.PICKED_UP, OrderStatus.IN_TRANSIT, OrderStatus.DELIVERED}


def _driver_for(user):
    return getattr(user, "driver_profile", None)


def order_json(order: Order) -> dict:
    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "order_type": order.order_type,
        "status": order.status,
        "status_changed_at": order.status_changed_at.isoformat(),
        "subtotal": str(order.subtotal),
        "delivery_fee": str(order.delivery_fee),
        "total_amount": str(order.total_amount),
        "driver_id": str(order.driver_id) if order.driver_id else None,
        "is_refunded": order.is_refunded,
    }


@login_required
@require_POST
def update_status(request, order_id):
    data = read_payload(request)
    status = (data.get("status") or "").strip()
    if not is_admin(request.user):
        driver = _driver_for(request.user)
        owns = driver is not None and Order.objects.filter(pk=order_id, driver=driver).exists()
        if not owns or status not in DRIVER_STATUSES:
            return HttpResponseForbidden("not allowed")
    source = "admin" if is_admin(request.user) else "driver"
    try:
        order = services.transition(order_id, status, request.user, source=source, note=data.get("note") or "")
    except (LedgerError, ValueError) as e:
        return error_response(e)
    return JsonResponse({"ok": True, "order": order_json(order)})


@login_required
@require_POST
def assign_driver(request, order_id):
    if not is_admin(request.user):
        return HttpResponseForbidden("admins only")
    data = read_payload(request)
    driver_id = data.get("driver_id") or None
    try:
        order = services.assign_driver(order_id, driver_id, request.user)
    except (LedgerError, ValueError) as e:
        return error_response(e)
    return JsonResponse({"ok": True, "order": order_json(order)})


@login_required
@require_POST
def return_order(request, order_id):
    driver = _driver_for(request.user)
    if driver is None:
        return HttpResponseForbidden("drivers only")
    data = read_payload(request)
    try:
        order = services.return_to_sender(
            order_id,
            driver.pk,
            (data.get("reason") or "").strip(),
            notes=(data.get("notes") or "").strip(),
            photo_url=(data.get("photo_url") or "").strip(),
        )
    except (LedgerError, ValueError) as e:
        return error_response(e)
    return JsonResponse({"ok": True, "order": order_json(order)})


@login_required
@require_POST
def refund(request, order_id):
    if not is_admin(request.user):
        return HttpResponseForbidden("admins only")
    data = read_payload(request)
    try:
        order = services.record_refund(
            order_id,
            request.user,
            reason=data.get("reason") or "",
            amount=data.get("amount"),
            proof_url=(data.get("proof_url") or "").strip(),
        )
    except (LedgerError, ValueError) as e:
        return error_response(e)
    return JsonResponse({"ok": True, "order": order_json(order)})
