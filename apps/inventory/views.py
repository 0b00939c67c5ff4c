from django.contrib.auth.decorators import login_required
from django.http import HttpResponseForbidden, JsonResponse
from django.views.decorators.http import require_GET, require_POST

from apps.common.exceptions import LedgerError
from apps.common.http import error_response, is_admin, read_payload

from . import services
from .services import MANUAL_TYPES


@login_required
@require_POST
def adjust_stock(request, stock_id):
    if not is_admin(request.user):
        return HttpResponseForbidden("admins only")
    data = read_payload(request)
    adjustment_type = data.get("adjustment_type") or ""
    if adjustment_type not in MANUAL_TYPES:
        return error_response(ValueError("adjustment_type must be manual_add or manual_deduct"))
    try:
        quantity = int(data.get("quantity") or 0)
    except (TypeError, ValueError):
        return error_response(ValueError("quantity must be an integer"))
    try:
        adj = services.adjust(stock_id, quantity, adjustment_type, request.user, notes=(data.get("notes") or "").strip())
    except (LedgerError, ValueError) as e:
        return error_response(e)
    return JsonResponse(
        {
            "ok": True,
            "adjustment": {
                "id": str(adj.id),
                "adjustment_type": adj.adjustment_type,
                "quantity_change": adj.quantity_change,
                "previous_quantity": adj.previous_quantity,
                "new_quantity": adj.new_quantity,
            },
        }
    )


@login_required
@require_GET
def low_stock(request):
    if not is_admin(request.user):
        return HttpResponseForbidden("admins only")
    rows = [
        {
            "stock_id": str(s.id),
            "product": s.product.name,
            "current_stock": s.current_stock,
            "low_stock_threshold": s.low_stock_threshold,
        }
        for s in services.low_stock()
    ]
    return JsonResponse({"ok": True, "items": rows})
