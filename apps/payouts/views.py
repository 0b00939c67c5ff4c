from django.contrib.auth.decorators import login_required
from django.http import HttpResponseForbidden, JsonResponse
from django.views.decorators.http import require_GET, require_POST

from apps.common.exceptions import LedgerError
from apps.common.http import error_response, is_admin, read_payload
from apps.earnings.services import balance_for_driver

from . import services
from .models import DriverPayout


def payout_json(payout: DriverPayout) -> dict:
    return {
        "id": str(payout.id),
        "driver_id": str(payout.driver_id),
        "amount": str(payout.amount),
        "payment_method": payout.payment_method,
        "account_details": payout.account_details,
        "status": payout.status,
        "requested_at": payout.requested_at.isoformat(),
        "processed_at": payout.processed_at.isoformat() if payout.processed_at else None,
        "payment_proof_url": payout.payment_proof_url or None,
        "rejection_reason": payout.rejection_reason or None,
    }


@login_required
@require_POST
def request_payout(request):
    driver = getattr(request.user, "driver_profile", None)
    if driver is None:
        return HttpResponseForbidden("drivers only")
    data = read_payload(request)
    try:
        payout = services.request_payout(driver.pk, data.get("payment_method") or "")
    except (LedgerError, ValueError) as e:
        return error_response(e)
    return JsonResponse({"ok": True, "payout": payout_json(payout)})


@login_required
@require_POST
def resolve_payout(request, payout_id):
    if not is_admin(request.user):
        return HttpResponseForbidden("admins only")
    data = read_payload(request)
    try:
        payout = services.resolve_payout(
            payout_id,
            (data.get("decision") or "").strip(),
            request.user,
            proof_url=data.get("proof_url"),
            rejection_reason=data.get("rejection_reason"),
            admin_notes=(data.get("admin_notes") or "").strip(),
        )
    except (LedgerError, ValueError) as e:
        return error_response(e)
    return JsonResponse({"ok": True, "payout": payout_json(payout)})


@login_required
@require_GET
def my_balance(request):
    driver = getattr(request.user, "driver_profile", None)
    if driver is None:
        return HttpResponseForbidden("drivers only")
    bal = balance_for_driver(driver.pk)
    return JsonResponse(
        {
            "ok": True,
            "balance": {
                "pending": str(bal.pending),
                "available": str(bal.available),
                "requested": str(bal.requested),
                "paid": str(bal.paid),
                "total": str(bal.total),
                "total_distance_km": str(bal.total_distance_km),
                "deliveries": bal.deliveries,
            },
        }
    )


@login_required
@require_GET
def stats(request):
    if not is_admin(request.user):
        return HttpResponseForbidden("admins only")
    s = services.payout_stats()
    return JsonResponse(
        {
            "ok": True,
            "stats": {
                "pending_amount": str(s.pending_amount),
                "pending_count": s.pending_count,
                "completed_amount": str(s.completed_amount),
                "pending_earnings": str(s.pending_earnings),
                "available_earnings": str(s.available_earnings),
            },
        }
    )
