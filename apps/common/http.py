import json
import logging

from django.http import JsonResponse

from .exceptions import (
    InsufficientStock,
    InvalidState,
    InvalidTransition,
    LedgerError,
    NoFundsAvailable,
    NotFound,
)

log = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (NotFound, 404),
    (InvalidTransition, 409),
    (InvalidState, 409),
    (InsufficientStock, 409),
    (NoFundsAvailable, 422),
)


def error_response(exc: Exception) -> JsonResponse:
    status = 400
    for cls, code in _STATUS_BY_ERROR:
        if isinstance(exc, cls):
            status = code
            break
    kind = type(exc).__name__ if isinstance(exc, LedgerError) else "ValueError"
    return JsonResponse({"ok": False, "error": kind, "message": str(exc)}, status=status)


def read_payload(request) -> dict:
    """Accept either a JSON body or form-encoded POST data."""
    if request.content_type == "application/json":
        try:
            data = json.loads(request.body or b"{}")
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
    return request.POST.dict()


def is_admin(user) -> bool:
    return bool(getattr(user, "is_authenticated", False) and (user.is_superuser or getattr(user, "is_admin", False)))
