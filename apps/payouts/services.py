import logging
from dataclasses import dataclass
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from apps.common import events
from apps.common.config import FulfillmentConfig, resolve
from apps.common.exceptions import InvalidState, NoFundsAvailable, NotFound
from apps.drivers.models import Driver, DriverPaymentInfo
from apps.earnings import services as earnings
from apps.earnings.models import DriverEarning

from .models import DriverPayout

log = logging.getLogger(__name__)

ZERO = Decimal("0.00")
DECISION_COMPLETE = "complete"
DECISION_REJECT = "reject"


@dataclass(frozen=True)
class PayoutStats:
    pending_amount: Decimal
    pending_count: int
    completed_amount: Decimal
    pending_earnings: Decimal
    available_earnings: Decimal


def _payment_info(driver: Driver, payment_method) -> DriverPaymentInfo:
    qs = DriverPaymentInfo.objects.filter(driver=driver)
    codes = {code for code, _ in DriverPaymentInfo.METHOD_CHOICES}
    try:
        if payment_method in codes:
            return qs.get(payment_method=payment_method)
        return qs.get(pk=payment_method)
    except (DriverPaymentInfo.DoesNotExist, ValidationError, ValueError):
        raise NotFound(f"Payment method {payment_method} not found for driver {driver.pk}")


@transaction.atomic
def request_payout(driver_id, payment_method, *, config: FulfillmentConfig | None = None) -> DriverPayout:
    """Lock every available earning of the driver into one new pending payout."""
    cfg = resolve(config)
    try:
        driver = Driver.objects.select_for_update().get(pk=driver_id)
    except (Driver.DoesNotExist, ValidationError, ValueError):
        raise NotFound(f"Driver {driver_id} not found")
    info = _payment_info(driver, payment_method)

    if DriverPayout.objects.filter(driver=driver, status=DriverPayout.STATUS_PENDING).exists():
        log.warning("[payouts] Driver %s already has a pending payout", driver.pk)
        raise InvalidState("A payout request is already pending for this driver")

    locked = earnings.lock_available(driver.pk)
    total = sum((e.delivery_fee for e in locked), ZERO)
    if total <= ZERO:
        raise NoFundsAvailable("No available earnings to request")
    if total < cfg.min_payout_amount:
        raise NoFundsAvailable(f"Minimum payout is {cfg.min_payout_amount}; available is {total}")

    try:
        with transaction.atomic():
            payout = DriverPayout.objects.create(
                driver=driver,
                amount=total,
                payment_method=info.payment_method,
                account_details=info.snapshot(),
                status=DriverPayout.STATUS_PENDING,
            )
    except IntegrityError:
        raise InvalidState("A payout request is already pending for this driver")

    flipped = earnings.mark_requested(locked, payout)
    log.info(
        "[payouts] Payout %s requested by driver=%s amount=%s earnings=%s",
        payout.pk, driver.pk, total, flipped,
    )
    events.emit(
        events.PAYOUT_REQUESTED,
        payout_id=payout.pk,
        driver_id=driver.pk,
        new_status=payout.status,
        amount=payout.amount,
        details={"payment_method": payout.payment_method, "earnings": flipped, "driver": driver.name},
    )
    return payout


@transaction.atomic
def resolve_payout(
    payout_id,
    decision: str,
    actor=None,
    *,
    proof_url: str | None = None,
    rejection_reason: str | None = None,
    admin_notes: str = "",
) -> DriverPayout:
    """Complete or reject a pending payout and reconcile the earnings bound to it."""
    if decision not in (DECISION_COMPLETE, DECISION_REJECT):
        raise ValueError(f"Unknown payout decision: {decision}")
    proof_url = (proof_url or "").strip()
    rejection_reason = (rejection_reason or "").strip()
    if decision == DECISION_COMPLETE and not proof_url:
        raise ValueError("Payment proof is required to complete a payout")
    if decision == DECISION_REJECT and not rejection_reason:
        raise ValueError("A rejection reason is required")

    try:
        payout = DriverPayout.objects.select_for_update().select_related("driver").get(pk=payout_id)
    except (DriverPayout.DoesNotExist, ValidationError, ValueError):
        raise NotFound(f"Payout {payout_id} not found")
    if payout.status != DriverPayout.STATUS_PENDING:
        log.warning("[payouts] Payout %s already %s", payout.pk, payout.status)
        raise InvalidState(f"Payout is already {payout.status}")

    payout.processed_at = timezone.now()
    payout.processed_by = actor if getattr(actor, "pk", None) else None
    payout.admin_notes = admin_notes or ""
    fields = ["status", "processed_at", "processed_by", "admin_notes", "updated_at"]
    if decision == DECISION_COMPLETE:
        payout.status = DriverPayout.STATUS_COMPLETED
        payout.payment_proof_url = proof_url
        payout.save(update_fields=fields + ["payment_proof_url"])
        count = earnings.settle(payout)
        event_type = events.PAYOUT_COMPLETED
    else:
        payout.status = DriverPayout.STATUS_REJECTED
        payout.rejection_reason = rejection_reason
        payout.save(update_fields=fields + ["rejection_reason"])
        count = earnings.unlock(payout)
        event_type = events.PAYOUT_REJECTED

    log.info("[payouts] Payout %s %s by %s (earnings=%s)", payout.pk, payout.status, getattr(actor, "pk", None), count)
    details = {"payment_method": payout.payment_method, "earnings": count, "driver": payout.driver.name}
    if rejection_reason:
        details["rejection_reason"] = rejection_reason
    events.emit(
        event_type,
        payout_id=payout.pk,
        driver_id=payout.driver_id,
        previous_status=DriverPayout.STATUS_PENDING,
        new_status=payout.status,
        amount=payout.amount,
        actor_id=getattr(actor, "pk", None),
        details=details,
    )
    return payout


def payout_stats() -> PayoutStats:
    payouts = DriverPayout.objects.aggregate(
        pending_amount=Sum("amount", filter=Q(status=DriverPayout.STATUS_PENDING)),
        pending_count=Count("id", filter=Q(status=DriverPayout.STATUS_PENDING)),
        completed_amount=Sum("amount", filter=Q(status=DriverPayout.STATUS_COMPLETED)),
    )
    ledger = DriverEarning.objects.aggregate(
        pending=Sum("delivery_fee", filter=Q(status=DriverEarning.STATUS_PENDING)),
        available=Sum("delivery_fee", filter=Q(status=DriverEarning.STATUS_AVAILABLE)),
    )
    return PayoutStats(
        pending_amount=payouts["pending_amount"] or ZERO,
        pending_count=payouts["pending_count"] or 0,
        completed_amount=payouts["completed_amount"] or ZERO,
        pending_earnings=ledger["pending"] or ZERO,
        available_earnings=ledger["available"] or ZERO,
    )
