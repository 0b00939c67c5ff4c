import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from apps.common import events
from apps.common.exceptions import NotFound

from .models import DriverEarning

log = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class EarningsBalance:
    pending: Decimal
    available: Decimal
    requested: Decimal
    paid: Decimal
    total: Decimal
    total_distance_km: Decimal
    deliveries: int


def _flip(qs, status: str, **extra) -> int:
    return qs.update(status=status, updated_at=timezone.now(), **extra)


@transaction.atomic
def open_for_assignment(order, driver) -> DriverEarning | None:
    """Create the pending earning for a newly assigned driver.

    A still-pending earning follows the order to its new driver; an earning
    already past pending is left alone.
    """
    earning = DriverEarning.objects.select_for_update().filter(order=order).first()
    if earning is None:
        earning = DriverEarning.objects.create(
            driver=driver,
            order=order,
            delivery_fee=order.delivery_fee,
            distance_km=order.delivery_distance_km,
            status=DriverEarning.STATUS_PENDING,
        )
        log.info("[earnings] Pending earning %s for driver=%s order=%s", earning.pk, driver.pk, order.pk)
        return earning
    if earning.status != DriverEarning.STATUS_PENDING or earning.driver_id == driver.pk:
        return earning
    previous = earning.driver_id
    earning.driver = driver
    earning.save(update_fields=["driver", "updated_at"])
    log.info("[earnings] Moved pending earning %s from driver=%s to driver=%s", earning.pk, previous, driver.pk)
    return earning


def discard_pending(order) -> int:
    deleted, _ = DriverEarning.objects.filter(order=order, status=DriverEarning.STATUS_PENDING).delete()
    if deleted:
        log.info("[earnings] Discarded pending earning for order=%s", order.pk)
    return deleted


@transaction.atomic
def release_for_order(order) -> DriverEarning | None:
    """Make the order's earning available once the delivery is done.

    Creates the earning when assignment did not, using the order's stored fee.
    Returns None when no driver is assigned.
    """
    if not order.driver_id:
        return None
    earning = DriverEarning.objects.select_for_update().filter(order=order).first()
    now = timezone.now()
    if earning is None:
        earning = DriverEarning.objects.create(
            driver_id=order.driver_id,
            order=order,
            delivery_fee=order.delivery_fee,
            distance_km=order.delivery_distance_km,
            status=DriverEarning.STATUS_AVAILABLE,
            available_at=now,
        )
    elif earning.status == DriverEarning.STATUS_PENDING:
        earning.status = DriverEarning.STATUS_AVAILABLE
        earning.available_at = now
        earning.save(update_fields=["status", "available_at", "updated_at"])
    else:
        return earning
    log.info(
        "[earnings] Earning %s available for driver=%s amount=%s",
        earning.pk, earning.driver_id, earning.delivery_fee,
    )
    events.emit(
        events.EARNING_AVAILABLE,
        order_id=order.pk,
        driver_id=earning.driver_id,
        amount=earning.delivery_fee,
        details={"order_number": order.order_number},
    )
    return earning


def lock_available(driver_id) -> list[DriverEarning]:
    """Row-lock and return the driver's available earnings. Call inside a transaction."""
    return list(
        DriverEarning.objects.select_for_update()
        .filter(driver_id=driver_id, status=DriverEarning.STATUS_AVAILABLE)
        .order_by("created_at", "id")
    )


def mark_requested(earnings, payout) -> int:
    ids = [e.pk for e in earnings]
    return _flip(
        DriverEarning.objects.filter(pk__in=ids, status=DriverEarning.STATUS_AVAILABLE),
        DriverEarning.STATUS_REQUESTED,
        payout=payout,
    )


def settle(payout) -> int:
    return _flip(
        DriverEarning.objects.filter(payout=payout, status=DriverEarning.STATUS_REQUESTED),
        DriverEarning.STATUS_PAID,
    )


def unlock(payout) -> int:
    return _flip(
        DriverEarning.objects.filter(payout=payout, status=DriverEarning.STATUS_REQUESTED),
        DriverEarning.STATUS_AVAILABLE,
        payout=None,
    )


def earnings_for_driver(driver_id, *, status: str | None = None):
    qs = DriverEarning.objects.filter(driver_id=driver_id).select_related("order").order_by("-created_at")
    if status:
        qs = qs.filter(status=status)
    return qs


def balance_for_driver(driver_id) -> EarningsBalance:
    from apps.drivers.models import Driver

    if not Driver.objects.filter(pk=driver_id).exists():
        raise NotFound(f"Driver {driver_id} not found")

    def _sum(status):
        return Sum("delivery_fee", filter=Q(status=status))

    agg = DriverEarning.objects.filter(driver_id=driver_id).aggregate(
        pending=_sum(DriverEarning.STATUS_PENDING),
        available=_sum(DriverEarning.STATUS_AVAILABLE),
        requested=_sum(DriverEarning.STATUS_REQUESTED),
        paid=_sum(DriverEarning.STATUS_PAID),
        distance=Sum("distance_km", filter=~Q(status=DriverEarning.STATUS_PENDING)),
        deliveries=Count("id", filter=~Q(status=DriverEarning.STATUS_PENDING)),
    )
    pending = agg["pending"] or ZERO
    available = agg["available"] or ZERO
    requested = agg["requested"] or ZERO
    paid = agg["paid"] or ZERO
    return EarningsBalance(
        pending=pending,
        available=available,
        requested=requested,
        paid=paid,
        total=available + requested + paid,
        total_distance_km=agg["distance"] or ZERO,
        deliveries=agg["deliveries"] or 0,
    )
