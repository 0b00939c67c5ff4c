import logging

from django.db import transaction
from django.db.models import F, Sum

from apps.common import events
from apps.common.config import FulfillmentConfig, resolve
from apps.common.exceptions import InsufficientStock, NotFound

from .models import Product, Stock, StockAdjustment

log = logging.getLogger(__name__)

MANUAL_TYPES = {StockAdjustment.TYPE_MANUAL_ADD, StockAdjustment.TYPE_MANUAL_DEDUCT}
ORDER_TYPES = {StockAdjustment.TYPE_ORDER_APPROVED, StockAdjustment.TYPE_ORDER_CANCELLED}


def _signed_change(delta: int, adjustment_type: str) -> int:
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise ValueError("delta must be an integer")
    if adjustment_type in MANUAL_TYPES:
        if delta <= 0:
            raise ValueError("Manual adjustments require a positive quantity")
        return delta if adjustment_type == StockAdjustment.TYPE_MANUAL_ADD else -delta
    if adjustment_type in ORDER_TYPES:
        if delta == 0:
            raise ValueError("Order adjustments require a non-zero quantity")
        return delta
    raise ValueError(f"Unknown adjustment type: {adjustment_type}")


@transaction.atomic
def adjust(stock_id, delta: int, adjustment_type: str, actor=None, *, notes: str = "", order=None) -> StockAdjustment:
    """Apply one quantity change to a Stock row and record it.

    Manual types take a positive ``delta`` and imply the sign; order types take
    a signed ``delta``. Raises ``InsufficientStock`` instead of going below zero.
    """
    change = _signed_change(delta, adjustment_type)
    try:
        stock = Stock.objects.select_for_update().select_related("product").get(pk=stock_id)
    except (Stock.DoesNotExist, ValueError):
        raise NotFound(f"Stock {stock_id} not found")

    previous = stock.current_stock
    new = previous + change
    if new < 0:
        log.warning(
            "[inventory] Rejected %s of %s on stock=%s (current=%s)",
            adjustment_type, change, stock.pk, previous,
        )
        raise InsufficientStock(stock.pk, previous, -change)

    stock.current_stock = new
    stock.save(update_fields=["current_stock", "updated_at"])
    adjustment = StockAdjustment.objects.create(
        stock=stock,
        product=stock.product,
        adjustment_type=adjustment_type,
        quantity_change=change,
        previous_quantity=previous,
        new_quantity=new,
        adjusted_by=actor if getattr(actor, "pk", None) else None,
        order=order,
        notes=notes or "",
    )
    log.info(
        "[inventory] %s stock=%s %s -> %s (change=%s)",
        adjustment_type, stock.pk, previous, new, change,
    )
    actor_id = getattr(actor, "pk", None)
    order_id = getattr(order, "pk", None)
    events.emit(
        events.STOCK_ADJUSTED,
        stock_id=stock.pk,
        order_id=order_id,
        actor_id=actor_id,
        details={
            "product": stock.product.name,
            "adjustment_type": adjustment_type,
            "quantity_change": change,
            "previous_quantity": previous,
            "new_quantity": new,
        },
    )
    if previous > stock.low_stock_threshold >= new:
        events.emit(
            events.STOCK_LOW,
            stock_id=stock.pk,
            order_id=order_id,
            details={
                "product": stock.product.name,
                "adjustment_id": str(adjustment.pk),
                "current_stock": new,
                "threshold": stock.low_stock_threshold,
            },
        )
    return adjustment


def tracked_quantities(order) -> list[tuple]:
    """(stock_id, quantity) pairs for the order's stock-tracked items, sorted by stock id.

    Items whose product has stock disabled, is of the unlimited type, or has no
    enabled Stock row are left out.
    """
    rows = (
        order.items.filter(
            product__isnull=False,
            product__stock_enabled=True,
            product__stock__is_enabled=True,
        )
        .exclude(product__product_type=Product.TYPE_UNLIMITED)
        .values("product__stock__id")
        .annotate(qty=Sum("quantity"))
    )
    pairs = [(row["product__stock__id"], row["qty"]) for row in rows if row["qty"]]
    return sorted(pairs, key=lambda p: str(p[0]))


@transaction.atomic
def deduct_for_order(order, actor=None) -> list[StockAdjustment]:
    adjustments = []
    for stock_id, qty in tracked_quantities(order):
        adjustments.append(
            adjust(
                stock_id,
                -qty,
                StockAdjustment.TYPE_ORDER_APPROVED,
                actor,
                notes=f"Order {order.order_number} approved",
                order=order,
            )
        )
    return adjustments


@transaction.atomic
def restore_for_order(order, actor=None, *, reason: str = "cancelled") -> list[StockAdjustment]:
    """Give back whatever the order's approval took, net of earlier restores."""
    rows = (
        StockAdjustment.objects.filter(order=order, adjustment_type__in=ORDER_TYPES)
        .values("stock_id")
        .annotate(net=Sum("quantity_change"))
        .order_by("stock_id")
    )
    adjustments = []
    for row in rows:
        if row["net"] >= 0:
            continue
        adjustments.append(
            adjust(
                row["stock_id"],
                -row["net"],
                StockAdjustment.TYPE_ORDER_CANCELLED,
                actor,
                notes=f"Order {order.order_number} {reason}",
                order=order,
            )
        )
    return adjustments


def ensure_stock(product: Product, *, threshold: int | None = None, config: FulfillmentConfig | None = None) -> Stock:
    cfg = resolve(config)
    stock, created = Stock.objects.get_or_create(
        product=product,
        defaults={"low_stock_threshold": threshold if threshold is not None else cfg.default_low_stock_threshold},
    )
    if created:
        log.info("[inventory] Created stock row for product=%s", product.pk)
    return stock


def low_stock():
    return (
        Stock.objects.filter(is_enabled=True, current_stock__lte=F("low_stock_threshold"))
        .select_related("product")
        .order_by("current_stock", "product__name")
    )
