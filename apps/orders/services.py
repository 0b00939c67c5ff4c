import logging
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from apps.common import events
from apps.common.codes import next_order_number
from apps.common.config import FulfillmentConfig, resolve
from apps.common.exceptions import InvalidState, InvalidTransition, NotFound
from apps.drivers.models import Driver
from apps.earnings import services as earnings
from apps.earnings.models import DriverEarning
from apps.inventory import services as inventory
from apps.inventory.models import Product, StockAdjustment
from apps.payouts.models import DriverPayout

from .models import Customer, Order, OrderItem, OrderStatusChange
from .states import ASSIGNABLE, OrderStatus, OrderType, assert_transition, releases_earning, restores_stock

log = logging.getLogger(__name__)

ZERO = Decimal("0.00")
CENTS = Decimal("0.01")
RETURN_REASONS = dict(Order.RETURN_REASON_CHOICES)
NUMBER_ATTEMPTS = 5


def _money(value, field: str) -> Decimal:
    try:
        amount = Decimal(str(value)).quantize(CENTS)
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError(f"{field} must be a decimal amount")
    if not amount.is_finite():
        raise ValueError(f"{field} must be a finite amount")
    if amount < 0:
        raise ValueError(f"{field} cannot be negative")
    return amount


def _actor_id(actor):
    return getattr(actor, "pk", None)


def _locked(order_id) -> Order:
    try:
        return Order.objects.select_for_update().get(pk=order_id)
    except (Order.DoesNotExist, ValidationError, ValueError):
        raise NotFound(f"Order {order_id} not found")


def _last_number(prefix: str):
    return (
        Order.objects.filter(order_number__startswith=prefix)
        .order_by("-order_number")
        .values_list("order_number", flat=True)
        .first()
    )


def _customer_for(name: str, phone: str, email: str) -> Customer | None:
    if not (phone or email):
        return None
    lookup = {"phone": phone} if phone else {"email": email}
    customer = Customer.objects.filter(**lookup).first()
    if customer is None:
        customer = Customer.objects.create(name=name or phone or email, phone=phone, email=email)
    return customer


def _line_items(items) -> list[tuple]:
    lines = []
    for raw in items or []:
        product = raw.get("product")
        if product is not None and not isinstance(product, Product):
            try:
                product = Product.objects.get(pk=product)
            except (Product.DoesNotExist, ValidationError, ValueError):
                raise NotFound(f"Product {product} not found")
        quantity = int(raw.get("quantity") or 0)
        if quantity < 1:
            raise ValueError("Item quantity must be at least 1")
        if raw.get("unit_price") is not None:
            unit_price = _money(raw["unit_price"], "unit_price")
        elif product is not None:
            unit_price = _money(product.price, "unit_price")
        else:
            raise ValueError("Item needs a product or a unit price")
        name = raw.get("name") or (product.name if product is not None else "")
        if not name:
            raise ValueError("Item needs a name")
        lines.append((product, name, quantity, unit_price, raw.get("notes") or ""))
    if not lines:
        raise ValueError("An order needs at least one item")
    return lines


@transaction.atomic
def create_order(
    *,
    order_type: str,
    items,
    customer_name: str = "",
    customer_phone: str = "",
    customer_email: str = "",
    delivery_fee=ZERO,
    delivery_address: str = "",
    delivery_distance_km=None,
    payment_method: str = "",
    notes: str = "",
    config: FulfillmentConfig | None = None,
) -> Order:
    """Create a pending order with its items and the next order number of the day."""
    cfg = resolve(config)
    if order_type not in OrderType.values:
        raise ValueError(f"Unknown order type: {order_type}")
    fee = _money(delivery_fee or ZERO, "delivery_fee")
    if order_type != OrderType.DELIVERY:
        if fee:
            raise ValueError("Only delivery orders carry a delivery fee")
        delivery_distance_km = None
    elif not (delivery_address or "").strip():
        raise ValueError("Delivery orders need an address")
    distance = _money(delivery_distance_km, "delivery_distance_km") if delivery_distance_km is not None else None

    lines = _line_items(items)
    subtotal = sum((qty * price for _, _, qty, price, _ in lines), ZERO)
    customer = _customer_for(customer_name, customer_phone, customer_email)

    order = None
    for attempt in range(NUMBER_ATTEMPTS):
        number = next_order_number(prefix=cfg.order_number_prefix, day=timezone.localdate(), last=_last_number)
        try:
            with transaction.atomic():
                order = Order.objects.create(
                    order_number=number,
                    order_type=order_type,
                    customer=customer,
                    customer_name=customer_name,
                    customer_phone=customer_phone,
                    customer_email=customer_email,
                    delivery_address=delivery_address,
                    delivery_distance_km=distance,
                    subtotal=subtotal,
                    delivery_fee=fee,
                    total_amount=subtotal + fee,
                    payment_method=payment_method,
                    notes=notes,
                )
            break
        except IntegrityError:
            log.info("[orders] Order number %s taken, retrying (attempt %s)", number, attempt + 1)
    if order is None:
        raise InvalidState("Could not allocate an order number")

    OrderItem.objects.bulk_create(
        [
            OrderItem(
                order=order,
                product=product,
                product_name=name,
                quantity=qty,
                unit_price=price,
                subtotal=qty * price,
                notes=item_notes,
            )
            for product, name, qty, price, item_notes in lines
        ]
    )
    log.info("[orders] Created %s (%s) total=%s", order.order_number, order.order_type, order.total_amount)
    events.emit(
        events.ORDER_CREATED,
        order_id=order.pk,
        new_status=order.status,
        amount=order.total_amount,
        details={"order_number": order.order_number, "order_type": order.order_type},
    )
    return order


def _apply(order: Order, new_status: str, actor=None, *, source: str = "", note: str = "", extra_fields=()) -> Order:
    current = order.status
    try:
        assert_transition(order.order_type, current, new_status)
    except InvalidTransition:
        log.warning("[orders] Rejected %s -> %s for %s", current, new_status, order.order_number)
        raise

    if new_status == OrderStatus.APPROVED:
        inventory.deduct_for_order(order, actor)
    if restores_stock(current, new_status):
        inventory.restore_for_order(order, actor, reason=new_status)
    if new_status in (OrderStatus.REJECTED, OrderStatus.CANCELLED):
        earnings.discard_pending(order)

    order.set_status(new_status, actor=actor, source=source, note=note[:200], extra_fields=extra_fields)

    if releases_earning(order.order_type, new_status):
        earnings.release_for_order(order)
    if new_status == OrderStatus.COMPLETED and order.customer_id:
        now = timezone.now()
        Customer.objects.filter(pk=order.customer_id).update(
            total_orders=F("total_orders") + 1,
            total_spent=F("total_spent") + order.total_amount,
            last_order_date=now,
            updated_at=now,
        )

    log.info("[orders] %s %s -> %s by %s", order.order_number, current, new_status, _actor_id(actor))
    events.emit(
        events.ORDER_STATUS_CHANGED,
        order_id=order.pk,
        driver_id=order.driver_id,
        previous_status=current,
        new_status=new_status,
        amount=order.total_amount,
        actor_id=_actor_id(actor),
        details={"order_number": order.order_number, "order_type": order.order_type, "source": source},
    )
    return order


@transaction.atomic
def transition(order_id, new_status: str, actor=None, *, source: str = "", note: str = "") -> Order:
    """Move an order to ``new_status`` and apply the side effects bound to that edge.

    Raises ``NotFound`` or ``InvalidTransition``; ``InsufficientStock`` from an
    approval rolls the whole transition back.
    """
    order = _locked(order_id)
    return _apply(order, new_status, actor, source=source, note=note)


@transaction.atomic
def assign_driver(order_id, driver_id, actor=None, *, config: FulfillmentConfig | None = None) -> Order:
    """Assign (or with ``driver_id=None`` unassign) the driver of a delivery order."""
    cfg = resolve(config)
    order = _locked(order_id)
    if order.order_type != OrderType.DELIVERY:
        raise InvalidState("Only delivery orders take a driver")
    if order.status not in ASSIGNABLE:
        raise InvalidState(f"Cannot change the driver of an order that is {order.status}")

    previous = order.driver_id
    if driver_id is None:
        if previous is None:
            return order
        earnings.discard_pending(order)
        order.driver = None
    else:
        try:
            driver = Driver.objects.get(pk=driver_id)
        except (Driver.DoesNotExist, ValidationError, ValueError):
            raise NotFound(f"Driver {driver_id} not found")
        if not driver.is_active:
            raise InvalidState("Driver is not active")
        order.driver = driver
    order.save(update_fields=["driver", "updated_at"])
    if order.driver_id and cfg.earning_on_assignment:
        earnings.open_for_assignment(order, order.driver)

    log.info("[orders] %s driver %s -> %s by %s", order.order_number, previous, order.driver_id, _actor_id(actor))
    events.emit(
        events.ORDER_DRIVER_ASSIGNED,
        order_id=order.pk,
        driver_id=order.driver_id,
        actor_id=_actor_id(actor),
        details={
            "order_number": order.order_number,
            "previous_driver_id": str(previous) if previous else None,
            "driver": order.driver.name if order.driver_id else None,
        },
    )
    return order


@transaction.atomic
def return_to_sender(order_id, driver_id, reason: str, *, notes: str = "", photo_url: str = "") -> Order:
    """Driver-initiated return of an in-transit order; rejects it and restores stock."""
    if reason not in RETURN_REASONS:
        raise ValueError(f"Unknown return reason: {reason}")
    order = _locked(order_id)
    if order.status != OrderStatus.IN_TRANSIT:
        raise InvalidTransition(order.status, OrderStatus.REJECTED, "Only orders in transit can be returned")
    if str(order.driver_id) != str(driver_id):
        raise InvalidState("Only the assigned driver can return this order")

    driver = order.driver
    stamp = f"[RETURN TO SENDER] {RETURN_REASONS[reason]}"
    if notes:
        stamp = f"{stamp}: {notes}"
    order.internal_notes = f"{order.internal_notes}\n{stamp}".strip() if order.internal_notes else stamp
    order.return_reason = reason
    order.return_photo_url = photo_url or ""
    _apply(
        order,
        OrderStatus.REJECTED,
        driver.user,
        source="driver_return",
        note=stamp,
        extra_fields=("internal_notes", "return_reason", "return_photo_url"),
    )
    events.emit(
        events.ORDER_RETURNED,
        order_id=order.pk,
        driver_id=driver.pk,
        new_status=order.status,
        details={
            "order_number": order.order_number,
            "reason": reason,
            "notes": notes,
            "photo_url": order.return_photo_url,
            "driver": driver.name,
        },
    )
    return order


@transaction.atomic
def record_refund(order_id, actor, *, reason: str, amount, proof_url: str = "") -> Order:
    reason = (reason or "").strip()
    if not reason:
        raise ValueError("A refund reason is required")
    refund = _money(amount, "amount")
    if refund <= 0:
        raise ValueError("Refund amount must be positive")
    order = _locked(order_id)
    if order.status not in (OrderStatus.REJECTED, OrderStatus.CANCELLED):
        raise InvalidState("Only rejected or cancelled orders can be refunded")
    if order.is_refunded:
        raise InvalidState("Order is already refunded")
    if refund > order.total_amount:
        raise ValueError("Refund cannot exceed the order total")

    order.is_refunded = True
    order.refund_amount = refund
    order.refund_reason = reason
    order.refund_proof_url = proof_url or ""
    order.refunded_at = timezone.now()
    order.refunded_by = actor if _actor_id(actor) else None
    order.save(
        update_fields=[
            "is_refunded",
            "refund_amount",
            "refund_reason",
            "refund_proof_url",
            "refunded_at",
            "refunded_by",
            "updated_at",
        ]
    )
    log.info("[orders] Refund of %s recorded on %s by %s", refund, order.order_number, _actor_id(actor))
    events.emit(
        events.ORDER_REFUNDED,
        order_id=order.pk,
        new_status=order.status,
        amount=refund,
        actor_id=_actor_id(actor),
        details={"order_number": order.order_number, "reason": reason},
    )
    return order


@transaction.atomic
def wipe_orders(actor, confirmation: str, *, config: FulfillmentConfig | None = None) -> dict:
    """Delete every order and the rows hanging off it. Irreversible."""
    cfg = resolve(config)
    if (confirmation or "").strip() != cfg.wipe_confirmation_phrase:
        log.warning("[orders] Wipe refused for %s: confirmation mismatch", _actor_id(actor))
        raise ValueError("Confirmation phrase does not match")
    pending = DriverPayout.objects.filter(status=DriverPayout.STATUS_PENDING).count()
    if pending:
        log.warning("[orders] Wipe refused for %s: %s pending payout(s)", _actor_id(actor), pending)
        raise InvalidState(f"Resolve the {pending} pending payout(s) before wiping orders")

    counts = {
        "orders": Order.objects.count(),
        "items": OrderItem.objects.count(),
        "status_changes": OrderStatusChange.objects.count(),
        "earnings": DriverEarning.objects.count(),
        "stock_adjustments": StockAdjustment.objects.filter(order__isnull=False).count(),
    }
    StockAdjustment.objects.filter(order__isnull=False).delete()
    DriverEarning.objects.all().delete()
    Order.objects.all().delete()
    log.warning("[orders] All orders wiped by %s: %s", _actor_id(actor), counts)
    events.emit(events.ORDERS_WIPED, actor_id=_actor_id(actor), details=counts)
    return counts
