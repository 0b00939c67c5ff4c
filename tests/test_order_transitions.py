import datetime as dt
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.common.exceptions import InsufficientStock, InvalidState, InvalidTransition, NotFound
from apps.earnings.models import DriverEarning
from apps.inventory.models import Product, StockAdjustment
from apps.orders import services as orders
from apps.orders.models import Order
from apps.orders.states import OrderStatus, OrderType, allowed_targets, is_terminal, restores_stock

from .conftest import DELIVERY_PATH, PICKUP_PATH


def test_delivery_flow_table():
    assert allowed_targets(OrderType.DELIVERY, "preparing") == {"waiting_for_rider", "rejected", "cancelled"}
    assert allowed_targets(OrderType.DELIVERY, "in_transit") == {"delivered", "rejected", "cancelled"}
    assert allowed_targets(OrderType.DELIVERY, "delivered") == {"completed", "rejected", "cancelled"}
    for terminal in ("rejected", "cancelled", "completed"):
        assert is_terminal(terminal)
        assert allowed_targets(OrderType.DELIVERY, terminal) == set()


def test_pickup_and_dine_in_share_flow():
    for order_type in (OrderType.PICKUP, OrderType.DINE_IN):
        assert allowed_targets(order_type, "preparing") == {"ready_for_pickup", "rejected", "cancelled"}
        assert allowed_targets(order_type, "ready_for_pickup") == {"completed", "rejected", "cancelled"}
        assert "waiting_for_rider" not in allowed_targets(order_type, "preparing")


def test_restores_stock_only_after_approval():
    assert restores_stock("approved", "rejected")
    assert restores_stock("delivered", "cancelled")
    assert not restores_stock("pending", "cancelled")
    assert not restores_stock("for_verification", "rejected")


@pytest.mark.django_db
def test_transition_unknown_order():
    with pytest.raises(NotFound):
        orders.transition("00000000-0000-0000-0000-000000000000", "approved")


@pytest.mark.django_db
def test_full_delivery_path_writes_history(make_order, advance):
    order = make_order()
    order = advance(order, *DELIVERY_PATH)
    assert order.status == OrderStatus.COMPLETED
    history = list(order.status_changes.values_list("previous_status", "status"))
    assert history[0] == ("", "pending")
    assert history[-1] == ("delivered", "completed")
    assert len(history) == len(DELIVERY_PATH) + 1


@pytest.mark.django_db
def test_pickup_order_cannot_enter_delivery_states(make_order, advance):
    order = make_order(order_type="pickup")
    advance(order, "for_verification", "approved", "preparing")
    with pytest.raises(InvalidTransition):
        orders.transition(order.pk, "waiting_for_rider")
    order = advance(order, "ready_for_pickup", "completed")
    assert order.status == "completed"


@pytest.mark.django_db
def test_skipping_a_step_is_rejected(make_order):
    order = make_order()
    with pytest.raises(InvalidTransition) as exc:
        orders.transition(order.pk, "approved")
    assert exc.value.current == "pending"
    assert exc.value.target == "approved"


@pytest.mark.django_db
def test_status_changed_at_strictly_increases(make_order):
    order = make_order()
    seen = [order.status_changed_at]
    for status in DELIVERY_PATH:
        order = orders.transition(order.pk, status)
        order.refresh_from_db()
        seen.append(order.status_changed_at)
    assert all(later > earlier for earlier, later in zip(seen, seen[1:]))


@pytest.mark.django_db
def test_status_changed_at_bumped_past_future_timestamp(make_order):
    order = make_order()
    future = timezone.now() + dt.timedelta(hours=1)
    Order.objects.filter(pk=order.pk).update(status_changed_at=future)
    order = orders.transition(order.pk, "for_verification")
    order.refresh_from_db()
    assert order.status_changed_at > future


@pytest.mark.django_db
def test_failed_transition_changes_nothing(make_order, advance):
    order = advance(make_order(), "for_verification")
    before = order.status_changed_at
    history = order.status_changes.count()
    with pytest.raises(InvalidTransition):
        orders.transition(order.pk, "delivered")
    order.refresh_from_db()
    assert order.status == "for_verification"
    assert order.status_changed_at == before
    assert order.status_changes.count() == history


@pytest.mark.django_db
def test_same_status_twice_applies_once(make_product, make_order, advance):
    wings = make_product(stock=10)
    order = advance(make_order(items=[(wings, 2)]), "for_verification")
    orders.transition(order.pk, "approved")
    with pytest.raises(InvalidTransition):
        orders.transition(order.pk, "approved")
    wings.stock.refresh_from_db()
    assert wings.stock.current_stock == 8
    assert StockAdjustment.objects.filter(order=order).count() == 1


@pytest.mark.django_db
def test_approve_then_reject_round_trips_stock(make_product, make_order, advance):
    wings = make_product(stock=10)
    order = advance(make_order(items=[(wings, 2)]), "for_verification")

    orders.transition(order.pk, "approved")
    wings.stock.refresh_from_db()
    assert wings.stock.current_stock == 8
    approved = StockAdjustment.objects.get(order=order, adjustment_type="order_approved")
    assert (approved.quantity_change, approved.previous_quantity, approved.new_quantity) == (-2, 10, 8)

    orders.transition(order.pk, "rejected")
    wings.stock.refresh_from_db()
    assert wings.stock.current_stock == 10
    restored = StockAdjustment.objects.get(order=order, adjustment_type="order_cancelled")
    assert (restored.quantity_change, restored.previous_quantity, restored.new_quantity) == (2, 8, 10)


@pytest.mark.django_db
def test_insufficient_stock_aborts_approval(make_product, make_order, advance):
    wings = make_product(name="Wings", stock=10)
    fries = make_product(name="Fries", stock=1)
    order = advance(make_order(items=[(wings, 2), (fries, 3)]), "for_verification")
    history = order.status_changes.count()

    with pytest.raises(InsufficientStock):
        orders.transition(order.pk, "approved")

    order.refresh_from_db()
    wings.stock.refresh_from_db()
    fries.stock.refresh_from_db()
    assert order.status == "for_verification"
    assert order.status_changes.count() == history
    assert wings.stock.current_stock == 10
    assert fries.stock.current_stock == 1
    assert not StockAdjustment.objects.filter(order=order).exists()


@pytest.mark.django_db
def test_untracked_products_are_skipped(make_product, make_order, advance):
    unlimited = make_product(name="Rice", stock=5, product_type=Product.TYPE_UNLIMITED)
    disabled = make_product(name="Water", stock=5, stock_enabled=False)
    no_row = make_product(name="Sauce", stock=None)
    order = make_order(items=[(unlimited, 1), (disabled, 1), (no_row, 1)])
    advance(order, "for_verification", "approved")
    assert not StockAdjustment.objects.filter(order=order).exists()
    unlimited.stock.refresh_from_db()
    assert unlimited.stock.current_stock == 5


@pytest.mark.django_db
def test_repeated_product_lines_deduct_together(make_product, make_order, advance):
    wings = make_product(stock=10)
    order = make_order(items=[(wings, 2), (wings, 3)])
    advance(order, "for_verification", "approved")
    wings.stock.refresh_from_db()
    assert wings.stock.current_stock == 5
    assert StockAdjustment.objects.filter(order=order).count() == 1


@pytest.mark.django_db
def test_cancel_before_approval_leaves_stock(make_product, make_order, advance):
    wings = make_product(stock=10)
    order = advance(make_order(items=[(wings, 2)]), "for_verification", "cancelled")
    assert order.status == "cancelled"
    wings.stock.refresh_from_db()
    assert wings.stock.current_stock == 10
    assert not StockAdjustment.objects.filter(order=order).exists()


@pytest.mark.django_db
def test_terminal_orders_accept_nothing(make_order, advance):
    order = advance(make_order(), "cancelled")
    for target in ("pending", "approved", "rejected", "completed"):
        with pytest.raises(InvalidTransition):
            orders.transition(order.pk, target)


@pytest.mark.django_db
def test_completed_updates_customer_stats(make_order, advance):
    order = advance(make_order(order_type="pickup"), *PICKUP_PATH)
    customer = order.customer
    customer.refresh_from_db()
    assert customer.total_orders == 1
    assert customer.total_spent == order.total_amount
    assert customer.last_order_date is not None


@pytest.mark.django_db
def test_order_type_cannot_change(make_order):
    order = Order.objects.get(pk=make_order().pk)
    order.order_type = OrderType.PICKUP
    with pytest.raises(ValueError):
        order.save()


@pytest.mark.django_db
def test_create_order_numbers_are_sequential_per_day(make_order):
    first = make_order()
    second = make_order()
    today = timezone.localdate()
    assert first.order_number == f"ORD-{today:%Y%m%d}-0001"
    assert second.order_number == f"ORD-{today:%Y%m%d}-0002"


@pytest.mark.django_db
def test_create_order_totals(make_product):
    wings = make_product(price="150.00")
    order = orders.create_order(
        order_type="delivery",
        items=[{"product": wings, "quantity": 2}, {"name": "Extra dip", "unit_price": "25.50", "quantity": 1}],
        customer_name="Ana",
        customer_phone="+639181234567",
        delivery_fee="75",
        delivery_address="Makati",
    )
    assert order.status == "pending"
    assert order.subtotal == Decimal("325.50")
    assert order.total_amount == Decimal("400.50")
    assert order.items.count() == 2


@pytest.mark.django_db
def test_create_order_validation(make_product):
    wings = make_product()
    with pytest.raises(ValueError):
        orders.create_order(order_type="drive_thru", items=[{"product": wings, "quantity": 1}])
    with pytest.raises(ValueError):
        orders.create_order(order_type="pickup", items=[])
    with pytest.raises(ValueError):
        orders.create_order(order_type="pickup", items=[{"product": wings, "quantity": 1}], delivery_fee="10")
    with pytest.raises(ValueError):
        orders.create_order(order_type="delivery", items=[{"product": wings, "quantity": 1}])


@pytest.mark.django_db
def test_return_to_sender_rejects_and_restores(make_product, make_order, make_driver, advance):
    wings = make_product(stock=10)
    driver = make_driver()
    order = make_order(items=[(wings, 2)])
    advance(order, "for_verification", "approved", "preparing")
    orders.assign_driver(order.pk, driver.pk)
    advance(order, "waiting_for_rider", "picked_up", "in_transit")

    order = orders.return_to_sender(order.pk, driver.pk, "wrong_address", notes="No such house", photo_url="https://x.test/p.jpg")

    order.refresh_from_db()
    wings.stock.refresh_from_db()
    assert order.status == "rejected"
    assert order.return_reason == "wrong_address"
    assert order.internal_notes.startswith("[RETURN TO SENDER] Wrong address: No such house")
    assert order.return_photo_url == "https://x.test/p.jpg"
    assert wings.stock.current_stock == 10
    assert not DriverEarning.objects.filter(order=order).exists()


@pytest.mark.django_db
def test_return_to_sender_guards(make_order, make_driver, advance):
    driver = make_driver()
    other = make_driver(name="Other Rider", phone="+639179876543")
    order = make_order()
    orders.assign_driver(order.pk, driver.pk)
    with pytest.raises(ValueError):
        orders.return_to_sender(order.pk, driver.pk, "aliens")
    with pytest.raises(InvalidTransition):
        orders.return_to_sender(order.pk, driver.pk, "other")
    advance(order, "for_verification", "approved", "preparing", "waiting_for_rider", "picked_up", "in_transit")
    with pytest.raises(InvalidState):
        orders.return_to_sender(order.pk, other.pk, "other")


@pytest.mark.django_db
def test_assign_driver_rules(make_order, make_driver, advance):
    driver = make_driver()
    pickup = make_order(order_type="pickup")
    with pytest.raises(InvalidState):
        orders.assign_driver(pickup.pk, driver.pk)

    order = make_order()
    with pytest.raises(NotFound):
        orders.assign_driver(order.pk, "00000000-0000-0000-0000-000000000000")
    driver.is_active = False
    driver.save()
    with pytest.raises(InvalidState):
        orders.assign_driver(order.pk, driver.pk)
    driver.is_active = True
    driver.save()

    orders.assign_driver(order.pk, driver.pk)
    advance(order, "for_verification", "approved", "preparing", "waiting_for_rider", "picked_up")
    with pytest.raises(InvalidState):
        orders.assign_driver(order.pk, None)


@pytest.mark.django_db
def test_record_refund(make_order, manager, advance):
    order = make_order()
    with pytest.raises(InvalidState):
        orders.record_refund(order.pk, manager, reason="Customer cancelled", amount="10")
    advance(order, "cancelled")
    with pytest.raises(ValueError):
        orders.record_refund(order.pk, manager, reason="Too much", amount="99999")

    order = orders.record_refund(order.pk, manager, reason="Customer cancelled", amount="100.00", proof_url="https://x.test/r.jpg")
    assert order.is_refunded
    assert order.refund_amount == Decimal("100.00")
    assert order.refunded_by == manager
    with pytest.raises(InvalidState):
        orders.record_refund(order.pk, manager, reason="Again", amount="1")


@pytest.mark.django_db
@pytest.mark.parametrize("amount", ["NaN", "Infinity", "-Infinity", "sNaN"])
def test_non_finite_amounts_are_rejected(make_product, make_order, manager, advance, amount):
    order = make_order()
    advance(order, "cancelled")
    with pytest.raises(ValueError):
        orders.record_refund(order.pk, manager, reason="Customer cancelled", amount=amount)
    order.refresh_from_db()
    assert not order.is_refunded

    with pytest.raises(ValueError):
        orders.create_order(
            order_type="delivery",
            items=[{"product": make_product(name="Fries"), "quantity": 1}],
            delivery_fee=amount,
            delivery_address="12 Rizal St, Makati",
        )
