import uuid

import pytest
from django.urls import reverse

from apps.inventory.models import StockAdjustment
from apps.orders import services as orders
from apps.orders.states import OrderStatus

from .conftest import DELIVERY_PATH


def post_json(client, url, data):
    return client.post(url, data=data, content_type="application/json")


@pytest.fixture
def admin_client_(client, manager):
    client.force_login(manager)
    return client


@pytest.fixture
def rider(make_driver):
    return make_driver(with_user=True)


@pytest.fixture
def rider_client(client, rider):
    client.force_login(rider.user)
    return client


@pytest.mark.django_db
def test_admin_moves_order_forward(admin_client_, make_order):
    order = make_order()
    url = reverse("orders:update_status", args=[order.pk])

    resp = post_json(admin_client_, url, {"status": "for_verification", "note": "gcash ref 1234"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["order"]["status"] == "for_verification"
    assert body["order"]["order_number"] == order.order_number

    resp = post_json(admin_client_, url, {"status": "completed"})
    assert resp.status_code == 409
    assert resp.json()["error"] == "InvalidTransition"


@pytest.mark.django_db
def test_unknown_order_is_404(admin_client_):
    resp = post_json(admin_client_, reverse("orders:update_status", args=[uuid.uuid4()]), {"status": "approved"})
    assert resp.status_code == 404
    assert resp.json()["error"] == "NotFound"


@pytest.mark.django_db
def test_login_required(client, make_order):
    order = make_order()
    resp = post_json(client, reverse("orders:update_status", args=[order.pk]), {"status": "for_verification"})
    assert resp.status_code == 302


@pytest.mark.django_db
def test_driver_limited_to_own_delivery_steps(rider_client, rider, make_driver, make_order, advance):
    mine = make_order()
    orders.assign_driver(mine.pk, rider.pk)
    advance(mine, *DELIVERY_PATH[:4])
    other = make_order()
    orders.assign_driver(other.pk, make_driver(name="Other Rider", phone="+639179999999").pk)
    advance(other, *DELIVERY_PATH[:4])

    assert post_json(rider_client, reverse("orders:update_status", args=[mine.pk]), {"status": "cancelled"}).status_code == 403
    assert post_json(rider_client, reverse("orders:update_status", args=[other.pk]), {"status": "picked_up"}).status_code == 403

    resp = post_json(rider_client, reverse("orders:update_status", args=[mine.pk]), {"status": "picked_up"})
    assert resp.status_code == 200
    assert resp.json()["order"]["status"] == "picked_up"
    assert mine.status_changes.last().source == "driver"


@pytest.mark.django_db
def test_admin_only_endpoints_reject_drivers(rider_client, rider, make_order):
    order = make_order()
    assert post_json(rider_client, reverse("orders:assign_driver", args=[order.pk]), {"driver_id": str(rider.pk)}).status_code == 403
    assert post_json(rider_client, reverse("orders:refund", args=[order.pk]), {"reason": "x", "amount": "1"}).status_code == 403
    assert rider_client.get(reverse("payouts:stats")).status_code == 403
    assert rider_client.get(reverse("inventory:low_stock")).status_code == 403


@pytest.mark.django_db
def test_assign_driver_view(admin_client_, make_driver, make_order):
    driver = make_driver()
    order = make_order()
    resp = post_json(admin_client_, reverse("orders:assign_driver", args=[order.pk]), {"driver_id": str(driver.pk)})
    assert resp.status_code == 200
    assert resp.json()["order"]["driver_id"] == str(driver.pk)

    pickup = make_order(order_type="pickup")
    resp = post_json(admin_client_, reverse("orders:assign_driver", args=[pickup.pk]), {"driver_id": str(driver.pk)})
    assert resp.status_code == 409


@pytest.mark.django_db
def test_driver_returns_order(rider_client, rider, make_order, advance):
    order = make_order()
    orders.assign_driver(order.pk, rider.pk)
    advance(order, *DELIVERY_PATH[:6])

    resp = post_json(
        rider_client,
        reverse("orders:return_order", args=[order.pk]),
        {"reason": "customer_not_available", "notes": "no answer at gate"},
    )
    assert resp.status_code == 200
    assert resp.json()["order"]["status"] == "rejected"


@pytest.mark.django_db
def test_refund_view(admin_client_, make_order, advance):
    order = make_order()
    advance(order, OrderStatus.CANCELLED)
    url = reverse("orders:refund", args=[order.pk])

    assert post_json(admin_client_, url, {"reason": "", "amount": "10"}).status_code == 400
    resp = post_json(admin_client_, url, {"reason": "customer request", "amount": "375.00"})
    assert resp.status_code == 200
    assert resp.json()["order"]["is_refunded"] is True
    assert post_json(admin_client_, url, {"reason": "again", "amount": "1"}).status_code == 409


@pytest.mark.django_db
def test_payout_round_trip_over_http(client, rider, manager, make_order, advance):
    order = make_order(delivery_fee="75.00")
    orders.assign_driver(order.pk, rider.pk)
    advance(order, *DELIVERY_PATH[:7])

    client.force_login(rider.user)
    balance = client.get(reverse("payouts:balance")).json()["balance"]
    assert balance["available"] == "75.00"

    resp = post_json(client, reverse("payouts:request"), {"payment_method": "gcash"})
    assert resp.status_code == 200
    payout = resp.json()["payout"]
    assert payout["amount"] == "75.00"
    assert payout["status"] == "pending"
    assert post_json(client, reverse("payouts:request"), {"payment_method": "gcash"}).status_code == 409

    client.force_login(manager)
    url = reverse("payouts:resolve", args=[payout["id"]])
    assert post_json(client, url, {"decision": "complete"}).status_code == 400
    resp = post_json(client, url, {"decision": "complete", "proof_url": "https://x.test/proof.jpg"})
    assert resp.status_code == 200
    assert resp.json()["payout"]["status"] == "completed"

    stats = client.get(reverse("payouts:stats")).json()["stats"]
    assert stats["completed_amount"] == "75.00"
    assert stats["pending_count"] == 0


@pytest.mark.django_db
def test_request_without_funds_is_422(rider_client):
    resp = post_json(rider_client, reverse("payouts:request"), {"payment_method": "gcash"})
    assert resp.status_code == 422
    assert resp.json()["error"] == "NoFundsAvailable"


@pytest.mark.django_db
def test_stock_adjust_view(admin_client_, make_product):
    product = make_product(stock=4, threshold=3)
    url = reverse("inventory:adjust_stock", args=[product.stock.pk])

    resp = post_json(admin_client_, url, {"adjustment_type": "manual_add", "quantity": 6, "notes": "delivery from supplier"})
    assert resp.status_code == 200
    assert resp.json()["adjustment"]["new_quantity"] == 10

    assert post_json(admin_client_, url, {"adjustment_type": "order_approved", "quantity": 1}).status_code == 400
    assert post_json(admin_client_, url, {"adjustment_type": "manual_deduct", "quantity": 11}).status_code == 409
    assert StockAdjustment.objects.filter(stock=product.stock).count() == 1

    resp = post_json(admin_client_, url, {"adjustment_type": "manual_deduct", "quantity": 8})
    assert resp.json()["adjustment"]["quantity_change"] == -8
    items = admin_client_.get(reverse("inventory:low_stock")).json()["items"]
    assert [i["product"] for i in items] == ["Chicken Wings"]


@pytest.mark.django_db
def test_refund_with_nan_amount_is_400(admin_client_, make_order, advance):
    order = make_order()
    advance(order, OrderStatus.CANCELLED)
    resp = post_json(admin_client_, reverse("orders:refund", args=[order.pk]), {"reason": "customer request", "amount": "NaN"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "ValueError"
