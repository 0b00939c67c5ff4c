from decimal import Decimal

import pytest

from apps.common.config import FulfillmentConfig
from apps.common.exceptions import InvalidState, NoFundsAvailable, NotFound
from apps.drivers.models import DriverPaymentInfo
from apps.earnings.models import DriverEarning
from apps.earnings.services import balance_for_driver
from apps.orders import services as orders
from apps.payouts import services as payouts
from apps.payouts.models import DriverPayout

from .conftest import DELIVERY_PATH


@pytest.fixture
def driver(make_driver):
    return make_driver()


@pytest.fixture
def deliver(make_order, advance, driver):
    """Create and deliver an order for ``driver`` with the given fee."""

    def _deliver(fee: str):
        order = make_order(delivery_fee=fee)
        orders.assign_driver(order.pk, driver.pk)
        advance(order, *DELIVERY_PATH[:7])
        return order

    return _deliver


@pytest.fixture
def two_available(deliver):
    deliver("75.00")
    deliver("50.00")


def _statuses(driver):
    return sorted(DriverEarning.objects.filter(driver=driver).values_list("status", flat=True))


@pytest.mark.django_db
def test_request_locks_all_available_earnings(driver, two_available):
    before = balance_for_driver(driver.pk)
    payout = payouts.request_payout(driver.pk, "gcash")

    assert payout.amount == Decimal("125.00")
    assert payout.amount == before.available + before.requested
    assert payout.status == "pending"
    assert payout.payment_method == "gcash"
    assert payout.account_details == {"account_name": "Rico Rider", "account_number": "09171234567", "bank_name": None}
    assert _statuses(driver) == ["requested", "requested"]
    assert DriverEarning.objects.filter(payout=payout).count() == 2


@pytest.mark.django_db
def test_complete_pays_bound_earnings(driver, two_available, manager):
    payout = payouts.request_payout(driver.pk, "gcash")
    payout = payouts.resolve_payout(payout.pk, "complete", manager, proof_url="https://x.test/proof.jpg")

    assert payout.status == "completed"
    assert payout.processed_by == manager
    assert payout.processed_at is not None
    assert payout.payment_proof_url == "https://x.test/proof.jpg"
    assert _statuses(driver) == ["paid", "paid"]
    assert balance_for_driver(driver.pk).paid == Decimal("125.00")


@pytest.mark.django_db
def test_reject_returns_earnings_to_available(driver, two_available, manager):
    before = balance_for_driver(driver.pk).available
    payout = payouts.request_payout(driver.pk, "gcash")
    payout = payouts.resolve_payout(payout.pk, "reject", manager, rejection_reason="invalid account")

    payout.refresh_from_db()
    assert payout.status == "rejected"
    assert payout.amount == Decimal("125.00")
    assert payout.rejection_reason == "invalid account"
    assert _statuses(driver) == ["available", "available"]
    assert not DriverEarning.objects.filter(payout=payout).exists()
    assert balance_for_driver(driver.pk).available == before


@pytest.mark.django_db
def test_rejected_earnings_can_be_requested_again(driver, two_available, manager):
    first = payouts.request_payout(driver.pk, "gcash")
    payouts.resolve_payout(first.pk, "reject", manager, rejection_reason="wrong number")
    second = payouts.request_payout(driver.pk, "gcash")
    assert second.amount == Decimal("125.00")
    assert DriverEarning.objects.filter(payout=second, status="requested").count() == 2


@pytest.mark.django_db
def test_earnings_available_after_request_stay_out_of_it(driver, deliver, manager):
    deliver("75.00")
    payout = payouts.request_payout(driver.pk, "gcash")
    late = deliver("40.00")
    payouts.resolve_payout(payout.pk, "complete", manager, proof_url="https://x.test/p.jpg")

    assert DriverEarning.objects.get(order=late).status == "available"
    payout.refresh_from_db()
    assert payout.amount == Decimal("75.00")


@pytest.mark.django_db
def test_one_pending_payout_per_driver(driver, deliver):
    deliver("75.00")
    payouts.request_payout(driver.pk, "gcash")
    deliver("30.00")
    with pytest.raises(InvalidState):
        payouts.request_payout(driver.pk, "gcash")
    assert DriverPayout.objects.filter(driver=driver).count() == 1


@pytest.mark.django_db
def test_no_funds(driver, make_order, advance):
    with pytest.raises(NoFundsAvailable):
        payouts.request_payout(driver.pk, "gcash")
    order = make_order()
    orders.assign_driver(order.pk, driver.pk)
    with pytest.raises(NoFundsAvailable):
        payouts.request_payout(driver.pk, "gcash")
    assert not DriverPayout.objects.exists()


@pytest.mark.django_db
def test_minimum_payout_amount(driver, deliver):
    deliver("75.00")
    with pytest.raises(NoFundsAvailable):
        payouts.request_payout(driver.pk, "gcash", config=FulfillmentConfig(min_payout_amount=Decimal("100.00")))
    assert DriverEarning.objects.get(driver=driver).status == "available"


@pytest.mark.django_db
def test_unknown_driver_or_method(driver, two_available):
    with pytest.raises(NotFound):
        payouts.request_payout("00000000-0000-0000-0000-000000000000", "gcash")
    with pytest.raises(NotFound):
        payouts.request_payout(driver.pk, "maya")


@pytest.mark.django_db
def test_payment_method_by_id_and_snapshot_is_frozen(driver, two_available):
    info = DriverPaymentInfo.objects.create(
        driver=driver, payment_method="bank", account_name="Rico Rider", account_number="0012-3456", bank_name="BPI"
    )
    payout = payouts.request_payout(driver.pk, str(info.pk))
    info.account_number = "9999"
    info.save()
    payout.refresh_from_db()
    assert payout.payment_method == "bank"
    assert payout.account_details["account_number"] == "0012-3456"
    assert payout.account_details["bank_name"] == "BPI"


@pytest.mark.django_db
def test_resolve_guards(driver, two_available, manager):
    payout = payouts.request_payout(driver.pk, "gcash")
    with pytest.raises(ValueError):
        payouts.resolve_payout(payout.pk, "complete", manager)
    with pytest.raises(ValueError):
        payouts.resolve_payout(payout.pk, "reject", manager, rejection_reason="  ")
    with pytest.raises(ValueError):
        payouts.resolve_payout(payout.pk, "approve", manager, proof_url="https://x.test/p.jpg")
    with pytest.raises(NotFound):
        payouts.resolve_payout("00000000-0000-0000-0000-000000000000", "complete", manager, proof_url="https://x.test/p.jpg")

    payouts.resolve_payout(payout.pk, "complete", manager, proof_url="https://x.test/p.jpg")
    with pytest.raises(InvalidState):
        payouts.resolve_payout(payout.pk, "reject", manager, rejection_reason="late")
    assert _statuses(driver) == ["paid", "paid"]


@pytest.mark.django_db
def test_payout_stats(driver, deliver, make_order, manager):
    deliver("75.00")
    done = payouts.request_payout(driver.pk, "gcash")
    payouts.resolve_payout(done.pk, "complete", manager, proof_url="https://x.test/p.jpg")
    deliver("50.00")
    payouts.request_payout(driver.pk, "gcash")
    deliver("20.00")
    orders.assign_driver(make_order(delivery_fee="10.00").pk, driver.pk)

    stats = payouts.payout_stats()
    assert stats.pending_amount == Decimal("50.00")
    assert stats.pending_count == 1
    assert stats.completed_amount == Decimal("75.00")
    assert stats.available_earnings == Decimal("20.00")
    assert stats.pending_earnings == Decimal("10.00")


@pytest.mark.django_db
def test_database_allows_one_pending_payout_per_driver(driver):
    from django.db import IntegrityError, transaction

    fields = {"driver": driver, "amount": Decimal("10.00"), "payment_method": "gcash", "account_details": {}}
    DriverPayout.objects.create(status="pending", **fields)
    DriverPayout.objects.create(status="rejected", **fields)
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            DriverPayout.objects.create(status="pending", **fields)


@pytest.mark.django_db
def test_concurrent_request_surfaces_as_invalid_state(driver, deliver, monkeypatch):
    from django.db.models.query import QuerySet

    deliver("75.00")
    first = payouts.request_payout(driver.pk, "gcash")
    late = deliver("30.00")

    with monkeypatch.context() as m:
        # the pending check misses the other request, the constraint does not
        m.setattr(QuerySet, "exists", lambda self: False)
        with pytest.raises(InvalidState):
            payouts.request_payout(driver.pk, "gcash")

    assert list(DriverPayout.objects.filter(driver=driver).values_list("pk", flat=True)) == [first.pk]
    assert DriverEarning.objects.get(order=late).status == "available"
    assert DriverEarning.objects.get(order=late).payout_id is None
