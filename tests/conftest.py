from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from apps.drivers.models import Driver, DriverPaymentInfo
from apps.inventory.models import Product, Stock
from apps.orders import services as orders
from apps.orders.states import OrderStatus

User = get_user_model()

DELIVERY_PATH = [
    OrderStatus.FOR_VERIFICATION,
    OrderStatus.APPROVED,
    OrderStatus.PREPARING,
    OrderStatus.WAITING_FOR_RIDER,
    OrderStatus.PICKED_UP,
    OrderStatus.IN_TRANSIT,
    OrderStatus.DELIVERED,
    OrderStatus.COMPLETED,
]

PICKUP_PATH = [
    OrderStatus.FOR_VERIFICATION,
    OrderStatus.APPROVED,
    OrderStatus.PREPARING,
    OrderStatus.READY_FOR_PICKUP,
    OrderStatus.COMPLETED,
]


@pytest.fixture
def manager(db):
    return User.objects.create_user(
        username="manager", email="manager@example.com", password="pw", role=User.ROLE_MANAGER
    )


@pytest.fixture
def make_product(db):
    def _make_product(
        *,
        name: str = "Chicken Wings",
        stock: int | None = 10,
        threshold: int = 3,
        product_type: str = Product.TYPE_SIMPLE,
        stock_enabled: bool = True,
        price: str = "150.00",
    ) -> Product:
        product = Product.objects.create(
            name=name, product_type=product_type, stock_enabled=stock_enabled, price=Decimal(price)
        )
        if stock is not None:
            Stock.objects.create(product=product, current_stock=stock, low_stock_threshold=threshold)
        return product

    return _make_product


@pytest.fixture
def make_driver(db):
    def _make_driver(*, name: str = "Rico Rider", phone: str = "+639171234567", with_user: bool = False) -> Driver:
        user = None
        if with_user:
            user = User.objects.create_user(
                username=name.lower().replace(" ", "."), password="pw", role=User.ROLE_DRIVER
            )
        driver = Driver.objects.create(user=user, name=name, phone=phone, email=f"{name.split()[0].lower()}@example.com")
        DriverPaymentInfo.objects.create(
            driver=driver,
            payment_method=DriverPaymentInfo.METHOD_GCASH,
            account_name=name,
            account_number="09171234567",
        )
        return driver

    return _make_driver


@pytest.fixture
def make_order(db, make_product):
    def _make_order(
        *,
        order_type: str = "delivery",
        items=None,
        delivery_fee: str = "75.00",
        phone: str = "+639181234567",
        email: str = "",
    ):
        if items is None:
            items = [(make_product(), 2)]
        is_delivery = order_type == "delivery"
        return orders.create_order(
            order_type=order_type,
            items=[{"product": product, "quantity": qty} for product, qty in items],
            customer_name="Maria Santos",
            customer_phone=phone,
            customer_email=email,
            delivery_fee=delivery_fee if is_delivery else "0",
            delivery_address="12 Rizal St, Makati" if is_delivery else "",
            delivery_distance_km="3.5" if is_delivery else None,
            payment_method="gcash",
        )

    return _make_order


@pytest.fixture
def advance():
    """Walk an order through ``statuses`` in order and return the refreshed row."""

    def _advance(order, *statuses, actor=None):
        for status in statuses:
            orders.transition(order.pk, status, actor, source="test")
        order.refresh_from_db()
        return order

    return _advance
