import datetime as dt

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone

from apps.common.models import BaseModel

from .states import OrderStatus, OrderType


def next_status_time(previous: dt.datetime | None) -> dt.datetime:
    now = timezone.now()
    if previous is not None and now <= previous:
        now = previous + dt.timedelta(microseconds=1)
    return now


class Customer(BaseModel):
    name = models.CharField(max_length=160)
    phone = models.CharField(max_length=40, blank=True)
    email = models.EmailField(blank=True)
    total_orders = models.PositiveIntegerField(default=0)
    total_spent = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    last_order_date = models.DateTimeField(blank=True, null=True)

    class Meta:
        indexes = [models.Index(fields=["phone"], name="orders_customer_phone_idx")]

    def __str__(self):
        return self.name


class Order(BaseModel):
    RETURN_REASON_CHOICES = [
        ("customer_not_available", "Customer not available"),
        ("wrong_address", "Wrong address"),
        ("customer_refused", "Customer refused order"),
        ("cannot_locate", "Cannot locate address"),
        ("other", "Other"),
    ]

    order_number = models.CharField(max_length=32, unique=True)
    status = models.CharField(max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING)
    order_type = models.CharField(max_length=10, choices=OrderType.choices)
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name="orders")
    customer_name = models.CharField(max_length=160, blank=True)
    customer_phone = models.CharField(max_length=40, blank=True)
    customer_email = models.EmailField(blank=True)
    delivery_address = models.TextField(blank=True)
    delivery_distance_km = models.DecimalField(max_digits=6, decimal_places=2, blank=True, null=True)
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    delivery_fee = models.DecimalField(max_digits=10, decimal_places=2, default=0, validators=[MinValueValidator(0)])
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    payment_method = models.CharField(max_length=30, blank=True)
    driver = models.ForeignKey("drivers.Driver", on_delete=models.SET_NULL, null=True, blank=True, related_name="orders")
    notes = models.TextField(blank=True)
    internal_notes = models.TextField(blank=True)
    return_reason = models.CharField(max_length=30, choices=RETURN_REASON_CHOICES, blank=True)
    return_photo_url = models.URLField(max_length=500, blank=True)
    is_refunded = models.BooleanField(default=False)
    refund_amount = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    refund_reason = models.TextField(blank=True)
    refund_proof_url = models.URLField(max_length=500, blank=True)
    refunded_at = models.DateTimeField(blank=True, null=True)
    refunded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    status_changed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        indexes = [
            models.Index(fields=["status", "created_at"], name="orders_ord_status_idx"),
            models.Index(fields=["driver", "status"], name="orders_ord_driver_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(subtotal__gte=0) & Q(delivery_fee__gte=0) & Q(total_amount__gte=0),
                name="orders_order_amounts_non_negative",
            ),
        ]

    def __str__(self):
        return self.order_number

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_order_type = instance.__dict__.get("order_type")
        return instance

    @property
    def is_delivery(self) -> bool:
        return self.order_type == OrderType.DELIVERY

    def save(self, *args, **kwargs):
        is_new = self._state.adding
        loaded_type = getattr(self, "_loaded_order_type", None)
        if not is_new and loaded_type and loaded_type != self.order_type:
            raise ValueError("order_type cannot change after creation")

        prev_status = None
        prev_changed_at = None
        should_track_status = True
        source = getattr(self, "_status_change_source", None)
        note = getattr(self, "_status_change_note", "")
        actor = getattr(self, "_status_change_actor", None)
        update_fields = kwargs.get("update_fields")
        if not is_new and self.pk:
            should_track_status = update_fields is None or "status" in update_fields
            if should_track_status:
                row = (
                    type(self)
                    .objects.filter(pk=self.pk)
                    .values_list("status", "status_changed_at")
                    .first()
                )
                if row:
                    prev_status, prev_changed_at = row

        status_written = is_new or (should_track_status and prev_status != self.status)
        if status_written and not is_new:
            self.status_changed_at = next_status_time(prev_changed_at)
            if update_fields is not None:
                kwargs["update_fields"] = set(update_fields) | {"status_changed_at", "updated_at"}
        super().save(*args, **kwargs)
        for attr in ("_status_change_source", "_status_change_note", "_status_change_actor"):
            if hasattr(self, attr):
                delattr(self, attr)
        self._loaded_order_type = self.order_type
        if status_written:
            OrderStatusChange.objects.create(
                order=self,
                status=self.status,
                previous_status=prev_status or "",
                actor=actor,
                source=source or ("initial" if is_new else ""),
                note=note or "",
            )

    def set_status(self, status: str, *, actor=None, source: str | None = None, note: str = "", extra_fields=()) -> None:
        self.status = status
        if source:
            self._status_change_source = source
        if note:
            self._status_change_note = note
        if getattr(actor, "pk", None):
            self._status_change_actor = actor
        self.save(update_fields=["status", *extra_fields])


class OrderItem(BaseModel):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey("inventory.Product", on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    product_name = models.CharField(max_length=160)
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    notes = models.CharField(max_length=200, blank=True)


class OrderStatusChange(BaseModel):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="status_changes")
    status = models.CharField(max_length=20, choices=OrderStatus.choices)
    previous_status = models.CharField(max_length=20, choices=OrderStatus.choices, blank=True)
    actor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    source = models.CharField(max_length=32, blank=True)
    note = models.CharField(max_length=200, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["order", "created_at"], name="orders_status_change_idx"),
        ]
        ordering = ["created_at"]
