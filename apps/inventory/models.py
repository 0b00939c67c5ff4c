from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q

from apps.common.models import BaseModel


class Product(BaseModel):
    TYPE_SIMPLE = "simple"
    TYPE_FLAVORED = "flavored"
    TYPE_BUNDLE = "bundle"
    TYPE_UNLIMITED = "unlimited"
    TYPE_CHOICES = [
        (TYPE_SIMPLE, "Simple"),
        (TYPE_FLAVORED, "Flavored"),
        (TYPE_BUNDLE, "Bundle"),
        (TYPE_UNLIMITED, "Unlimited"),
    ]

    name = models.CharField(max_length=160)
    sku = models.CharField(max_length=60, blank=True)
    product_type = models.CharField(max_length=12, choices=TYPE_CHOICES, default=TYPE_SIMPLE)
    stock_enabled = models.BooleanField(default=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0, validators=[MinValueValidator(0)])
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return self.name

    @property
    def is_stock_tracked(self) -> bool:
        return self.stock_enabled and self.product_type != self.TYPE_UNLIMITED


class Stock(BaseModel):
    product = models.OneToOneField(Product, on_delete=models.CASCADE, related_name="stock")
    current_stock = models.IntegerField(default=0)
    low_stock_threshold = models.PositiveIntegerField(default=10)
    is_enabled = models.BooleanField(default=True)

    class Meta:
        constraints = [
            models.CheckConstraint(condition=Q(current_stock__gte=0), name="inventory_stock_non_negative"),
        ]

    def __str__(self):
        return f"{self.product} ({self.current_stock})"

    @property
    def is_low(self) -> bool:
        return self.current_stock <= self.low_stock_threshold


class StockAdjustment(BaseModel):
    """Append-only record of one change to a Stock row."""

    TYPE_MANUAL_ADD = "manual_add"
    TYPE_MANUAL_DEDUCT = "manual_deduct"
    TYPE_ORDER_APPROVED = "order_approved"
    TYPE_ORDER_CANCELLED = "order_cancelled"
    TYPE_CHOICES = [
        (TYPE_MANUAL_ADD, "Manual add"),
        (TYPE_MANUAL_DEDUCT, "Manual deduct"),
        (TYPE_ORDER_APPROVED, "Order approved"),
        (TYPE_ORDER_CANCELLED, "Order cancelled"),
    ]

    stock = models.ForeignKey(Stock, on_delete=models.PROTECT, related_name="adjustments")
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="stock_adjustments")
    adjustment_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    quantity_change = models.IntegerField()
    previous_quantity = models.IntegerField()
    new_quantity = models.IntegerField()
    adjusted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    order = models.ForeignKey(
        "orders.Order", on_delete=models.SET_NULL, null=True, blank=True, related_name="stock_adjustments"
    )
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["stock", "created_at"], name="inventory_adj_stock_idx"),
            models.Index(fields=["order", "adjustment_type"], name="inventory_adj_order_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(new_quantity=F("previous_quantity") + F("quantity_change")),
                name="inventory_adj_balanced",
            ),
            models.CheckConstraint(condition=Q(new_quantity__gte=0), name="inventory_adj_non_negative"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Stock adjustments are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Stock adjustments are append-only")
