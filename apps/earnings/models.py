from django.db import models
from django.db.models import Q

from apps.common.models import BaseModel


class DriverEarning(BaseModel):
    STATUS_PENDING = "pending"
    STATUS_AVAILABLE = "available"
    STATUS_REQUESTED = "requested"
    STATUS_PAID = "paid"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_AVAILABLE, "Available"),
        (STATUS_REQUESTED, "Requested"),
        (STATUS_PAID, "Paid"),
    ]

    driver = models.ForeignKey("drivers.Driver", on_delete=models.PROTECT, related_name="earnings")
    order = models.OneToOneField("orders.Order", on_delete=models.CASCADE, related_name="earning")
    payout = models.ForeignKey(
        "payouts.DriverPayout", on_delete=models.SET_NULL, null=True, blank=True, related_name="earnings"
    )
    delivery_fee = models.DecimalField(max_digits=10, decimal_places=2)
    distance_km = models.DecimalField(max_digits=6, decimal_places=2, blank=True, null=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)
    available_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        indexes = [
            models.Index(fields=["driver", "status"], name="earnings_driver_status_idx"),
            models.Index(fields=["payout", "status"], name="earnings_payout_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=Q(delivery_fee__gte=0), name="earnings_fee_non_negative"),
            models.CheckConstraint(
                condition=Q(status="requested", payout__isnull=False) | ~Q(status="requested"),
                name="earnings_requested_has_payout",
            ),
        ]

    def __str__(self):
        return f"{self.driver} {self.delivery_fee} ({self.status})"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._original_fee = instance.__dict__.get("delivery_fee")
        return instance

    def save(self, *args, **kwargs):
        original = getattr(self, "_original_fee", None)
        if not self._state.adding and original is not None and original != self.delivery_fee:
            raise ValueError("delivery_fee is a snapshot and cannot change")
        super().save(*args, **kwargs)
        self._original_fee = self.delivery_fee
