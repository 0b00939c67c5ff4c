from django.conf import settings
from django.db import models

from apps.common.models import BaseModel


class Driver(BaseModel):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="driver_profile",
    )
    name = models.CharField(max_length=160)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=40, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        indexes = [models.Index(fields=["is_active"], name="drivers_dri_is_acti_idx")]

    def __str__(self):
        return self.name


class DriverPaymentInfo(BaseModel):
    METHOD_GCASH = "gcash"
    METHOD_MAYA = "maya"
    METHOD_BANK = "bank"
    METHOD_CHOICES = [(METHOD_GCASH, "GCash"), (METHOD_MAYA, "Maya"), (METHOD_BANK, "Bank transfer")]

    driver = models.ForeignKey(Driver, on_delete=models.CASCADE, related_name="payment_methods")
    payment_method = models.CharField(max_length=10, choices=METHOD_CHOICES)
    account_name = models.CharField(max_length=160)
    account_number = models.CharField(max_length=60)
    bank_name = models.CharField(max_length=120, blank=True)
    is_default = models.BooleanField(default=False)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["driver", "payment_method"], name="drivers_payment_method_uniq"),
        ]

    def snapshot(self) -> dict:
        """Account details copied onto a payout at request time."""
        return {
            "account_name": self.account_name,
            "account_number": self.account_number,
            "bank_name": self.bank_name or None,
        }
