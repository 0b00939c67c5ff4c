from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import Q, UniqueConstraint
from django.db.models.functions import Lower

from apps.common.models import BaseModel


class User(BaseModel, AbstractUser):
    """Custom User with UUID primary key, timestamps and a staff role.

    Owners, managers and cashiers operate the admin side (order verification,
    stock, payouts); drivers use the driver app; everyone else is a customer.
    """

    ROLE_OWNER = "owner"
    ROLE_MANAGER = "manager"
    ROLE_CASHIER = "cashier"
    ROLE_DRIVER = "driver"
    ROLE_CUSTOMER = "customer"
    ROLE_CHOICES = [
        (ROLE_OWNER, "Owner"),
        (ROLE_MANAGER, "Manager"),
        (ROLE_CASHIER, "Cashier"),
        (ROLE_DRIVER, "Driver"),
        (ROLE_CUSTOMER, "Customer"),
    ]
    ADMIN_ROLES = frozenset({ROLE_OWNER, ROLE_MANAGER, ROLE_CASHIER})

    email = models.EmailField("email address", blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_CUSTOMER)

    class Meta(AbstractUser.Meta):
        constraints = [
            UniqueConstraint(
                Lower("email"),
                condition=~Q(email=""),
                name="accounts_user_email_lower_uniq",
                violation_error_message="Email already registered",
            )
        ]

    @property
    def is_admin(self) -> bool:
        return self.role in self.ADMIN_ROLES

    @property
    def is_owner(self) -> bool:
        return self.role == self.ROLE_OWNER

    def save(self, *args, **kwargs):
        if self.email:
            self.email = str(self.email).strip().lower()
        return super().save(*args, **kwargs)
