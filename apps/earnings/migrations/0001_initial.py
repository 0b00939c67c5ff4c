import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("drivers", "0001_initial"),
        ("orders", "0001_initial"),
        ("payouts", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="DriverEarning",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("delivery_fee", models.DecimalField(decimal_places=2, max_digits=10)),
                ("distance_km", models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("available", "Available"), ("requested", "Requested"), ("paid", "Paid")], default="pending", max_length=10)),
                ("available_at", models.DateTimeField(blank=True, null=True)),
                ("driver", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="earnings", to="drivers.driver")),
                ("order", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="earning", to="orders.order")),
                ("payout", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="earnings", to="payouts.driverpayout")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["driver", "status"], name="earnings_driver_status_idx"),
                    models.Index(fields=["payout", "status"], name="earnings_payout_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("delivery_fee__gte", 0)), name="earnings_fee_non_negative"),
                    models.CheckConstraint(
                        condition=models.Q(models.Q(("payout__isnull", False), ("status", "requested")), models.Q(("status", "requested"), _negated=True), _connector="OR"),
                        name="earnings_requested_has_payout",
                    ),
                ],
            },
        ),
    ]
