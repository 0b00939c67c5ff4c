import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Driver",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=160)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("phone", models.CharField(blank=True, max_length=40)),
                ("is_active", models.BooleanField(default=True)),
                ("user", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="driver_profile", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [models.Index(fields=["is_active"], name="drivers_dri_is_acti_idx")],
            },
        ),
        migrations.CreateModel(
            name="DriverPaymentInfo",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("payment_method", models.CharField(choices=[("gcash", "GCash"), ("maya", "Maya"), ("bank", "Bank transfer")], max_length=10)),
                ("account_name", models.CharField(max_length=160)),
                ("account_number", models.CharField(max_length=60)),
                ("bank_name", models.CharField(blank=True, max_length=120)),
                ("is_default", models.BooleanField(default=False)),
                ("driver", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="payment_methods", to="drivers.driver")),
            ],
            options={
                "constraints": [models.UniqueConstraint(fields=("driver", "payment_method"), name="drivers_payment_method_uniq")],
            },
        ),
    ]
