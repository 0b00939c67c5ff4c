import uuid

import django.core.validators
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
            name="Product",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=160)),
                ("sku", models.CharField(blank=True, max_length=60)),
                ("product_type", models.CharField(choices=[("simple", "Simple"), ("flavored", "Flavored"), ("bundle", "Bundle"), ("unlimited", "Unlimited")], default="simple", max_length=12)),
                ("stock_enabled", models.BooleanField(default=True)),
                ("price", models.DecimalField(decimal_places=2, default=0, max_digits=10, validators=[django.core.validators.MinValueValidator(0)])),
                ("is_active", models.BooleanField(default=True)),
            ],
            options={
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="Stock",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("current_stock", models.IntegerField(default=0)),
                ("low_stock_threshold", models.PositiveIntegerField(default=10)),
                ("is_enabled", models.BooleanField(default=True)),
                ("product", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="stock", to="inventory.product")),
            ],
            options={
                "constraints": [models.CheckConstraint(condition=models.Q(("current_stock__gte", 0)), name="inventory_stock_non_negative")],
            },
        ),
        migrations.CreateModel(
            name="StockAdjustment",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("adjustment_type", models.CharField(choices=[("manual_add", "Manual add"), ("manual_deduct", "Manual deduct"), ("order_approved", "Order approved"), ("order_cancelled", "Order cancelled")], max_length=20)),
                ("quantity_change", models.IntegerField()),
                ("previous_quantity", models.IntegerField()),
                ("new_quantity", models.IntegerField()),
                ("notes", models.TextField(blank=True)),
                ("adjusted_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="stock_adjustments", to="inventory.product")),
                ("stock", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="adjustments", to="inventory.stock")),
            ],
            options={
                "ordering": ["created_at"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("new_quantity", models.F("previous_quantity") + models.F("quantity_change"))), name="inventory_adj_balanced"),
                    models.CheckConstraint(condition=models.Q(("new_quantity__gte", 0)), name="inventory_adj_non_negative"),
                ],
            },
        ),
    ]
