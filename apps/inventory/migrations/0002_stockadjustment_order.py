import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("inventory", "0001_initial"),
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="stockadjustment",
            name="order",
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="stock_adjustments", to="orders.order"),
        ),
        migrations.AddIndex(
            model_name="stockadjustment",
            index=models.Index(fields=["stock", "created_at"], name="inventory_adj_stock_idx"),
        ),
        migrations.AddIndex(
            model_name="stockadjustment",
            index=models.Index(fields=["order", "adjustment_type"], name="inventory_adj_order_idx"),
        ),
    ]
