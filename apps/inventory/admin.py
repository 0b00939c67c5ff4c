from django.contrib import admin

from .models import Product, Stock, StockAdjustment


class StockInline(admin.StackedInline):
    model = Stock
    extra = 0
    readonly_fields = ("current_stock",)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "sku", "product_type", "stock_enabled", "price", "is_active")
    list_filter = ("product_type", "stock_enabled", "is_active")
    search_fields = ("name", "sku")
    inlines = [StockInline]


@admin.register(Stock)
class StockAdmin(admin.ModelAdmin):
    list_display = ("product", "current_stock", "low_stock_threshold", "is_enabled", "low_display")
    list_filter = ("is_enabled",)
    list_select_related = ("product",)
    # Quantity changes go through inventory.services.adjust.
    readonly_fields = ("current_stock",)

    def low_display(self, obj: Stock):
        return obj.is_low
    low_display.boolean = True
    low_display.short_description = "Low"


@admin.register(StockAdjustment)
class StockAdjustmentAdmin(admin.ModelAdmin):
    list_display = (
        "created_at",
        "product",
        "adjustment_type",
        "quantity_change",
        "previous_quantity",
        "new_quantity",
        "adjusted_by",
        "order",
    )
    list_filter = ("adjustment_type",)
    list_select_related = ("product", "adjusted_by", "order")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
