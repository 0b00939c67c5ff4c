from django.contrib import admin

from .models import Customer, Order, OrderItem, OrderStatusChange


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0


class OrderStatusChangeInline(admin.TabularInline):
    model = OrderStatusChange
    extra = 0
    can_delete = False
    readonly_fields = ("created_at", "previous_status", "status", "actor", "source", "note")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "order_type", "status", "customer_name", "total_amount", "driver", "status_changed_at")
    list_filter = ("status", "order_type", "is_refunded")
    search_fields = ("order_number", "customer_name", "customer_phone")
    list_select_related = ("driver",)
    # Status moves go through orders.services.transition.
    readonly_fields = ("order_number", "order_type", "status", "status_changed_at", "driver")
    inlines = [OrderItemInline, OrderStatusChangeInline]


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("name", "phone", "email", "total_orders", "total_spent", "last_order_date")
    search_fields = ("name", "phone", "email")
