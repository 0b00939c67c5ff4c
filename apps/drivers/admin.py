from django.contrib import admin

from .models import Driver, DriverPaymentInfo


class DriverPaymentInfoInline(admin.TabularInline):
    model = DriverPaymentInfo
    extra = 0


@admin.register(Driver)
class DriverAdmin(admin.ModelAdmin):
    list_display = ("name", "email", "phone", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name", "email", "phone")
    inlines = [DriverPaymentInfoInline]


@admin.register(DriverPaymentInfo)
class DriverPaymentInfoAdmin(admin.ModelAdmin):
    list_display = ("driver", "payment_method", "account_name", "account_number", "is_default")
    list_filter = ("payment_method",)
    list_select_related = ("driver",)
