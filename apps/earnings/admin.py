from django.contrib import admin

from .models import DriverEarning


@admin.register(DriverEarning)
class DriverEarningAdmin(admin.ModelAdmin):
    list_display = ("driver", "order", "delivery_fee", "distance_km", "status", "payout", "created_at")
    list_filter = ("status",)
    list_select_related = ("driver", "order", "payout")
    readonly_fields = ("delivery_fee", "status", "payout", "available_at")
