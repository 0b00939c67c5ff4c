from django.contrib import admin

from .models import DriverPayout


@admin.register(DriverPayout)
class DriverPayoutAdmin(admin.ModelAdmin):
    list_display = ("driver", "amount", "payment_method", "status", "requested_at", "processed_at", "processed_by")
    list_filter = ("status", "payment_method")
    list_select_related = ("driver", "processed_by")
    # Resolution goes through payouts.services.resolve_payout.
    readonly_fields = (
        "driver",
        "amount",
        "payment_method",
        "account_details",
        "status",
        "requested_at",
        "processed_at",
        "processed_by",
        "payment_proof_url",
        "rejection_reason",
    )
