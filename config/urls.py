from django.contrib import admin
from django.http import HttpResponse
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/orders/", include("apps.orders.urls")),
    path("api/inventory/", include("apps.inventory.urls")),
    path("api/payouts/", include("apps.payouts.urls")),
    path("api/", include("apps.notifications.urls")),
    # Healthcheck endpoint
    path("healthz", lambda _request: HttpResponse("ok")),
]
