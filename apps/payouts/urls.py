from django.urls import path

from . import views

app_name = "payouts"

urlpatterns = [
    path("request", views.request_payout, name="request"),
    path("<uuid:payout_id>/resolve", views.resolve_payout, name="resolve"),
    path("balance", views.my_balance, name="balance"),
    path("stats", views.stats, name="stats"),
]
