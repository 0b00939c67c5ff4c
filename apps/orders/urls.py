from django.urls import path

from . import views

app_name = "orders"

urlpatterns = [
    path("<uuid:order_id>/status", views.update_status, name="update_status"),
    path("<uuid:order_id>/driver", views.assign_driver, name="assign_driver"),
    path("<uuid:order_id>/return", views.return_order, name="return_order"),
    path("<uuid:order_id>/refund", views.refund, name="refund"),
]
