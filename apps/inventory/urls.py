from django.urls import path

from . import views

app_name = "inventory"

urlpatterns = [
    path("stock/<uuid:stock_id>/adjust", views.adjust_stock, name="adjust_stock"),
    path("stock/low", views.low_stock, name="low_stock"),
]
