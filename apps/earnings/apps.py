from django.apps import AppConfig


class EarningsConfig(AppConfig):
    name = "apps.earnings"
    verbose_name = "Driver earnings"
