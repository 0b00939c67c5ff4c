import os
from celery import Celery
from celery.schedules import crontab

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()

app.conf.beat_schedule = {
    "low-stock-digest": {
        "task": "apps.inventory.tasks.low_stock_digest",
        # Every day at 07:00 before the kitchen opens
        "schedule": crontab(minute=0, hour=7),
    },
}
