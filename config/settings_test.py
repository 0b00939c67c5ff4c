from .settings import *  # noqa: F401,F403

DEBUG = False
SECRET_KEY = "test-key"
PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "tests",
    }
}

STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

NOTIFICATIONS_DEV_MODE = True
SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False

FULFILLMENT = {
    "min_payout_amount": "0.00",
    "default_low_stock_threshold": 10,
    "earning_on_assignment": True,
    "order_number_prefix": "ORD",
    "wipe_confirmation_phrase": "DELETE ALL ORDERS",
}
