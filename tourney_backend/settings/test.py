"""
Test settings.

SQLite, in-process cache/email/channel layer and eager Celery so the
suite runs without Postgres or Redis.  Row locks are no-ops on SQLite;
the concurrency tests that need real locks skip themselves there.  Set
``TEST_DATABASE=postgres`` (with the usual ``POSTGRES_*`` variables) to run
them against PostgreSQL.
"""
import os

from .base import *  # noqa

DEBUG = False
SECRET_KEY = "test-secret-key"
ALLOWED_HOSTS = ["*"]

if os.getenv("TEST_DATABASE", "sqlite").lower() != "postgres":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": ":memory:",
        }
    }

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "tourney-tests",
    }
}

CHANNEL_LAYERS = {"default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}}

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
ADMIN_NOTIFICATION_EMAILS = ["admin@example.com"]

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = False
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

REST_FRAMEWORK = {
    **REST_FRAMEWORK,  # noqa: F405
    "DEFAULT_THROTTLE_CLASSES": [],
}

PAYMENT_MODE = "test"
STRIPE_SECRET_KEY = ""
STRIPE_WEBHOOK_SECRET = ""
FRONTEND_URL = "http://frontend.test"

# Let pytest's caplog see application logs
LOGGING = {
    **LOGGING,  # noqa: F405
    "loggers": {name: {"level": "INFO", "propagate": True} for name in ("payments", "registrants", "tournaments")},
}
