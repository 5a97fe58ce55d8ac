"""Test settings - uses SQLite for fast local testing."""
import os

os.environ.setdefault("SECRET_KEY", "test-only-secret-key-not-for-production")
os.environ.setdefault("DEBUG", "True")

from .base import *  # noqa: E402,F401,F403

DEBUG = True

# Use SQLite for tests (no PostgreSQL dependency)
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}
DATABASES["default"]["ATOMIC_REQUESTS"] = False

# Faster password hashing in tests
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

# Disable Redis cache in tests
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

# Disable Celery in tests
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

# Disable API throttling in tests for deterministic runs
REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []  # noqa: F405
REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}  # noqa: F405

# Business defaults pinned for tests
PAYMENT_TOLERANCE = "0.01"
DEFAULT_FLAT_FEE = "50"
DEFAULT_COMMISSION_PERCENT = "50"
LEGACY_FLAT_FEE_FALLBACK_FRACTION = "0.5"

# Disable logging noise during tests; records still reach caplog.
LOGGING["root"]["level"] = "WARNING"  # noqa: F405
LOGGING["loggers"]["coaching"]["handlers"] = ["console"]  # noqa: F405
LOGGING["loggers"]["coaching"]["level"] = "INFO"  # noqa: F405
LOGGING["loggers"]["coaching"]["propagate"] = True  # noqa: F405
LOGGING["loggers"]["commissions"]["handlers"] = ["console"]  # noqa: F405
LOGGING["loggers"]["commissions"]["propagate"] = True  # noqa: F405
LOGGING["handlers"].pop("file", None)  # noqa: F405
