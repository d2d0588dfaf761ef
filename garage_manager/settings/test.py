from .base import *  # noqa: F403

DEBUG = False

SECRET_KEY = os.getenv("SECRET_KEY", "django-insecure-test-key")  # noqa: F405

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    },
}

# Keep test output quiet, file handlers stay in place so the log config is
# exercised exactly as in production.
LOGGING["handlers"]["console"]["level"] = "CRITICAL"  # noqa: F405

validate_required_settings({"SECRET_KEY": SECRET_KEY})  # noqa: F405
