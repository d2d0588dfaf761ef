import os
from pathlib import Path

from django.core.exceptions import ImproperlyConfigured
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent.parent

load_dotenv(BASE_DIR / ".env")

# Application definition

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "rest_framework",
    "simple_history",
    "apps.workflow",
    "apps.catalog",
    "apps.job",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "simple_history.middleware.HistoryRequestMiddleware",
]

REST_FRAMEWORK = {
    "COERCE_DECIMAL_TO_STRING": True,
}

LOG_DIR = Path(os.getenv("LOG_DIR", BASE_DIR / "logs"))
LOG_DIR.mkdir(parents=True, exist_ok=True)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {message}",
            "style": "{",
        },
        "simple": {
            "format": "{levelname} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "level": "INFO",  # INFO+ only
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
        "job_file": {
            "level": "DEBUG",
            "class": "concurrent_log_handler.ConcurrentRotatingFileHandler",
            "filename": os.path.join(LOG_DIR, "job_lifecycle.log"),
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 5,
            "formatter": "verbose",
        },
        "inventory_file": {
            "level": "DEBUG",
            "class": "concurrent_log_handler.ConcurrentRotatingFileHandler",
            "filename": os.path.join(LOG_DIR, "inventory.log"),
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 5,
            "formatter": "verbose",
        },
        "app_file": {
            "level": "DEBUG",
            "class": "concurrent_log_handler.ConcurrentRotatingFileHandler",
            "filename": os.path.join(LOG_DIR, "application.log"),  # catch-all
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 5,
            "formatter": "verbose",
        },
    },
    "loggers": {
        # status changes, work orders and completions, bubbles up to root
        "apps.job": {
            "handlers": ["job_file"],
            "level": "DEBUG",
            "propagate": True,
        },
        # catalog promotion and stock movements
        "apps.catalog": {
            "handlers": ["inventory_file"],
            "level": "DEBUG",
            "propagate": True,
        },
        "django.db.backends": {
            "handlers": ["app_file"],
            "level": "INFO",
            "propagate": False,
        },
    },
    "root": {
        "handlers": ["console", "app_file"],
        "level": "DEBUG",
    },
}

ROOT_URLCONF = "garage_manager.urls"

WSGI_APPLICATION = "garage_manager.wsgi.application"

# Database
# https://docs.djangoproject.com/en/5.0/ref/settings/#databases

if os.getenv("MYSQL_DATABASE"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.mysql",
            "NAME": os.getenv("MYSQL_DATABASE"),
            "USER": os.getenv("GARAGE_DB_USER", "root"),
            "PASSWORD": os.getenv("DB_PASSWORD", "password"),
            "HOST": os.getenv("DB_HOST", "localhost"),
            "PORT": os.getenv("DB_PORT", 3306),
            "TEST": {
                "NAME": "test_garage_manager",
            },
        },
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.getenv("SQLITE_PATH", BASE_DIR / "db.sqlite3"),
        },
    }

# Internationalization
# https://docs.djangoproject.com/en/5.0/topics/i18n/

LANGUAGE_CODE = "en-gb"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# Default primary key field type
# https://docs.djangoproject.com/en/5.0/ref/settings/#default-auto-field

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

SECRET_KEY = os.getenv("SECRET_KEY")

# ===========================
# CUSTOM SETTINGS
# ===========================

# Days a job may sit in a status before it is flagged. Statuses missing here
# fall back to "in_progress".
JOB_HEALTH = {
    "THRESHOLDS": {
        "not_started": {"warning": 3, "critical": 7},
        "in_progress": {"warning": 5, "critical": 10},
        "waiting_for_parts": {"warning": 7, "critical": 14},
        "completed": {"warning": None, "critical": None},  # never flagged
    },
    "INACTIVITY_WARNING_DAYS": 5,
}

WORK_ORDER = {
    "DEFAULT_TAX_RATE": os.getenv("WORK_ORDER_DEFAULT_TAX_RATE", "20"),
    # "clamp" keeps the stored stage from going backwards when lines are
    # removed, "allow" stores whatever the content implies.
    "STAGE_REGRESSION": os.getenv("WORK_ORDER_STAGE_REGRESSION", "clamp"),
    "PROMOTED_PART_MIN_STOCK": 1,
    "PROMOTED_PART_MAX_STOCK": 10,
    "PROMOTED_SERVICE_SKILL_LEVEL": "junior",
}


def validate_required_settings(required_settings):
    """Validate that all required settings are properly configured."""
    missing_settings = [key for key, value in required_settings.items() if not value]

    if missing_settings:
        raise ImproperlyConfigured(
            f"The following required settings are missing or empty: {', '.join(missing_settings)}\n"
            f"Please check your .env file and ensure all required settings are configured."
        )

    if WORK_ORDER["STAGE_REGRESSION"] not in ("clamp", "allow"):
        raise ImproperlyConfigured(
            "WORK_ORDER_STAGE_REGRESSION must be either 'clamp' or 'allow'"
        )
