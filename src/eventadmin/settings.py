from __future__ import annotations

from pathlib import Path

from apps.core.config.env import get_runtime_settings

BASE_DIR = Path(__file__).resolve().parent.parent
RUNTIME = get_runtime_settings()

SECRET_KEY = RUNTIME.secret_key
DEBUG = RUNTIME.debug
ALLOWED_HOSTS = list(RUNTIME.allowed_hosts)

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "rest_framework",
    "apps.core",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "apps.core.middleware.RequestIdMiddleware",
    "apps.core.middleware.StructuredRequestLogMiddleware",
    "apps.core.error_handlers.UnifiedErrorMiddleware",
]

ROOT_URLCONF = "eventadmin.urls"

WSGI_APPLICATION = "eventadmin.wsgi.application"
ASGI_APPLICATION = "eventadmin.asgi.application"

# Django requires a default DB setting; records live in the storage collaborator.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "_django_control.db",
    }
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Identity comes from the upstream proxy headers, not from DRF authentication.
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": [],
    "UNAUTHENTICATED_USER": None,
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        }
    },
    "loggers": {
        "eventadmin.policy": {
            "handlers": ["console"],
            "level": RUNTIME.log_level,
            "propagate": False,
        }
    },
}
