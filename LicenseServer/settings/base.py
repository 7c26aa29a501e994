"""
Base Django settings for LicenseServer.

These settings are shared across all environments.
Environment-specific overrides are in dev.py, test.py, and prod.py
"""
import os
from pathlib import Path

from .logging import get_logging_config

# Build paths inside the project
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.environ.get(
    "DJANGO_SECRET_KEY", "django-insecure-license-server-development-key-change-me"
)

# Application definition
INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.staticfiles",
    # Third party
    "rest_framework",
    "drf_spectacular",
    # Local apps
    "LicenseServer.apps.LicenseServerConfig",
    "core",
    "licenses",
    "activations",
    "downloads",
    "api",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    # Custom middleware
    "core.middleware.observability.ObservabilityMiddleware",
    "core.middleware.metrics.MetricsMiddleware",
    "core.middleware.rate_limit.RateLimitMiddleware",
]

ROOT_URLCONF = "LicenseServer.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
            ],
        },
    },
]

WSGI_APPLICATION = "LicenseServer.wsgi.application"
ASGI_APPLICATION = "LicenseServer.asgi.application"

# Database
# https://docs.djangoproject.com/en/5.1/ref/settings/#databases
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.environ.get("DB_NAME", "license_server"),
        "USER": os.environ.get("DB_USER", "postgres"),
        "PASSWORD": os.environ.get("DB_PASSWORD", "postgres"),
        "HOST": os.environ.get("DB_HOST", "localhost"),
        "PORT": os.environ.get("DB_PORT", "5432"),
        "OPTIONS": {
            "connect_timeout": 10,
        },
    }
}

# Internationalization
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# Static files (CSS, JavaScript, Images)
STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# Default primary key field type
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# REST Framework
REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
        "rest_framework.parsers.FormParser",
    ],
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": [],
    "UNAUTHENTICATED_USER": None,
    "EXCEPTION_HANDLER": "api.exceptions.custom_exception_handler",
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
}

# drf-spectacular settings
SPECTACULAR_SETTINGS = {
    "TITLE": "License Server API",
    "DESCRIPTION": (
        "License activation and validation engine. Client installations "
        "activate licenses on their domain, send heartbeats and download "
        "releases through signed links."
    ),
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
    "COMPONENT_SPLIT_REQUEST": True,
    "SCHEMA_PATH_PREFIX": "/api/v1",
    "TAGS": [
        {"name": "License API", "description": "Domain activation and heartbeats"},
        {"name": "Updates API", "description": "Signed release downloads"},
        {"name": "Health", "description": "Health check endpoints"},
    ],
}

# Redis Cache (rate-limit windows and block markers)
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.redis.RedisCache",
        "LOCATION": os.environ.get("REDIS_URL", "redis://127.0.0.1:6379/1"),
        "OPTIONS": {
            "socket_connect_timeout": 5,
            "socket_timeout": 5,
        },
    }
}


def _env_list(name: str) -> list:
    return [item.strip() for item in os.environ.get(name, "").split(",") if item.strip()]


# License engine
# Secrets left empty are generated once and persisted to SECRETS_FILE.
LICENSE_ENGINE = {
    "SERVER_SECRET": os.environ.get("LICENSE_SERVER_SECRET"),
    "KEY_SALT": os.environ.get("LICENSE_KEY_SALT"),
    "IP_SALT": os.environ.get("LICENSE_IP_SALT"),
    "SECRETS_FILE": os.environ.get(
        "LICENSE_SECRETS_FILE", str(BASE_DIR / "var" / "license_secrets.json")
    ),
    "SIGNED_URL_TTL": int(os.environ.get("LICENSE_SIGNED_URL_TTL", "300")),
    "DOWNLOAD_URL": os.environ.get("LICENSE_DOWNLOAD_URL", "/api/v1/updates/download"),
    "DEVELOPER_DOMAINS": _env_list("LICENSE_DEVELOPER_DOMAINS"),
    "EXEMPT_DOMAINS_BYPASS_EXPIRY": os.environ.get(
        "LICENSE_EXEMPT_DOMAINS_BYPASS_EXPIRY", "false"
    ).lower()
    == "true",
    "RATE_LIMITS": {
        "activate": (10, 300),
        "validate": (60, 300),
        "deactivate": (10, 300),
        "download": (10, 3600),
        "update_check": (60, 300),
        "download_token": (60, 300),
        "default": (60, 300),
    },
    "BLOCK_DURATION": int(os.environ.get("LICENSE_BLOCK_DURATION", "900")),
    "STORAGE_TIMEOUT": float(os.environ.get("LICENSE_STORAGE_TIMEOUT", "5")),
    "KEY_GENERATION_ATTEMPTS": 10,
    "GRACE_PERIOD_DAYS": int(os.environ.get("LICENSE_GRACE_PERIOD_DAYS", "7")),
    "RELEASES_DIR": os.environ.get("LICENSE_RELEASES_DIR", str(BASE_DIR / "var" / "releases")),
    "TRUSTED_PROXY_HEADERS": _env_list("LICENSE_TRUSTED_PROXY_HEADERS"),
}

# Observability
OBSERVABILITY_ENABLED = True
LOGGING = get_logging_config(os.environ.get("ENVIRONMENT", "development"))
