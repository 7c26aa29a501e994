"""
Test settings for LicenseServer.
"""

import os

from .base import *  # noqa: F403, F401

DEBUG = False

# Use PostgreSQL in CI (from DATABASE_URL), SQLite in-memory for local tests
DATABASE_URL = os.environ.get("DATABASE_URL")
if DATABASE_URL and DATABASE_URL.startswith("postgresql"):
    import urllib.parse

    parsed = urllib.parse.urlparse(DATABASE_URL)
    db_name = parsed.path[1:] if parsed.path.startswith("/") else parsed.path
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": db_name,
            "USER": parsed.username or "postgres",
            "PASSWORD": parsed.password or "",
            "HOST": parsed.hostname or "localhost",
            "PORT": parsed.port or 5432,
            "TEST": {"NAME": db_name + "_test"},
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": ":memory:",
        }
    }

# Use in-memory cache for tests
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

# Fixed secrets so tests never touch the secrets file
LICENSE_ENGINE = {
    **LICENSE_ENGINE,  # noqa: F405
    "SERVER_SECRET": "test-server-secret-0123456789abcdef0123456789abcdef",
    "KEY_SALT": "test-key-salt-0123456789abcdef0123456789abcdef",
    "IP_SALT": "test-ip-salt-0123456789abcdef0123456789abcdef",
    "SECRETS_FILE": None,
    "DEVELOPER_DOMAINS": ["staging.example.com"],
    "EXEMPT_DOMAINS_BYPASS_EXPIRY": False,
    "RELEASES_DIR": None,
    "TRUSTED_PROXY_HEADERS": [],
}

OBSERVABILITY_ENABLED = False

# Disable logging configuration during tests
LOGGING_CONFIG = None
