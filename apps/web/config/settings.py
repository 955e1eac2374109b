"""
Django settings for Tableside.

Configuration comes from the environment - never hardcode credentials.
Run with: SECRET_KEY=... RESTAURANT_API_URL=... python manage.py runserver
"""

from pathlib import Path

import environ  # type: ignore[import-untyped]

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Initialize environ
env = environ.Env(
    DEBUG=(bool, False),
    ALLOWED_HOSTS=(list, []),
    RESTAURANT_API_URL=(str, "http://localhost:8000"),
    RESTAURANT_API_TIMEOUT=(float, 10.0),
    RESTAURANT_BACKEND=(str, "http"),
    ORDER_POLL_INTERVAL=(float, 30.0),
    LOG_LEVEL=(str, "INFO"),
)

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = env("SECRET_KEY")

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = env("DEBUG")

ALLOWED_HOSTS = env("ALLOWED_HOSTS")

# Application definition
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    # Local apps
    "apps.web.ordering",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    # Custom middleware
    "apps.web.core.middleware.CustomerMiddleware",
]

ROOT_URLCONF = "apps.web.config.urls"

WSGI_APPLICATION = "apps.web.config.wsgi.application"

# No local database: orders, tables and customers live on the restaurant
# backend, and session state rides in a signed cookie.
DATABASES: dict = {}

SESSION_ENGINE = "django.contrib.sessions.backends.signed_cookies"
SESSION_COOKIE_AGE = 60 * 60 * 24 * 7  # 7 days, matches the cart TTL
SESSION_COOKIE_HTTPONLY = True

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "tableside",
    }
}

# Restaurant backend
# "http" talks to RESTAURANT_API_URL; "mock" uses an in-memory backend
RESTAURANT_BACKEND = env("RESTAURANT_BACKEND")
RESTAURANT_API_URL = env("RESTAURANT_API_URL")
RESTAURANT_API_TIMEOUT = env("RESTAURANT_API_TIMEOUT")

# Seconds between status checks while an order is open
ORDER_POLL_INTERVAL = env("ORDER_POLL_INTERVAL")

# Logging
LOG_LEVEL = env("LOG_LEVEL")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "{asctime} {levelname} {name}: {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "loggers": {
        "apps": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "django": {
            "handlers": ["console"],
            "level": "WARNING",
        },
    },
}

# Internationalization
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True
