"""
Django settings for the pinghunt project.

Every deployment-specific value is read from the process environment.
A ``.env`` file next to ``manage.py`` is loaded first (``python-dotenv``)
so local development does not need exported variables.

Groups
------
- Django core / security
- Database
- REST framework, SimpleJWT, drf-spectacular
- Prize wallets & treasury
- Hint verification & proximity heuristics
- Outbound collaborators (geocoding, price oracle, notifications)
- Logging
"""

from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env")


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str = "") -> list[str]:
    return [item.strip() for item in os.environ.get(name, default).split(",") if item.strip()]


# ── Django core / security ───────────────────────────────────────────
SECRET_KEY = os.environ.get(
    "DJANGO_SECRET_KEY",
    "django-insecure-dev-only-change-me",
)
DEBUG = _env_bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = _env_list("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Third-party
    "rest_framework",
    "rest_framework_simplejwt",
    "drf_spectacular",
    # Project apps
    "core",
    "accounts",
    "pings",
    "treasury",
    "hints",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "pinghunt.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "pinghunt.wsgi.application"

AUTH_USER_MODEL = "accounts.User"

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# ── Database ─────────────────────────────────────────────────────────
if os.environ.get("POSTGRES_DB"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.environ["POSTGRES_DB"],
            "USER": os.environ.get("POSTGRES_USER", "postgres"),
            "PASSWORD": os.environ.get("POSTGRES_PASSWORD", ""),
            "HOST": os.environ.get("POSTGRES_HOST", "localhost"),
            "PORT": os.environ.get("POSTGRES_PORT", "5432"),
            "CONN_MAX_AGE": 60,
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }


# ── REST framework ───────────────────────────────────────────────────
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "EXCEPTION_HANDLER": "core.domain.exception_handler.domain_exception_handler",
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=60),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=7),
    "AUTH_HEADER_TYPES": ("Bearer",),
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Ping Hunt API",
    "DESCRIPTION": (
        "Location-based prize hunt: queued pings, claim approval, "
        "treasury funding and paid hints."
    ),
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
}


# ── Prize wallets & treasury ─────────────────────────────────────────
# 64 hex characters → 32-byte AES-256 key.  Validated by the ``pings.E001``
# system check and again on every encrypt / reveal.
PRIZE_WALLET_ENCRYPTION_KEY = os.environ.get("PRIZE_WALLET_ENCRYPTION_KEY", "")

SOLANA_RPC_URL = os.environ.get("SOLANA_RPC_URL", "https://api.mainnet-beta.solana.com")
TREASURY_PRIVATE_KEY = os.environ.get("TREASURY_PRIVATE_KEY", "")

TREASURY_MAX_LAMPORTS_PER_PING = int(
    os.environ.get("TREASURY_MAX_LAMPORTS_PER_PING", 5_000_000_000)
)
TREASURY_DAILY_CAP_LAMPORTS = int(
    os.environ.get("TREASURY_DAILY_CAP_LAMPORTS", 20_000_000_000)
)


# ── Hint verification & proximity heuristics ─────────────────────────
HINT_TOTAL_TOLERANCE = float(os.environ.get("HINT_TOTAL_TOLERANCE", 0.05))
HINT_SPLIT_TOLERANCE = float(os.environ.get("HINT_SPLIT_TOLERANCE", 0.10))

PROXIMITY_MAX_SPEED_KMH = float(os.environ.get("PROXIMITY_MAX_SPEED_KMH", 200))
PROXIMITY_DEFAULT_RADIUS_M = int(os.environ.get("PROXIMITY_DEFAULT_RADIUS_M", 5))


# ── Outbound collaborators ───────────────────────────────────────────
PRICE_ORACLE_URL = os.environ.get("PRICE_ORACLE_URL", "https://api.jup.ag/price/v2")
GEOCODING_API_URL = os.environ.get(
    "GEOCODING_API_URL",
    "https://maps.googleapis.com/maps/api/geocode/json",
)
GEOCODING_API_KEY = os.environ.get("GEOCODING_API_KEY", "")
EXTERNAL_HTTP_TIMEOUT = float(os.environ.get("EXTERNAL_HTTP_TIMEOUT", 10))

NOTIFICATION_BACKEND = os.environ.get(
    "NOTIFICATION_BACKEND",
    "core.domain.notifications.LoggingNotificationBackend",
)


# ── Logging ──────────────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{asctime} {levelname} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": os.environ.get("DJANGO_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
        **{
            app: {
                "handlers": ["console"],
                "level": os.environ.get("DJANGO_LOG_LEVEL", "INFO"),
                "propagate": False,
            }
            for app in ("core", "accounts", "pings", "treasury", "hints")
        },
    },
}
