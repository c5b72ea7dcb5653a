"""Settings for the trivia portal API."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _as_bool_env(name: str, *, default: str = "0") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _as_csv_env(name: str, *, default: str = "") -> list[str]:
    value = os.environ.get(name, default)
    return [part.strip() for part in value.split(",") if part.strip()]


SECRET_KEY = os.environ.get("TRIVIA_PORTAL_SECRET_KEY", "dev-insecure-secret-change-me")

DEBUG = _as_bool_env("TRIVIA_PORTAL_DEBUG", default="false")

ALLOWED_HOSTS = _as_csv_env("TRIVIA_PORTAL_ALLOWED_HOSTS") or [
    "127.0.0.1",
    "localhost",
]
CSRF_TRUSTED_ORIGINS = _as_csv_env("TRIVIA_PORTAL_CSRF_TRUSTED_ORIGINS")
SESSION_COOKIE_SECURE = _as_bool_env("TRIVIA_PORTAL_SESSION_COOKIE_SECURE", default="0")
CSRF_COOKIE_SECURE = _as_bool_env("TRIVIA_PORTAL_CSRF_COOKIE_SECURE", default="0")

if _as_bool_env("TRIVIA_PORTAL_TRUST_X_FORWARDED_PROTO", default="0"):
    SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "quizzes",
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

ROOT_URLCONF = "trivia_portal.urls"

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

WSGI_APPLICATION = "trivia_portal.wsgi.application"
ASGI_APPLICATION = "trivia_portal.asgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("TRIVIA_PORTAL_DB_PATH", str(BASE_DIR / "db.sqlite3")),
        # Writers queue on the lock taken at BEGIN rather than upgrading mid-transaction.
        "OPTIONS": {
            "transaction_mode": "IMMEDIATE",
            "timeout": int(os.environ.get("TRIVIA_PORTAL_DB_TIMEOUT_SECONDS", "20")),
        },
        "TEST": {
            "NAME": os.environ.get("TRIVIA_PORTAL_TEST_DB_PATH", str(BASE_DIR / "test_db.sqlite3")),
        },
    }
}

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.environ.get("TRIVIA_PORTAL_TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True

STATIC_URL = "/static/"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

X_FRAME_OPTIONS = "SAMEORIGIN"

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "trivia-portal-cache",
    }
}

QUIZ_SIGNUP_RATE_LIMIT = int(os.environ.get("QUIZ_SIGNUP_RATE_LIMIT", "20"))
QUIZ_LOGIN_RATE_LIMIT = int(os.environ.get("QUIZ_LOGIN_RATE_LIMIT", "40"))
QUIZ_UNLOCK_RATE_LIMIT = int(os.environ.get("QUIZ_UNLOCK_RATE_LIMIT", "600"))
QUIZ_RATE_LIMIT_WINDOW_SECONDS = int(os.environ.get("QUIZ_RATE_LIMIT_WINDOW_SECONDS", "3600"))

TRIVIA_OPENTDB_API_URL = os.environ.get("TRIVIA_OPENTDB_API_URL", "https://opentdb.com/api.php")
TRIVIA_UPSTREAM_TIMEOUT_SECONDS = int(os.environ.get("TRIVIA_UPSTREAM_TIMEOUT_SECONDS", "5"))
TRIVIA_REPLENISH_BATCH_SIZE = int(os.environ.get("TRIVIA_REPLENISH_BATCH_SIZE", "50"))
TRIVIA_LOW_STOCK_MARGIN = int(os.environ.get("TRIVIA_LOW_STOCK_MARGIN", "40"))
TRIVIA_MAX_SAMPLE_SIZE = int(os.environ.get("TRIVIA_MAX_SAMPLE_SIZE", "50"))
TRIVIA_POINTS_PER_CORRECT_ANSWER = int(os.environ.get("TRIVIA_POINTS_PER_CORRECT_ANSWER", "100"))
TRIVIA_SIGNUP_COIN_GRANT = int(os.environ.get("TRIVIA_SIGNUP_COIN_GRANT", "10"))
TRIVIA_LEADERBOARD_LIMIT = int(os.environ.get("TRIVIA_LEADERBOARD_LIMIT", "100"))
TRIVIA_PAYMENT_WEBHOOK_TOKEN = os.environ.get("TRIVIA_PAYMENT_WEBHOOK_TOKEN", "").strip()
