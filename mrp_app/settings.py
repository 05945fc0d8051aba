"""
Django settings for the mrp_app project.

Values come from environment variables with development defaults. The
database is PostgreSQL when all ``DB_*`` variables are set and a local
SQLite file otherwise.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).strip().lower() in {"1", "true", "yes", "on"}


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "django-insecure-mrp-dev-key")
DEBUG = _env_bool("DJANGO_DEBUG")
ALLOWED_HOSTS = [
    h.strip()
    for h in os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")
    if h.strip()
]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "inventory.apps.InventoryConfig",
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

ROOT_URLCONF = "mrp_app.urls"

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

WSGI_APPLICATION = "mrp_app.wsgi.application"

# Mapping of connection keys to their environment variables
_DB_ENV_VARS = {
    "USER": "DB_USER",
    "PASSWORD": "DB_PASSWORD",
    "HOST": "DB_HOST",
    "PORT": "DB_PORT",
    "NAME": "DB_NAME",
}


def load_db_config():
    """Return the default database from the environment or a SQLite fallback."""
    env_config = {k: os.getenv(env) for k, env in _DB_ENV_VARS.items()}
    if all(env_config.values()):
        env_config["ENGINE"] = os.getenv(
            "DB_ENGINE", "django.db.backends.postgresql"
        )
        return env_config
    return {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.getenv("SQLITE_PATH", str(BASE_DIR / "db.sqlite3")),
    }


DATABASES = {"default": load_db_config()}

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.getenv("TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.SessionAuthentication",
        "rest_framework.authentication.BasicAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "EXCEPTION_HANDLER": "inventory.exceptions.custom_exception_handler",
}

# Purchase order numbering: "PO-1001", or "PO-2026-0001" when year scoped.
PO_NUMBER_PREFIX = os.getenv("PO_NUMBER_PREFIX", "PO-")
PO_NUMBER_YEAR_SCOPED = _env_bool("PO_NUMBER_YEAR_SCOPED")
PO_NUMBER_PADDING = int(os.getenv("PO_NUMBER_PADDING", "4"))

# Attempts made when a receiving transaction hits a lock conflict.
RECEIVING_MAX_RETRIES = int(os.getenv("RECEIVING_MAX_RETRIES", "5"))
