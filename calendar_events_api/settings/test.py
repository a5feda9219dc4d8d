from .base import *


SECRET_KEY = "test"  # nosec

STATIC_ROOT = base_dir_join("staticfiles")
STATIC_URL = "/static/"

DATABASES = {
    "default": config("DATABASE_URL", default="sqlite://:memory:", cast=db_url),
}

# Speed up password hashing
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

CALENDAR_EVENTS_MAX_OCCURRENCES = 10000
CALENDAR_EVENTS_ALLOW_UNBOUNDED_RECURRENCE = True
