import os

from decouple import Csv, config  # type: ignore
from dj_database_url import parse as db_url


BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def base_dir_join(*args):
    return os.path.join(BASE_DIR, *args)


SITE_ID = 1

DEBUG = True

ADMINS = (("Admin", "foo@example.com"),)

AUTH_USER_MODEL = "users.User"

ALLOWED_HOSTS: list[str] = []

DATABASES = {
    "default": config(
        "DATABASE_URL", default=f"sqlite:///{base_dir_join('db.sqlite3')}", cast=db_url
    ),
}
INTERNAL_INSTALLED_APPS = [
    "di_core",
    "common",
    "users",
    "calendar_events",
]
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "drf_spectacular",
    "django_guid",
    "django_filters",
    *INTERNAL_INSTALLED_APPS,
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "django_guid.middleware.guid_middleware",
]

ROOT_URLCONF = "calendar_events_api.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "calendar_events_api.wsgi.application"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

AUTH_PASSWORD_VALIDATORS = [
    {
        "NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.MinimumLengthValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.CommonPasswordValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.NumericPasswordValidator",
    },
]

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.SessionAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_FILTER_BACKENDS": ("django_filters.rest_framework.DjangoFilterBackend",),
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "EXCEPTION_HANDLER": "common.utils.view_utils.calendar_events_exception_handler",
}

LANGUAGE_CODE = "en-us"

TIME_ZONE = "UTC"

USE_I18N = True

USE_TZ = True

# Sentry
SENTRY_DSN = config("SENTRY_DSN", default="")
COMMIT_SHA = config("RENDER_GIT_COMMIT", default="")

# Calendar events
CALENDAR_EVENTS_MAX_OCCURRENCES = config("CALENDAR_EVENTS_MAX_OCCURRENCES", cast=int, default=10000)
CALENDAR_EVENTS_ALLOW_UNBOUNDED_RECURRENCE = config(
    "CALENDAR_EVENTS_ALLOW_UNBOUNDED_RECURRENCE", cast=bool, default=False
)
# Models whose rows calendar events can be linked to as activity targets
CALENDAR_EVENTS_ACTIVITY_TARGET_MODELS: list[str] = config(
    "CALENDAR_EVENTS_ACTIVITY_TARGET_MODELS", default="calendar_events.Calendar", cast=Csv()
)

SPECTACULAR_SETTINGS = {
    "TITLE": "Calendar Events API",
    "DESCRIPTION": "API for calendar events with recurrences and attendee invitations",
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
    "PREPROCESSING_HOOKS": [],
    "ENUM_ADD_EXPLICIT_BLANK_NULL_CHOICE": False,
    "ENUM_NAME_OVERRIDES": {
        "RecurrenceTypeEnum": "calendar_events.constants.RecurrenceType.choices",
        "AttendeeStatusEnum": "calendar_events.constants.AttendeeStatus.choices",
        "AttendeeTypeEnum": "calendar_events.constants.AttendeeType.choices",
    },
}
