# backend/vitrina_backend/settings/dev.py
import os

from .base import *

DEBUG = True

# Put our dev preflight middleware at the VERY TOP
MIDDLEWARE = [
    "core.middleware.DevCORSPreflightMiddleware",
] + MIDDLEWARE

ALLOWED_HOSTS = ["*", "localhost", "127.0.0.1", "testserver"]

FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN", "http://localhost:3000")

CSRF_TRUSTED_ORIGINS = [FRONTEND_ORIGIN]
CORS_ALLOWED_ORIGINS = [FRONTEND_ORIGIN]

# No broker in dev: run webhook reconciliation inline unless told otherwise
CELERY_TASK_ALWAYS_EAGER = os.getenv("CELERY_TASK_ALWAYS_EAGER", "true").lower() == "true"

# Plain storage so tests and runserver work without collectstatic
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
}
