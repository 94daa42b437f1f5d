import logging
import time
import uuid

from django.conf import settings
from django.http import HttpResponse

logger = logging.getLogger(__name__)

ALLOWED_METHODS = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
ALLOWED_HEADERS = "authorization, content-type, accept, x-tenant-id, x-bypass-tenant-cache"
SLOW_REQUEST_MS = 1000


class DevCORSPreflightMiddleware:
    """
    DEBUG-only: short-circuit every OPTIONS request with CORS headers so the
    storefront dev server never sees 404/302 on preflight.
    """
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if settings.DEBUG and request.method == "OPTIONS":
            resp = HttpResponse(status=204)
            resp["Access-Control-Allow-Origin"] = request.META.get("HTTP_ORIGIN", "*")
            resp["Vary"] = "Origin"
            resp["Access-Control-Allow-Methods"] = ALLOWED_METHODS
            resp["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
            resp["Access-Control-Max-Age"] = "600"
            return resp
        return self.get_response(request)


class RequestIDMiddleware:
    """
    Adds/propagates X-Request-ID for tracing; the webhook signature check also reads it.
    """
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        rid = request.META.get("HTTP_X_REQUEST_ID") or str(uuid.uuid4())
        request.request_id = rid
        response = self.get_response(request)
        response["X-Request-ID"] = rid
        return response


class TimingMiddleware:
    """
    Adds X-Response-Time-ms and logs slow requests.
    """
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        t0 = time.perf_counter()
        resp = self.get_response(request)
        dt = int((time.perf_counter() - t0) * 1000)
        resp["X-Response-Time-ms"] = str(dt)
        if dt >= SLOW_REQUEST_MS:
            logger.warning("slow request %s %s took %sms (request_id=%s)",
                           request.method, request.path, dt, getattr(request, "request_id", "-"))
        return resp
