# backend/platformapp/middleware.py
import logging

from django.conf import settings
from django.http import HttpResponseRedirect
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication

from common.permissions import is_super_admin
from platformapp.services.tenant_cache import get_tenant_by_slug

logger = logging.getLogger(__name__)

# first path segment (after the locale) that is never a tenant slug;
# segments with a dot (favicon.ico, robots.txt) are skipped as well
RESERVED_SEGMENTS = {
    "", "api", "admin", "static", "media", "signup", "login",
    "dashboard", "tenants", "404", "ping", "auth", "test-theme",
}
NOT_FOUND_PATH = "/404"


def _split_locale(path: str):
    segments = path.strip("/").split("/")
    locales = getattr(settings, "STOREFRONT_LOCALES", [])
    if segments and segments[0] in locales:
        return segments[0], True, segments[1:] or [""]
    return settings.DEFAULT_LOCALE, False, segments


def _bypass_cache(request) -> bool:
    return (request.META.get("HTTP_X_BYPASS_TENANT_CACHE", "").lower() == "true"
            or "_t" in request.GET)


def _resolve_user(request):
    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated:
        return user
    try:
        result = JWTAuthentication().authenticate(request)
    except AuthenticationFailed:
        return None
    return result[0] if result else None


class TenantMiddleware:
    """
    Resolves `/<locale?>/<slug>/...` storefront paths to a tenant.

    - unknown or inactive tenant -> redirect to /404
    - attaches request.tenant / request.locale and X-Tenant-ID / X-Tenant-Slug
      (request META for downstream views, response headers for clients)
    - `/<slug>/dashboard...` requires the tenant owner or a superadmin
    """
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        locale, has_locale, segments = _split_locale(request.path_info)
        request.locale = locale
        slug = segments[0]
        if slug in RESERVED_SEGMENTS or "." in slug:
            return self.get_response(request)

        bypass = _bypass_cache(request)
        tenant = get_tenant_by_slug(slug, bypass_cache=bypass)
        if tenant is None or not tenant.active:
            logger.info("storefront path %s: tenant %s unavailable", request.path_info, slug)
            return HttpResponseRedirect(NOT_FOUND_PATH)

        prefix = f"/{locale}" if has_locale else ""
        if len(segments) > 1 and segments[1] == "dashboard":
            user = _resolve_user(request)
            if user is None:
                return HttpResponseRedirect(f"{prefix}/login")
            if not (is_super_admin(user) or tenant.owner_id == user.id):
                return HttpResponseRedirect(f"{prefix}/{slug}")

        request.tenant = tenant
        request.META["HTTP_X_TENANT_ID"] = str(tenant.id)
        request.META["HTTP_X_TENANT_SLUG"] = tenant.slug

        response = self.get_response(request)
        response["X-Tenant-ID"] = str(tenant.id)
        response["X-Tenant-Slug"] = tenant.slug
        return response
