# File: backend/vitrina_backend/urls.py
from django.conf import settings
from django.contrib import admin
from django.urls import path, re_path, include
from django.http import JsonResponse
from django.views.generic import RedirectView
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView, TokenVerifyView

from platformapp.storefront import StorefrontView, StorefrontDashboardView


def root(_r):
    return JsonResponse({
        "service": "vitrina-backend",
        "docs": "/api/docs/",
        "health": "/api/v1/core/healthz/",
    })


def ping(_r):
    return JsonResponse({"pong": True})


def not_found(_r):
    return JsonResponse({"detail": "Tenant not found"}, status=404)


_LOCALE = "|".join(settings.STOREFRONT_LOCALES) or "es"

urlpatterns = [
    path("ping/", ping),
    path("404", not_found, name="tenant-not-found"),
    path("admin", RedirectView.as_view(url="/admin/", permanent=False)),
    path("admin/", admin.site.urls),

    # API docs
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),

    # Feature routers
    path("api/v1/core/", include("core.urls")),
    path("api/v1/identity/", include("identity.urls")),
    path("api/v1/platform/", include("platformapp.urls")),
    path("api/v1/crm/", include("crm.urls")),
    path("api/v1/commerce/", include("commerce.urls")),
    path("api/v1/payments/", include("payments.urls")),
    path("api/v1/consignments/", include("consignments.urls")),
    path("api/v1/analytics/", include("analyticsapp.urls")),

    # SimpleJWT
    path("api/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("api/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("api/token/verify/", TokenVerifyView.as_view(), name="token_verify"),

    path("", root),

    # Storefront surfaces; TenantMiddleware has already attached request.tenant
    re_path(rf"^(?:(?P<locale>{_LOCALE})/)?(?P<slug>[a-z0-9-]+)/dashboard/?$",
            StorefrontDashboardView.as_view(), name="storefront-dashboard"),
    re_path(rf"^(?:(?P<locale>{_LOCALE})/)?(?P<slug>[a-z0-9-]+)/?$",
            StorefrontView.as_view(), name="storefront"),
]
