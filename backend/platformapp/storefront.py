# backend/platformapp/storefront.py
"""
JSON payloads behind the storefront routes `/<locale?>/<slug>/` and
`/<locale?>/<slug>/dashboard/`. TenantMiddleware has already resolved the
tenant (and redirected unknown/inactive ones) before these views run.
"""
from django.db.models import Count, Sum
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from commerce.models import Order, Product
from commerce.serializers import ProductSerializer
from common.money import money_str

from .permissions import can_manage_tenant
from .serializers import StorefrontTenantSerializer
from .services.tenant_cache import get_tenant_by_slug
from .theme import resolve_tenant_theme


def _request_tenant(request, slug):
    tenant = getattr(request, "tenant", None) or get_tenant_by_slug(slug)
    if tenant is None or not tenant.active:
        raise NotFound("Tenant not found")
    return tenant


class StorefrontView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, slug, locale=None):
        tenant = _request_tenant(request, slug)
        products = Product.objects.filter(tenant=tenant, active=True).order_by("display_order", "created_at")
        return Response({
            "locale": getattr(request, "locale", locale),
            "tenant": StorefrontTenantSerializer(tenant).data,
            "theme": resolve_tenant_theme(tenant),
            "products": ProductSerializer(products, many=True).data,
        })


class StorefrontDashboardView(APIView):
    """Owner landing summary for the tenant dashboard."""
    permission_classes = [IsAuthenticated]

    def get(self, request, slug, locale=None):
        tenant = _request_tenant(request, slug)
        if not can_manage_tenant(request.user, tenant):
            raise PermissionDenied("Forbidden. Not tenant owner.")

        products = Product.objects.filter(tenant=tenant)
        orders = Order.objects.filter(tenant=tenant)
        by_status = {row["status"]: row["n"] for row in orders.values("status").annotate(n=Count("id"))}
        revenue = orders.exclude(status=Order.Status.CANCELLED).aggregate(s=Sum("total"))["s"]

        return Response({
            "tenant": StorefrontTenantSerializer(tenant).data,
            "products": {"total": products.count(), "active": products.filter(active=True).count()},
            "orders": {"total": sum(by_status.values()), "by_status": by_status},
            "revenue": money_str(revenue),
        })
