import logging
import re

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils.crypto import get_random_string
from rest_framework import status, viewsets
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from commerce.models import Product
from common.exceptions import Conflict
from common.mixins import TenantContextMixin
from common.uploads import save_tenant_image

from .models import Tenant, AuditLog
from .permissions import can_manage_tenant
from .serializers import (
    SLUG_PATTERN, THEME_SLUG_PATTERN, SignupSerializer, PublicTenantSerializer,
    OnboardingSerializer, TenantSettingsSerializer, ThemeUpdateSerializer, AuditLogSerializer,
)
from .services.audit import log_event
from .theme import merge_overrides, resolve_tenant_theme

logger = logging.getLogger(__name__)
User = get_user_model()

DEFAULT_BRAND_COLORS = {"primary": "#3B82F6", "secondary": "#10B981"}


def suggest_slug(base: str) -> str:
    base = re.sub(r"[^a-z0-9]+", "-", (base or "").lower()).strip("-")[:26] or "tienda"
    if len(base) < 3:
        base = f"{base}-shop"
    if not Tenant.objects.filter(slug=base).exists():
        return base
    for i in range(2, 100):
        cand = f"{base}-{i}"
        if not Tenant.objects.filter(slug=cand).exists():
            return cand
    return f"{base}-{get_random_string(4, 'abcdefghijklmnopqrstuvwxyz0123456789')}"


# Public utility: resolve tenant id by slug (UI bootstrapping by domain/slug)
class TenantResolveView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        slug = (request.query_params.get("slug") or "").strip()
        if not slug:
            return Response({"detail": "slug required"}, status=400)
        t = Tenant.objects.filter(slug=slug, active=True).first()
        if t is None:
            return Response({"detail": "not found"}, status=404)
        return Response({"id": str(t.id), "slug": t.slug, "name": t.name,
                         "template": t.template, "plan": t.plan})


class PublicTenantListView(APIView):
    """GET /api/v1/platform/tenants/: active storefronts directory."""
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        qs = Tenant.objects.filter(active=True).order_by("name")
        return Response(PublicTenantSerializer(qs, many=True).data)


# ---- Signup ----
class SignupThrottle(AnonRateThrottle):
    rate = "10/hour"


class SignupView(APIView):
    """
    POST /api/v1/platform/signup/
    Creates the owner account and its (gallery, free plan) tenant in one transaction.
    """
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [SignupThrottle]

    def post(self, request):
        ser = SignupSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        if Tenant.objects.filter(slug=data["slug"]).exists():
            raise Conflict("Slug is already taken")
        if User.objects.filter(email__iexact=data["email"]).exists():
            raise Conflict("Email is already registered")

        with transaction.atomic():
            user = User.objects.create_user(email=data["email"], password=data["password"],
                                            full_name=data["business_name"])
            tenant = Tenant.objects.create(
                slug=data["slug"],
                name=data["business_name"],
                owner=user,
                owner_email=user.email,
                template=Tenant.Template.GALLERY,
                theme_overrides={},
                config={"business_name": data["business_name"], "colors": dict(DEFAULT_BRAND_COLORS)},
                active=True,
                plan="free",
            )
        logger.info("signup: tenant %s created for %s", tenant.slug, user.email)

        refresh = RefreshToken.for_user(user)
        return Response({
            "user_id": str(user.id),
            "tenant_id": str(tenant.id),
            "tenant_slug": tenant.slug,
            "access": str(refresh.access_token),
            "refresh": str(refresh),
        }, status=status.HTTP_201_CREATED)


class ValidateSlugView(APIView):
    """GET /api/v1/platform/signup/validate-slug/?slug=mi-tienda"""
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        slug = (request.query_params.get("slug") or "").strip().lower()
        if not (3 <= len(slug) <= 30) or not re.match(SLUG_PATTERN, slug):
            return Response({
                "available": False,
                "error": "Use 3-30 lowercase letters, numbers and single hyphens.",
                "suggestion": suggest_slug(slug),
            })
        if Tenant.objects.filter(slug=slug).exists():
            return Response({"available": False, "suggestion": suggest_slug(slug)})
        return Response({"available": True})


# ---- Onboarding ----
class OnboardingSaveView(APIView):
    """
    PATCH /api/v1/platform/onboarding/save/
    Saves branding, seeds the first products and activates the owner's tenant.
    """
    permission_classes = [IsAuthenticated]

    def patch(self, request):
        ser = OnboardingSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        tenant = Tenant.objects.filter(owner=request.user).order_by("created_at").first()
        if tenant is None:
            raise NotFound("Tenant not found")

        cfg = data["config"]
        with transaction.atomic():
            config = dict(tenant.config or {})
            config["business_name"] = cfg["business_name"]
            config["colors"] = {**(config.get("colors") or {}), **cfg["colors"]}
            if cfg.get("logo"):
                config["logo_url"] = cfg["logo"]
            tenant.config = config
            tenant.name = cfg["business_name"]
            tenant.active = True
            tenant.save()

            products = [
                Product(tenant=tenant, display_order=i, currency=config.get("currency", "ARS"), **p)
                for i, p in enumerate(data.get("products") or [])
            ]
            Product.objects.bulk_create(products)

        return Response({
            "success": True,
            "tenant_id": str(tenant.id),
            "tenant_slug": tenant.slug,
            "products_created": len(products),
        })


# ---- Settings ----
class TenantSettingsView(TenantContextMixin, APIView):
    """GET/PATCH /api/v1/platform/settings/ (X-Tenant-ID or ?tenant=)"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(TenantSettingsSerializer(self.tenant).data)

    def patch(self, request):
        ser = TenantSettingsSerializer(self.tenant, data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        tenant = ser.save()
        log_event(tenant=tenant, user_id=str(request.user.id), action="tenant.settings",
                  entity="platformapp.Tenant", entity_id=str(tenant.id),
                  meta={"fields": sorted(request.data.keys())})
        return Response(TenantSettingsSerializer(tenant).data)


class BannerUploadView(TenantContextMixin, APIView):
    """POST /api/v1/platform/settings/upload-banner/ (multipart `file`)"""
    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request):
        tenant = self.tenant
        url = save_tenant_image(tenant, request.FILES.get("file"), folder="banners")
        tenant.config = {**(tenant.config or {}), "banner_url": url}
        tenant.save(update_fields=["config", "updated_at"])
        return Response({"url": url}, status=status.HTTP_201_CREATED)


# ---- Theme ----
class TenantThemeView(APIView):
    """
    GET   /api/v1/platform/tenants/<slug>/theme/
    PATCH /api/v1/platform/tenants/<slug>/theme/  {"template"?, "overrides"?}
    """
    permission_classes = [IsAuthenticated]

    def _tenant(self, slug):
        if not re.match(THEME_SLUG_PATTERN, slug or ""):
            raise ValidationError({"detail": "Invalid tenant slug"})
        tenant = Tenant.objects.filter(slug=slug, active=True).first()
        if tenant is None:
            raise NotFound("Tenant not found")
        return tenant

    def _payload(self, tenant):
        return {
            "template": tenant.template,
            "overrides": tenant.theme_overrides or {},
            "resolved": resolve_tenant_theme(tenant),
        }

    def get(self, request, slug):
        return Response(self._payload(self._tenant(slug)))

    def patch(self, request, slug):
        tenant = self._tenant(slug)
        if not can_manage_tenant(request.user, tenant):
            raise PermissionDenied("Forbidden. Not tenant owner.")

        ser = ThemeUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        fields = ["updated_at"]
        if "template" in data:
            tenant.template = data["template"]
            fields.append("template")
        if "overrides" in data:
            tenant.theme_overrides = merge_overrides(tenant.theme_overrides, data["overrides"])
            fields.append("theme_overrides")
        tenant.save(update_fields=fields)

        log_event(tenant=tenant, user_id=str(request.user.id), action="tenant.theme",
                  entity="platformapp.Tenant", entity_id=str(tenant.id), meta=dict(request.data))
        return Response(self._payload(tenant))


class AuditLogViewSet(TenantContextMixin, viewsets.ReadOnlyModelViewSet):
    """Owner-visible audit trail of the tenant in context."""
    permission_classes = [IsAuthenticated]
    serializer_class = AuditLogSerializer

    def get_queryset(self):
        qs = AuditLog.objects.filter(tenant=self.tenant).order_by("-created_at")
        action_name = self.request.query_params.get("action")
        if action_name:
            qs = qs.filter(action=action_name)
        return qs
