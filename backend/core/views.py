import logging

from django.core.cache import caches
from django.db import connection
from django.http import JsonResponse
from django.utils import timezone

from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import viewsets, mixins
from rest_framework.permissions import AllowAny

from . import flags
from .models import FeatureFlag
from .permissions import IsStaffOrReadOnly
from .serializers import FeatureFlagSerializer

logger = logging.getLogger(__name__)

# --- Tiny public endpoints ----------------------------------------------------

def healthz(_request):
    return JsonResponse({"ok": True})


# --- Deeper diagnostics -------------------------------------------------------

def check_db() -> dict:
    try:
        with connection.cursor() as cur:
            cur.execute("SELECT 1;")
            cur.fetchone()
        return {"ok": True}
    except Exception as e:
        logger.error("db health check failed: %s", e)
        return {"ok": False, "error": str(e)}


def check_caches() -> dict:
    out = {}
    for alias in ("default", "flags", "tenants"):
        try:
            cache = caches[alias]
            cache.set("core_healthz_probe", "1", timeout=10)
            out[alias] = {"ok": cache.get("core_healthz_probe") == "1"}
        except Exception as e:
            logger.error("cache %s health check failed: %s", alias, e)
            out[alias] = {"ok": False, "error": str(e)}
    return out


class DeepHealthView(APIView):
    """
    GET /api/v1/core/deep-health/?db=1&cache=1
    Return component statuses. All checks optional.
    """
    permission_classes = [AllowAny]

    def get(self, request):
        out = {"ok": True, "time": timezone.now().isoformat()}

        if request.query_params.get("db") == "1":
            out["db"] = check_db()
            out["ok"] = out["ok"] and out["db"]["ok"]

        if request.query_params.get("cache") == "1":
            out["cache"] = check_caches()
            out["ok"] = out["ok"] and all(c["ok"] for c in out["cache"].values())

        return Response(out, status=200 if out["ok"] else 503)


# --- Feature flags ------------------------------------------------------------

def _flag_context(request):
    return {
        "tenant_id": request.query_params.get("tenantId") or None,
        "tenant_template": request.query_params.get("template") or None,
        "user_id": request.query_params.get("userId") or None,
    }


class FlagCheckView(APIView):
    """GET /api/v1/core/flags?key=new_checkout&tenantId=..&userId=.."""
    permission_classes = [AllowAny]

    def get(self, request):
        key = (request.query_params.get("key") or "").strip()
        if not key:
            return Response({"detail": "Missing required parameter: key"}, status=400)
        enabled = flags.is_enabled(key, _flag_context(request))
        flag = flags.get_flag(key)
        return Response({
            "enabled": enabled,
            "flag": {"key": flag["key"], "description": flag["description"]} if flag else None,
        })


class FlagBatchView(APIView):
    """GET /api/v1/core/flags/batch?keys=a&keys=b"""
    permission_classes = [AllowAny]

    def get(self, request):
        keys = [k.strip() for k in request.query_params.getlist("keys") if k.strip()]
        if not keys:
            return Response({"detail": "Missing required parameter: keys"}, status=400)
        ctx = _flag_context(request)
        return Response({"flags": {k: flags.is_enabled(k, ctx) for k in keys}})


class FeatureFlagViewSet(mixins.ListModelMixin,
                         mixins.RetrieveModelMixin,
                         mixins.CreateModelMixin,
                         mixins.UpdateModelMixin,
                         mixins.DestroyModelMixin,
                         viewsets.GenericViewSet):
    """Anyone can read flags (frontend needs them); staff to mutate."""
    queryset = FeatureFlag.objects.all().order_by("key")
    serializer_class = FeatureFlagSerializer
    permission_classes = [IsStaffOrReadOnly]
