# backend/platformapp/permissions.py
from __future__ import annotations
from typing import Optional
import uuid

from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from common.permissions import is_super_admin
from platformapp.models import Tenant


# --------------------------
# Helpers
# --------------------------
def get_request_tenant_id(request) -> Optional[str]:
    """
    Standard way to read the tenant from the request.
    - Prefer X-Tenant-ID header
    - Fallback to ?tenant= query param
    """
    params = getattr(request, "query_params", request.GET)
    tid = request.META.get("HTTP_X_TENANT_ID") or params.get("tenant")
    return str(tid) if tid else None


def _parse_uuid(value) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def can_manage_tenant(user, tenant: Tenant) -> bool:
    """Owner of the tenant or platform superadmin."""
    if not user or not getattr(user, "is_authenticated", False):
        return False
    if is_super_admin(user):
        return True
    return tenant.owner_id is not None and tenant.owner_id == user.id


def get_tenant_by_id(tenant_id) -> Tenant:
    pk = _parse_uuid(tenant_id)
    tenant = Tenant.objects.filter(pk=pk).first() if pk else None
    if tenant is None:
        raise NotFound("Tenant not found")
    return tenant


def resolve_managed_tenant(request) -> Tenant:
    """
    Tenant the authenticated user is operating on from the dashboard.

    Without an explicit tenant the user's first owned tenant is used.
    Unknown tenant -> 404, no tenant at all -> 400, not owner/superadmin -> 403.
    """
    tenant_id = get_request_tenant_id(request)
    if tenant_id:
        tenant = get_tenant_by_id(tenant_id)
    else:
        tenant = Tenant.objects.filter(owner_id=getattr(request.user, "id", None)).order_by("created_at").first()
        if tenant is None:
            raise ValidationError({"detail": "Tenant context required (send X-Tenant-ID or ?tenant=)."})
    if not can_manage_tenant(request.user, tenant):
        raise PermissionDenied("Forbidden. Not tenant owner.")
    return tenant
