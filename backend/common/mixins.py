# backend/common/mixins.py
from __future__ import annotations

import logging
from typing import Iterable, Dict, Any, Optional

from django.core.exceptions import FieldDoesNotExist
from django.utils.functional import cached_property
from rest_framework.exceptions import PermissionDenied
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import SAFE_METHODS
from rest_framework.viewsets import ModelViewSet

from platformapp.models import Tenant
from platformapp.permissions import (
    can_manage_tenant, get_request_tenant_id, get_tenant_by_id, resolve_managed_tenant,
)
from platformapp.services.audit import log_event

logger = logging.getLogger(__name__)

# router lookup pattern for UUID primary keys
UUID_RE = r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"


# -----------------------------
# Pagination
# -----------------------------
class DefaultPagination(PageNumberPagination):
    page_size = 25
    page_size_query_param = "page_size"
    max_page_size = 200


# -----------------------------
# Dashboard tenant context
# -----------------------------
class TenantContextMixin:
    """
    For dashboard APIViews: `self.tenant` is the tenant from `X-Tenant-ID` /
    `?tenant=`, already checked for owner/superadmin access.
    """

    @cached_property
    def tenant(self) -> Tenant:
        return resolve_managed_tenant(self.request)


# -----------------------------
# Base tenant-scoped MVSet
# -----------------------------
class TenantScopedModelViewSet(ModelViewSet):
    """
    Multi-tenant base ViewSet:

    - Reads tenant from `X-Tenant-ID` header or `?tenant=` query param.
    - Reads: filtered by tenant. Visitors (not owner/superadmin) only see
      rows matching `public_filters` when `allow_public_list` is set, otherwise nothing.
    - Writes: owner or superadmin of the tenant; tenant is injected server-side.

    Search (`q`), ordering (`order`) and field filters come from the DRF
    filter backends declared on the subclass.
    """
    pagination_class = DefaultPagination

    tenant_field = "tenant"

    allow_public_list = False
    public_filters: Dict[str, Any] = {"active": True}

    ordering: Iterable[str] = ("-created_at",)

    @cached_property
    def request_tenant(self) -> Optional[Tenant]:
        tid = get_request_tenant_id(self.request)
        return get_tenant_by_id(tid) if tid else None

    def can_manage(self) -> bool:
        tenant = self.request_tenant
        return tenant is not None and can_manage_tenant(self.request.user, tenant)

    def _has_field(self, field_name: str) -> bool:
        try:
            self.queryset.model._meta.get_field(field_name)
            return True
        except FieldDoesNotExist:
            return False

    def get_queryset(self):
        qs = self.queryset.all()
        tenant = self.request_tenant

        if tenant is None:
            if self.request.method in SAFE_METHODS:
                return qs.none()
            raise PermissionDenied("Missing tenant context")

        qs = qs.filter(**{self.tenant_field: tenant})
        if self.can_manage():
            return qs
        if self.request.method not in SAFE_METHODS:
            raise PermissionDenied("Forbidden. Not tenant owner.")
        if not self.allow_public_list:
            return qs.none()
        # only the keys that exist on the model
        filters = {k: v for k, v in (self.public_filters or {}).items() if self._has_field(k)}
        return qs.filter(**filters)

    def perform_create(self, serializer):
        return serializer.save(**{self.tenant_field: resolve_managed_tenant(self.request)})


# -----------------------------
# Audit
# -----------------------------
class AuditedActionsMixin:
    """Attach to tenant-scoped ViewSets you want to auto-audit."""
    def _audit(self, action: str, obj, meta=None):
        user_id = getattr(self.request.user, "id", None)
        try:
            log_event(tenant=obj.tenant, user_id=str(user_id) if user_id else None,
                      action=action, entity=f"{obj._meta.app_label}.{obj.__class__.__name__}",
                      entity_id=str(obj.pk), meta=meta or {})
        except Exception:
            # audit trail must not fail the user's write
            logger.exception("audit log failed for %s %s", action, obj.pk)

    def perform_create(self, serializer):
        obj = super().perform_create(serializer)
        self._audit("create", obj, meta={"path": self.request.path, "method": self.request.method})
        return obj

    def perform_update(self, serializer):
        obj = serializer.save()
        self._audit("update", obj, meta={"path": self.request.path, "method": self.request.method})
        return obj

    def perform_destroy(self, instance):
        self._audit("delete", instance, meta={"path": self.request.path, "method": self.request.method})
        return super().perform_destroy(instance)
