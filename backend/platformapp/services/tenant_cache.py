from __future__ import annotations

from datetime import datetime
from typing import Optional
import logging

from django.conf import settings
from django.core.cache import caches
from django.utils import timezone

from platformapp.models import Tenant

logger = logging.getLogger(__name__)

CACHE_ALIAS = "tenants"
FRESH_WINDOW_SECONDS = 10
FRESH_TTL_SECONDS = 5


def _cache():
    return caches[CACHE_ALIAS]


def _key(slug: str) -> str:
    return f"tenant:{slug}"


def tenant_cache_ttl(tenant: Tenant, now: Optional[datetime] = None) -> int:
    """Recently edited tenants are cached briefly so dashboard edits show up fast."""
    now = now or timezone.now()
    if tenant.updated_at and (now - tenant.updated_at).total_seconds() < FRESH_WINDOW_SECONDS:
        return FRESH_TTL_SECONDS
    return settings.TENANT_CACHE_TTL


def get_tenant_by_slug(slug: str, *, bypass_cache: bool = False) -> Optional[Tenant]:
    """
    Tenant for `slug`, None when it does not exist. Only active tenants are
    cached, so an activation by another process shows up on the next lookup.
    """
    if not bypass_cache:
        cached = _cache().get(_key(slug))
        if cached is not None:
            return cached

    tenant = Tenant.objects.filter(slug=slug).first()
    if tenant is not None and tenant.active:
        _cache().set(_key(slug), tenant, timeout=tenant_cache_ttl(tenant))
    elif tenant is None and bypass_cache:
        logger.info("tenant %s not found (cache bypassed)", slug)
    return tenant


def clear_tenant_cache(slug: Optional[str] = None) -> None:
    if slug:
        _cache().delete(_key(slug))
    else:
        _cache().clear()
