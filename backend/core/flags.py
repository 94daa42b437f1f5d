# backend/core/flags.py
"""
Feature flag evaluation.

    is_enabled("new_checkout", {"tenant_id": t.id, "tenant_template": t.template, "user_id": u.id})

Evaluation order: disabled -> environment gate -> no targeting (everyone) ->
template / tenant / user lists -> percentage bucket -> off.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from django.conf import settings
from django.core.cache import caches

from .models import FeatureFlag

logger = logging.getLogger(__name__)

CACHE_ALIAS = "flags"
CACHE_PREFIX = "flag:"


class Flags:
    NEW_CHECKOUT = "new_checkout"
    DARK_MODE = "dark_mode"
    ANALYTICS_V2 = "analytics_v2"
    CONSIGNMENTS = "consignments"
    KITCHEN_VIEW = "kitchen_view"


def _cache():
    return caches[CACHE_ALIAS]


def _snapshot(flag: FeatureFlag) -> Dict[str, Any]:
    return {
        "key": flag.key,
        "description": flag.description,
        "enabled": flag.enabled,
        "rules": flag.rules_json or {},
    }


def simple_hash(value: str) -> int:
    """
    32-bit rolling hash over UTF-16 code units: h = (h << 5) - h + c,
    wrapped to a signed int32, absolute value returned.
    Buckets stay stable across server restarts and match browser-side rollouts.
    """
    h = 0
    data = value.encode("utf-16-le")
    for i in range(0, len(data), 2):
        c = data[i] | (data[i + 1] << 8)
        h = ((h << 5) - h + c) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def get_flag(key: str) -> Optional[Dict[str, Any]]:
    cache_key = f"{CACHE_PREFIX}{key}"
    cached = _cache().get(cache_key)
    if cached is not None:
        return cached

    flag = FeatureFlag.objects.filter(key=key).first()
    if flag is None:
        # misses are not cached so a freshly created flag is visible immediately
        return None
    snap = _snapshot(flag)
    _cache().set(cache_key, snap, timeout=settings.FLAG_CACHE_TTL)
    return snap


def get_all_flags() -> Dict[str, Dict[str, Any]]:
    out = {}
    for flag in FeatureFlag.objects.all().order_by("key"):
        snap = _snapshot(flag)
        _cache().set(f"{CACHE_PREFIX}{flag.key}", snap, timeout=settings.FLAG_CACHE_TTL)
        out[flag.key] = snap
    return out


def clear_flag_cache(key: Optional[str] = None) -> None:
    if key:
        _cache().delete(f"{CACHE_PREFIX}{key}")
    else:
        _cache().clear()


def _has_targeting(rules: Dict[str, Any]) -> bool:
    return bool(
        rules.get("tenants")
        or rules.get("users")
        or rules.get("templates")
        or rules.get("percentage") is not None
    )


def evaluate(flag: Dict[str, Any], context: Optional[Dict[str, Any]] = None) -> bool:
    ctx = context or {}
    if not flag.get("enabled"):
        return False

    rules = flag.get("rules") or {}
    environment = ctx.get("environment") or settings.APP_ENV

    environments = rules.get("environments")
    if environments and environment not in environments:
        return False

    if not _has_targeting(rules):
        return True

    template = ctx.get("tenant_template")
    if template and template in (rules.get("templates") or []):
        return True

    tenant_id = ctx.get("tenant_id")
    if tenant_id is not None and str(tenant_id) in {str(t) for t in rules.get("tenants") or []}:
        return True

    user_id = ctx.get("user_id")
    if user_id is not None and str(user_id) in {str(u) for u in rules.get("users") or []}:
        return True

    percentage = rules.get("percentage")
    if percentage is not None and percentage > 0:
        identifier = user_id or tenant_id
        if not identifier:
            return False
        bucket = simple_hash(f"{flag['key']}:{identifier}") % 100
        return bucket < percentage

    return False


def is_enabled(key: str, context: Optional[Dict[str, Any]] = None) -> bool:
    flag = get_flag(key)
    if flag is None:
        logger.debug("flag %s not found", key)
        return False
    return evaluate(flag, context)
