from __future__ import annotations
from typing import Optional, Dict, Any
import logging

from platformapp.models import AuditLog, Tenant

logger = logging.getLogger(__name__)

REDACT_KEYS = {"password", "token", "access", "refresh", "mp_access_token", "secret"}


def _sanitize(meta: Dict[str, Any]) -> Dict[str, Any]:
    out = {}
    for k, v in (meta or {}).items():
        if k.lower() in REDACT_KEYS:
            out[k] = "***"
        elif isinstance(v, dict):
            out[k] = _sanitize(v)
        else:
            out[k] = v
    return out


def log_event(*, tenant: Tenant, user_id: Optional[str], action: str,
              entity: str, entity_id: str, meta: Optional[Dict[str, Any]] = None) -> AuditLog:
    entry = AuditLog.objects.create(
        tenant=tenant,
        user_id=user_id,
        action=action[:80],
        entity=entity[:120],
        entity_id=str(entity_id)[:120],
        meta_json=_sanitize(meta or {}),
    )
    logger.info("audit %s %s:%s tenant=%s", entry.action, entry.entity, entry.entity_id, tenant.slug)
    return entry
