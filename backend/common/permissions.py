from __future__ import annotations

from django.conf import settings
from rest_framework.permissions import BasePermission, SAFE_METHODS


def is_super_admin(user) -> bool:
    """Platform superadmins are listed by email in settings.SUPER_ADMINS."""
    if not user or not getattr(user, "is_authenticated", False):
        return False
    email = (getattr(user, "email", "") or "").strip().lower()
    return bool(email) and email in set(getattr(settings, "SUPER_ADMINS", []) or [])


class ReadPublicWriteAuth(BasePermission):
    """
    Public GET/HEAD/OPTIONS; writes require authentication.
    Tenant ownership is checked in the ViewSet mixin.
    """
    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_authenticated)
