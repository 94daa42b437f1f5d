from rest_framework.permissions import BasePermission, SAFE_METHODS

from common.permissions import is_super_admin


class IsStaffOrReadOnly(BasePermission):
    """
    Anyone can read; staff or platform superadmins can create/update/delete.
    """
    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        user = request.user
        return bool(user and user.is_authenticated and (user.is_staff or is_super_admin(user)))
