from django.contrib.auth import get_user_model
from rest_framework import serializers

from common.permissions import is_super_admin
from platformapp.models import Tenant

User = get_user_model()


class OwnedTenantSerializer(serializers.ModelSerializer):
    class Meta:
        model = Tenant
        fields = ("id", "slug", "name", "template", "active", "plan")


class SessionUserSerializer(serializers.ModelSerializer):
    """Current user with the tenants they own (dashboard bootstrap)."""
    is_super_admin = serializers.SerializerMethodField()
    tenants = OwnedTenantSerializer(source="owned_tenants", many=True, read_only=True)

    class Meta:
        model = User
        fields = ("id", "email", "full_name", "is_super_admin", "tenants")

    def get_is_super_admin(self, obj):
        return is_super_admin(obj)
