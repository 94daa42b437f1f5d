import logging

from django.contrib.auth import get_user_model
from rest_framework import serializers

from common.crypto import DecryptionError, decrypt_value, encrypt_value
from .models import Tenant, AuditLog
from .theme import HEX_COLOR, TEMPLATES, StrictSerializer, ThemeOverridesSerializer

User = get_user_model()
logger = logging.getLogger(__name__)

SLUG_PATTERN = r"^[a-z0-9]+(-[a-z0-9]+)*$"
THEME_SLUG_PATTERN = r"^[a-z0-9-]+$"


class SignupSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(min_length=8, write_only=True)
    business_name = serializers.CharField(min_length=2, max_length=200)
    slug = serializers.RegexField(SLUG_PATTERN, min_length=3, max_length=30)

    def validate_email(self, value):
        return value.strip().lower()


class PublicTenantSerializer(serializers.ModelSerializer):
    logo = serializers.SerializerMethodField()
    status = serializers.SerializerMethodField()

    class Meta:
        model = Tenant
        fields = ("slug", "name", "logo", "status")

    def get_logo(self, obj):
        return (obj.config or {}).get("logo_url") or (obj.config or {}).get("logo")

    def get_status(self, obj):
        return "active" if obj.active else "inactive"


class StorefrontTenantSerializer(serializers.ModelSerializer):
    """Public tenant payload; secure_config and provider tokens never leave the server."""
    class Meta:
        model = Tenant
        fields = ("id", "slug", "name", "template", "config", "theme_overrides", "plan")


# ---- Onboarding ----
class BrandColorsSerializer(StrictSerializer):
    primary = serializers.RegexField(HEX_COLOR)
    secondary = serializers.RegexField(HEX_COLOR)


class OnboardingConfigSerializer(serializers.Serializer):
    business_name = serializers.CharField(min_length=2, max_length=200)
    logo = serializers.URLField(required=False, allow_blank=True, allow_null=True)
    colors = BrandColorsSerializer()


class OnboardingProductSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=1, max_length=200)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    image_url = serializers.URLField(required=False, allow_blank=True, default="")
    category = serializers.CharField(required=False, allow_blank=True, default="")
    stock = serializers.IntegerField(required=False, min_value=0, default=0)


class OnboardingSerializer(serializers.Serializer):
    config = OnboardingConfigSerializer()
    products = OnboardingProductSerializer(many=True, required=False, default=list)


# ---- Settings ----
def _read_token(tenant):
    if not tenant.mp_access_token:
        return None
    try:
        return decrypt_value(tenant.mp_access_token)
    except DecryptionError:
        logger.warning("stored MercadoPago token for %s cannot be decrypted", tenant.slug)
        return None


class TenantSettingsSerializer(serializers.ModelSerializer):
    """
    mp_access_token travels as plain text and is stored Fernet-encrypted.
    Empty string or null clears the stored token.
    """
    mp_access_token = serializers.CharField(required=False, allow_blank=True, allow_null=True, write_only=True)
    template = serializers.ChoiceField(choices=TEMPLATES, required=False)
    theme_overrides = ThemeOverridesSerializer(required=False)

    class Meta:
        model = Tenant
        fields = ("id", "slug", "name", "config", "secure_config", "template",
                  "theme_overrides", "mp_access_token", "plan", "active")
        read_only_fields = ("id", "slug", "plan", "active")

    def validate_config(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("Must be an object.")
        return value

    def validate_secure_config(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("Must be an object.")
        return value

    def update(self, instance, validated_data):
        if "mp_access_token" in validated_data:
            token = validated_data.pop("mp_access_token")
            instance.mp_access_token = encrypt_value(token) if token else None
        for field, value in validated_data.items():
            setattr(instance, field, value)
        instance.save()
        return instance

    def to_representation(self, instance):
        return {
            "id": str(instance.id),
            "slug": instance.slug,
            "name": instance.name,
            "config": instance.config or {},
            "secure_config": instance.secure_config or {},
            "template": instance.template,
            "theme_overrides": instance.theme_overrides or {},
            "mp_access_token": _read_token(instance),
            "plan": instance.plan,
            "active": instance.active,
        }


# ---- Theme ----
class ThemeUpdateSerializer(StrictSerializer):
    template = serializers.ChoiceField(choices=TEMPLATES, required=False)
    overrides = ThemeOverridesSerializer(required=False)

    def validate(self, attrs):
        if "template" not in attrs and "overrides" not in attrs:
            raise serializers.ValidationError("Provide template and/or overrides.")
        return attrs


class AuditLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditLog
        fields = ("id", "user_id", "action", "entity", "entity_id", "meta_json", "created_at")
