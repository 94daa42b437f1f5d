from rest_framework import serializers
from .models import FeatureFlag

ALLOWED_RULE_KEYS = {"tenants", "users", "templates", "percentage", "environments"}


class FeatureFlagSerializer(serializers.ModelSerializer):
    class Meta:
        model = FeatureFlag
        fields = ("id", "key", "description", "enabled", "rules_json", "created_at", "updated_at")
        read_only_fields = ("id", "created_at", "updated_at")

    def validate_rules_json(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("Must be an object.")
        unknown = set(value) - ALLOWED_RULE_KEYS
        if unknown:
            raise serializers.ValidationError(f"Unknown rule keys: {', '.join(sorted(unknown))}")
        pct = value.get("percentage")
        if pct is not None and (not isinstance(pct, (int, float)) or not 0 <= pct <= 100):
            raise serializers.ValidationError("percentage must be between 0 and 100.")
        for k in ("tenants", "users", "templates", "environments"):
            if k in value and not isinstance(value[k], list):
                raise serializers.ValidationError(f"{k} must be a list.")
        return value
