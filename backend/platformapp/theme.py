# backend/platformapp/theme.py
"""
Storefront theme: template defaults + per-tenant overrides.

Every resolved field is `override if set else template default`. Brand colors
fall back one more step to the tenant config colors before the platform default.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from rest_framework import serializers

from .models import Tenant

TEMPLATES = tuple(Tenant.Template.values)
CARD_VARIANTS = ("flat", "elevated", "outlined")
SPACINGS = ("compact", "normal", "relaxed")

TEMPLATE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "gallery": {"gridCols": 3, "imageAspect": "1:1", "cardVariant": "elevated", "spacing": "normal"},
    "detail": {"gridCols": 2, "imageAspect": "16:9", "cardVariant": "outlined", "spacing": "relaxed"},
    "minimal": {"gridCols": 4, "imageAspect": "4:3", "cardVariant": "flat", "spacing": "compact"},
    "restaurant": {"gridCols": 2, "imageAspect": "16:9", "cardVariant": "outlined", "spacing": "normal"},
}

DEFAULT_COLORS = {"primary": "#3B82F6", "accent": "#F59E0B"}

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"
ASPECT_RATIO = r"^\d+:\d+$"


class StrictSerializer(serializers.Serializer):
    """Rejects keys that are not declared fields."""

    def to_internal_value(self, data):
        if isinstance(data, dict):
            unknown = set(data) - set(self.fields)
            if unknown:
                raise serializers.ValidationError(
                    {k: ["Unknown field."] for k in sorted(unknown)}
                )
        return super().to_internal_value(data)


class ThemeColorsSerializer(StrictSerializer):
    primary = serializers.RegexField(HEX_COLOR, required=False)
    accent = serializers.RegexField(HEX_COLOR, required=False)


class ThemeOverridesSerializer(StrictSerializer):
    gridCols = serializers.IntegerField(min_value=1, max_value=6, required=False)
    imageAspect = serializers.RegexField(ASPECT_RATIO, required=False)
    cardVariant = serializers.ChoiceField(choices=CARD_VARIANTS, required=False)
    spacing = serializers.ChoiceField(choices=SPACINGS, required=False)
    colors = ThemeColorsSerializer(required=False)


def is_valid_template(value) -> bool:
    return value in TEMPLATES


def is_valid_theme_overrides(value) -> bool:
    return ThemeOverridesSerializer(data=value).is_valid()


def resolve_theme(template: str, overrides: Optional[Dict[str, Any]] = None,
                  config_colors: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    defaults = TEMPLATE_DEFAULTS.get(template) or TEMPLATE_DEFAULTS["gallery"]
    overrides = overrides or {}
    config_colors = config_colors or {}
    override_colors = overrides.get("colors") or {}

    resolved = {"template": template if template in TEMPLATE_DEFAULTS else "gallery"}
    for field, default in defaults.items():
        value = overrides.get(field)
        resolved[field] = value if value is not None else default

    resolved["colors"] = {
        "primary": override_colors.get("primary") or config_colors.get("primary") or DEFAULT_COLORS["primary"],
        "accent": override_colors.get("accent") or config_colors.get("accent") or DEFAULT_COLORS["accent"],
        "background": config_colors.get("background"),
        "surface": config_colors.get("surface"),
        "textPrimary": config_colors.get("textPrimary"),
        "textSecondary": config_colors.get("textSecondary"),
    }
    return resolved


def resolve_tenant_theme(tenant: Tenant) -> Dict[str, Any]:
    return resolve_theme(tenant.template, tenant.theme_overrides, (tenant.config or {}).get("colors"))


def merge_overrides(current: Optional[Dict[str, Any]], patch: Dict[str, Any]) -> Dict[str, Any]:
    """Shallow merge: top-level keys in `patch` replace the stored ones."""
    merged = dict(current or {})
    merged.update(patch)
    return merged
