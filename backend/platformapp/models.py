from django.conf import settings
from django.db import models
from common.models import BaseModel


class Tenant(BaseModel):
    class Template(models.TextChoices):
        GALLERY = "gallery", "Gallery"
        DETAIL = "detail", "Detail"
        MINIMAL = "minimal", "Minimal"
        RESTAURANT = "restaurant", "Restaurant"

    slug = models.SlugField(max_length=100, unique=True)
    name = models.CharField(max_length=200)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL,
        null=True, blank=True, related_name="owned_tenants",
    )
    owner_email = models.EmailField(blank=True, null=True)
    plan = models.CharField(max_length=20, default="free")
    active = models.BooleanField(default=True)

    # public config: business_name, colors, logo_url, banner_url, currency
    config = models.JSONField(default=dict, blank=True)
    # private config never exposed on storefront surfaces
    secure_config = models.JSONField(default=dict, blank=True)
    template = models.CharField(max_length=20, choices=Template.choices, default=Template.GALLERY)
    theme_overrides = models.JSONField(default=dict, blank=True)

    # Fernet ciphertext, see common.crypto
    mp_access_token = models.TextField(blank=True, null=True)

    class Meta:
        indexes = [models.Index(fields=["slug", "active"])]

    def __str__(self):
        return self.slug

    @property
    def is_stockless(self) -> bool:
        """Food menus sell made-to-order items; stock is not tracked."""
        return self.template == self.Template.RESTAURANT


class AuditLog(models.Model):
    id = models.BigAutoField(primary_key=True)
    tenant = models.ForeignKey("platformapp.Tenant", on_delete=models.CASCADE, related_name="audit_logs")
    user_id = models.UUIDField(blank=True, null=True)
    action = models.CharField(max_length=80)          # e.g. "order.status"
    entity = models.CharField(max_length=120)         # e.g. "commerce.Order"
    entity_id = models.CharField(max_length=120)
    meta_json = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
