from django.db import models
from common.models import BaseModel


class FeatureFlag(BaseModel):
    """
    Server-side feature flag with targeting rules.

    rules_json keys (all optional):
      tenants: [tenant_id, ...]
      users: [user_id, ...]
      templates: ["gallery", "restaurant", ...]
      percentage: 0..100 rollout bucket
      environments: ["development", "production", ...]
    """
    key = models.SlugField(max_length=64, unique=True)
    description = models.CharField(max_length=255, blank=True, default="")
    enabled = models.BooleanField(default=False)
    rules_json = models.JSONField(default=dict, blank=True)

    def __str__(self):
        return f"{self.key}={self.enabled}"
