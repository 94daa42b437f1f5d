from django.db import models
from common.models import BaseModel


class ProviderEvent(BaseModel):
    """
    Raw webhook log (for audits/debugging). `tenant` is filled once the
    notification is matched to an order.
    """
    tenant = models.ForeignKey("platformapp.Tenant", on_delete=models.CASCADE, related_name="provider_events",
                               null=True, blank=True)
    provider = models.CharField(max_length=40)
    event_type = models.CharField(max_length=80)
    resource_id = models.CharField(max_length=120, blank=True, null=True)
    payload = models.JSONField(default=dict, blank=True)
    signature = models.CharField(max_length=200, blank=True, null=True)
    processed = models.BooleanField(default=False)

    class Meta:
        indexes = [models.Index(fields=["provider", "resource_id"])]

    def __str__(self):
        return f"{self.provider}:{self.event_type} {self.resource_id or ''}".strip()
