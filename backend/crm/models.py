from decimal import Decimal

from django.db import models
from common.models import BaseModel


class Customer(BaseModel):
    """
    Storefront buyer. Created/updated from checkout and order creation, keyed by
    email (+ phone) within the tenant.
    """
    tenant = models.ForeignKey("platformapp.Tenant", on_delete=models.CASCADE, related_name="customers")

    name = models.CharField(max_length=200)
    email = models.EmailField()
    phone = models.CharField(max_length=32, blank=True, default="")

    # lifetime stats, refreshed on every order
    total_orders = models.PositiveIntegerField(default=0)
    total_spent = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0"))
    last_order_at = models.DateTimeField(blank=True, null=True)

    meta_json = models.JSONField(default=dict, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["tenant", "email"]),
            models.Index(fields=["tenant", "phone"]),
            models.Index(fields=["tenant", "-created_at"]),
        ]

    def __str__(self):
        return f"{self.name} <{self.email}>"
