from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from common.models import BaseModel


class Product(BaseModel):
    """
    Catalog entry. `metadata_json.sizes` holds per-size stock:
        [{"id": "m", "label": "M", "stock": 3}, ...]
    Deleting a product only flips `active`.
    """
    tenant = models.ForeignKey("platformapp.Tenant", on_delete=models.CASCADE, related_name="products")

    name        = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    price       = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])
    currency    = models.CharField(max_length=3, default="ARS")
    stock       = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    category    = models.CharField(max_length=120, blank=True, default="")
    image_url   = models.URLField(max_length=500, blank=True, default="")
    active      = models.BooleanField(default=True)
    display_order = models.IntegerField(default=0)
    metadata_json = models.JSONField(default=dict, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["tenant", "active", "display_order"]),
            models.Index(fields=["tenant", "category"]),
        ]

    def __str__(self):
        return self.name

    @property
    def sizes(self):
        return (self.metadata_json or {}).get("sizes") or []

    def size(self, size_id):
        return next((s for s in self.sizes if str(s.get("id")) == str(size_id)), None)


class Order(BaseModel):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        PAID = "paid", "Paid"
        PREPARING = "preparing", "Preparing"
        READY = "ready", "Ready"
        DELIVERED = "delivered", "Delivered"
        CANCELLED = "cancelled", "Cancelled"

    class PaymentMethod(models.TextChoices):
        CASH = "cash", "Cash"
        MERCADOPAGO = "mercadopago", "MercadoPago"
        TRANSFER = "transfer", "Transfer"

    tenant   = models.ForeignKey("platformapp.Tenant", on_delete=models.CASCADE, related_name="orders")
    customer = models.ForeignKey("crm.Customer", on_delete=models.SET_NULL, null=True, blank=True, related_name="orders")

    # denormalized: [{product_id, name, quantity, unit_price, size_id, category}]
    items_json = models.JSONField(default=list)
    total      = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0"))
    currency   = models.CharField(max_length=3, default="ARS")
    status     = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)

    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices, default=PaymentMethod.CASH)
    payment_id     = models.CharField(max_length=120, blank=True, null=True)
    checkout_id    = models.CharField(max_length=120, blank=True, null=True)  # provider preference id
    notes          = models.TextField(blank=True, default="")

    class Meta:
        indexes = [
            models.Index(fields=["tenant", "status"]),
            models.Index(fields=["tenant", "-created_at"]),
            models.Index(fields=["payment_id"]),
        ]

    def __str__(self):
        return f"Order {self.pk} ({self.status})"

    @property
    def items_count(self) -> int:
        return sum(int(i.get("quantity") or 0) for i in self.items_json or [])
